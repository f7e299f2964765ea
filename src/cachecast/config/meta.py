"""Location of the compiled schema metadata document."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import require_env_var


@dataclass(frozen=True, slots=True)
class MetaConfig:
    path: Path

    def resolve_path(self) -> Path:
        return self.path.expanduser().resolve()


def get_meta_config() -> MetaConfig:
    return MetaConfig(path=Path(require_env_var("CACHECAST_MODEL_META")))
