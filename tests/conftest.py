from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from cachecast.adapters.model_meta import parse_model_meta

if TYPE_CHECKING:
    from cachecast.domain.model_meta import ModelMeta

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(scope="session")
def blog_meta_path() -> Path:
    return DATA_DIR / "blog_meta.json"


@pytest.fixture
def blog_meta_payload(blog_meta_path: Path) -> dict[str, Any]:
    with blog_meta_path.open(encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture
def blog_meta(blog_meta_payload: dict[str, Any]) -> ModelMeta:
    return parse_model_meta(blog_meta_payload)
