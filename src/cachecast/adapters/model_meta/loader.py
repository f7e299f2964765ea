"""Load compiled schema metadata from JSON."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from cachecast.config.errors import MetadataError

from .schema import MetaDocument
from .translator import translate_document

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from cachecast.domain.model_meta import ModelMeta

log = logging.getLogger(__name__)


def parse_model_meta(payload: Mapping[str, Any], *, validate: bool = True) -> ModelMeta:
    """Validate a decoded metadata document and translate it to domain metadata."""

    try:
        document = MetaDocument.model_validate(payload)
    except ValidationError as exc:
        raise MetadataError(f"Invalid model metadata: {exc.error_count()} error(s)") from exc

    meta = translate_document(document)
    if validate:
        meta.validate_invariants()
    log.debug("Loaded metadata for %d model(s)", len(meta.models))
    return meta


def load_model_meta(path: Path, *, validate: bool = True) -> ModelMeta:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise MetadataError(f"Cannot read model metadata from {path}") from exc
    except json.JSONDecodeError as exc:
        raise MetadataError(f"Model metadata in {path} is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise MetadataError(f"Model metadata in {path} must be a JSON object")
    return parse_model_meta(payload, validate=validate)
