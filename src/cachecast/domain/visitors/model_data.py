"""Scalar projection of cached entity instances."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from cachecast.domain.model_meta import get_fields

if TYPE_CHECKING:
    from cachecast.domain.model_meta import ModelMeta

ModelDataCallback: TypeAlias = "Callable[[str, dict[str, Any], dict[str, Any]], None]"


class ModelDataVisitor:
    """Walk one entity instance and report its scalar-only projection.

    Relation fields are recognised through the metadata and left out of the
    projection without descending into them, so identifier matching sees the same
    record whichever relations happen to be hydrated in the cache.
    """

    def __init__(self, meta: ModelMeta) -> None:
        self._meta = meta

    def visit(self, model: str, instance: Any, callback: ModelDataCallback) -> None:
        if not isinstance(instance, dict):
            return
        fields = get_fields(self._meta, model) or {}
        scalar_data: dict[str, Any] = {}
        for key, value in instance.items():
            info = fields.get(key)
            if info is not None and info.is_data_model:
                continue
            scalar_data[key] = value
        callback(model, instance, scalar_data)

    def scalar_data(self, model: str, instance: Any) -> dict[str, Any] | None:
        """Return the scalar projection of ``instance``, ``None`` for non-records."""
        captured: list[dict[str, Any]] = []
        self.visit(model, instance, lambda _model, _instance, data: captured.append(data))
        return captured[0] if captured else None
