"""Metadata-directed traversal of entity instances and write payloads."""

from __future__ import annotations

from .model_data import ModelDataCallback, ModelDataVisitor
from .nested_write import (
    NestedWriteCallback,
    NestedWriteCallbacks,
    NestedWriteFieldCallback,
    NestedWriteVisitor,
    NestedWriteVisitorContext,
    NestingPathItem,
)

__all__ = [
    "ModelDataCallback",
    "ModelDataVisitor",
    "NestedWriteCallback",
    "NestedWriteCallbacks",
    "NestedWriteFieldCallback",
    "NestedWriteVisitor",
    "NestedWriteVisitorContext",
    "NestingPathItem",
]
