"""Schema metadata adapter."""

from __future__ import annotations

from .loader import load_model_meta, parse_model_meta

__all__ = ["load_model_meta", "parse_model_meta"]
