"""Which models does a (nested) write touch, and which does a read depend on?

Callers use the answers to decide which cached queries must be refetched once
the server confirms a write, complementing the optimistic projection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cachecast.domain.model_meta import get_model_info, lower_case_first, resolve_field
from cachecast.domain.visitors import NestedWriteCallbacks, NestedWriteVisitor

if TYPE_CHECKING:
    from cachecast.domain.enums import WriteAction
    from cachecast.domain.model_meta import ModelMeta
    from cachecast.domain.visitors import NestedWriteVisitorContext


@dataclass(slots=True)
class _ModelCollector:
    meta: ModelMeta
    names: list[str] = field(default_factory=list[str])
    _seen: set[str] = field(default_factory=set[str])

    def add(self, model: str) -> None:
        key = lower_case_first(model)
        if key in self._seen:
            return
        self._seen.add(key)
        self.names.append(model)

    def on_write(self, model: str, _args: Any, _context: NestedWriteVisitorContext) -> None:
        self.add(model)

    def on_delete(self, model: str, _args: Any, _context: NestedWriteVisitorContext) -> None:
        pending = [model]
        visited: set[str] = set()
        while pending:
            current = pending.pop(0)
            key = lower_case_first(current)
            if key in visited:
                continue
            visited.add(key)
            self.add(current)
            pending.extend(self._cascaded(current))

    def add_base_types(self) -> None:
        for name in list(self.names):
            pending = [name]
            while pending:
                info = get_model_info(self.meta, pending.pop(0))
                if info is None:
                    continue
                for base in info.base_types:
                    if lower_case_first(base) not in self._seen:
                        self.add(base)
                        pending.append(base)

    def _cascaded(self, model: str) -> tuple[str, ...]:
        cascade = self.meta.delete_cascade
        return cascade.get(model) or cascade.get(lower_case_first(model)) or ()

    def callbacks(self) -> NestedWriteCallbacks:
        return NestedWriteCallbacks(
            create=self.on_write,
            update=self.on_write,
            update_many=self.on_write,
            upsert=self.on_write,
            connect=self.on_write,
            disconnect=self.on_write,
            connect_or_create=self.on_write,
            set=self.on_write,
            delete=self.on_delete,
            delete_many=self.on_delete,
        )


def get_mutated_models(
    model: str,
    operation: WriteAction | str,
    args: Any,
    meta: ModelMeta,
) -> list[str]:
    """Return every model touched by ``operation`` on ``model``, in first-seen order.

    Deleted models contribute their cascade-delete targets, and every touched
    model contributes its base types.
    """

    collected = _ModelCollector(meta)
    collected.add(model)
    NestedWriteVisitor(meta, collected.callbacks()).visit(model, operation, args)
    collected.add_base_types()
    return collected.names


def get_read_models(model: str, args: Any, meta: ModelMeta) -> list[str]:
    """Return ``model`` plus every model a read pulls in through ``include``/``select``.

    Relation counts (``_count: {"select": {...}}``) count as reads of the
    counted relation.
    """

    collected = _ModelCollector(meta)
    collected.add(model)
    _collect_read_models(model, args, meta, collected)
    return collected.names


def _collect_read_models(model: str, args: Any, meta: ModelMeta, into: _ModelCollector) -> None:
    if not isinstance(args, dict):
        return
    for clause in ("include", "select"):
        selection = args.get(clause)
        if not isinstance(selection, dict):
            continue
        for key, value in selection.items():
            if key == "_count":
                _collect_read_models(model, value, meta, into)
                continue
            info = resolve_field(meta, model, key)
            if info is None or not info.is_data_model or not value:
                continue
            into.add(info.type)
            _collect_read_models(info.type, value, meta, into)
