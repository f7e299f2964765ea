"""Recursive visitor for nested write payloads.

A write payload such as::

    {"data": {"title": "Hi", "comments": {"create": [{...}, {...}]}}}

is decomposed into elementary write events (``create`` on ``Post``, then two
``create`` events on ``Comment``). Every event is tagged with the model it
targets, which for nested writes is the relation's target model rather than
the parent.

Dispatch is purely table driven: relation fields are looked up in the schema
metadata and verbs in the callback registry. Unknown verbs and fields are
skipped, and missing or partial payloads end the descent for that node.

Array payloads are walked last element first, so a callback may drop the
current element from its parent, and rows prepended to a cached list end up in
payload order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any, TypeAlias

from cachecast.domain.clone import enumerate_items
from cachecast.domain.enums import WriteAction
from cachecast.domain.model_meta import resolve_field

if TYPE_CHECKING:
    from cachecast.domain.model_meta import FieldInfo, ModelMeta

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NestingPathItem:
    """One level of the write: the relation taken, its model and its filter."""

    field: FieldInfo | None
    model: str
    where: Any
    unique: bool = False


@dataclass(frozen=True, slots=True)
class NestedWriteVisitorContext:
    """Where in the payload a callback fires.

    ``parent`` is the enclosing payload (the relation's verb record for nested
    writes, ``None`` at the top), ``field`` the relation field that led here.
    """

    parent: Any = None
    field: FieldInfo | None = None
    nesting_path: tuple[NestingPathItem, ...] = ()

    def push(self, model: str, where: Any, *, unique: bool = False) -> NestedWriteVisitorContext:
        item = NestingPathItem(field=self.field, model=model, where=where, unique=unique)
        return replace(self, nesting_path=(*self.nesting_path, item))


# Returning ``False`` prunes the descent below the visited node; returning a dict
# makes the visitor descend into that dict instead of the original sub-payload.
NestedWriteCallback: TypeAlias = (
    "Callable[[str, Any, NestedWriteVisitorContext], bool | dict[str, Any] | None]"
)
NestedWriteFieldCallback: TypeAlias = (
    "Callable[[FieldInfo, WriteAction, Any, NestedWriteVisitorContext], None]"
)


@dataclass(slots=True, kw_only=True)
class NestedWriteCallbacks:
    """Callback registry keyed by elementary write verb.

    ``createMany`` payloads are reported through ``create``, once per element.
    ``field`` fires for every plain (non-relation) field of a visited payload.
    """

    create: NestedWriteCallback | None = None
    update: NestedWriteCallback | None = None
    update_many: NestedWriteCallback | None = None
    upsert: NestedWriteCallback | None = None
    delete: NestedWriteCallback | None = None
    delete_many: NestedWriteCallback | None = None
    connect: NestedWriteCallback | None = None
    disconnect: NestedWriteCallback | None = None
    connect_or_create: NestedWriteCallback | None = None
    set: NestedWriteCallback | None = None
    field: NestedWriteFieldCallback | None = None

    def registered(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is not None)


class NestedWriteVisitor:
    def __init__(self, meta: ModelMeta, callbacks: NestedWriteCallbacks) -> None:
        self._meta = meta
        self._callbacks = callbacks

    def visit(self, model: str, action: WriteAction | str, args: Any) -> None:
        """Visit the write ``action`` issued against ``model`` with ``args``."""
        if not args:
            return
        parsed = WriteAction.parse(action)
        if parsed is None:
            log.debug("Ignoring unknown write action %s on %s", action, model)
            return

        data = args
        if isinstance(args, dict):
            match parsed:
                case WriteAction.CREATE:
                    data = args.get("data")
                case WriteAction.DELETE | WriteAction.DELETE_MANY:
                    data = args.get("where")
                case _:
                    pass
        self._visit_action(model, parsed, data, NestedWriteVisitorContext())

    def _visit_action(
        self, model: str, action: WriteAction, data: Any, context: NestedWriteVisitorContext
    ) -> None:
        if data is None or data is False:
            return

        callbacks = self._callbacks
        match action:
            case WriteAction.CREATE:
                for item in _reversed_items(data):
                    item_context = context.push(model, {})
                    result = _invoke(callbacks.create, model, item, item_context)
                    self._descend(model, action, result, item, item_context)

            case WriteAction.CREATE_MANY | WriteAction.CREATE_MANY_AND_RETURN:
                # rows are reported in order; each one is prepended by cache projections
                rows = data.get("data") if isinstance(data, dict) else None
                for item in enumerate_items(rows):
                    _invoke(callbacks.create, model, item, context.push(model, {}))

            case WriteAction.CONNECT_OR_CREATE:
                for item in _reversed_items(data):
                    item_context = context.push(model, _get(item, "where"))
                    result = _invoke(callbacks.connect_or_create, model, item, item_context)
                    self._descend(model, action, result, _get(item, "create"), item_context)

            case WriteAction.UPDATE:
                for item in _reversed_items(data):
                    item_context = context.push(model, _get(item, "where"))
                    result = _invoke(callbacks.update, model, item, item_context)
                    nested = _get(item, "data")
                    payload = nested if isinstance(nested, dict) else item
                    self._descend(model, action, result, payload, item_context)

            case WriteAction.UPDATE_MANY:
                for item in _reversed_items(data):
                    item_context = context.push(model, _get(item, "where"))
                    result = _invoke(callbacks.update_many, model, item, item_context)
                    self._descend(model, action, result, item, item_context)

            case WriteAction.UPSERT:
                for item in _reversed_items(data):
                    item_context = context.push(model, _get(item, "where"))
                    result = _invoke(callbacks.upsert, model, item, item_context)
                    if result is False:
                        continue
                    if isinstance(result, dict):
                        self._visit_sub_payload(model, action, result, item_context)
                    else:
                        self._visit_sub_payload(model, action, _get(item, "create"), item_context)
                        self._visit_sub_payload(model, action, _get(item, "update"), item_context)

            case WriteAction.DELETE:
                self._notify_leaves(callbacks.delete, model, data, context, unique=False)
            case WriteAction.DELETE_MANY:
                self._notify_leaves(callbacks.delete_many, model, data, context, unique=False)
            case WriteAction.CONNECT | WriteAction.SET:
                callback = callbacks.connect if action is WriteAction.CONNECT else callbacks.set
                self._notify_leaves(callback, model, data, context, unique=True)
            case WriteAction.DISCONNECT:
                # to-many takes unique filters, to-one only ``True``
                if callbacks.disconnect is None:
                    return
                for item in _reversed_items(data):
                    item_context = context.push(model, item, unique=isinstance(item, dict))
                    callbacks.disconnect(model, item, item_context)

    def _descend(
        self,
        model: str,
        action: WriteAction,
        result: Any,
        payload: Any,
        context: NestedWriteVisitorContext,
    ) -> None:
        if result is False:
            return
        self._visit_sub_payload(
            model, action, result if isinstance(result, dict) else payload, context
        )

    def _visit_sub_payload(
        self, model: str, action: WriteAction, payload: Any, context: NestedWriteVisitorContext
    ) -> None:
        if not isinstance(payload, dict):
            return
        for key, value in payload.items():
            info = resolve_field(self._meta, model, key)
            if info is None:
                continue
            if not info.is_data_model:
                if self._callbacks.field is not None:
                    field_context = replace(context, parent=payload, field=info)
                    self._callbacks.field(info, action, value, field_context)
                continue
            if not isinstance(value, dict):
                continue
            nested_context = replace(context, parent=value, field=info)
            for verb, nested in value.items():
                nested_action = WriteAction.parse(verb)
                if nested_action is None or not nested:
                    continue
                self._visit_action(info.type, nested_action, nested, nested_context)

    @staticmethod
    def _notify_leaves(
        callback: NestedWriteCallback | None,
        model: str,
        data: Any,
        context: NestedWriteVisitorContext,
        *,
        unique: bool,
    ) -> None:
        if callback is None:
            return
        for item in _reversed_items(data):
            callback(model, item, context.push(model, item, unique=unique))


def _invoke(
    callback: NestedWriteCallback | None,
    model: str,
    item: Any,
    context: NestedWriteVisitorContext,
) -> Any:
    if callback is None:
        return None
    return callback(model, item, context)


def _reversed_items(data: Any) -> list[Any]:
    return list(reversed(enumerate_items(data)))


def _get(item: Any, key: str) -> Any:
    return item.get(key) if isinstance(item, dict) else None
