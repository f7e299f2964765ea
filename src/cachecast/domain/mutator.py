"""Optimistic projection of write operations onto cached read results.

Given a cached result of ``(query_model, query_op)`` and a write issued against
the data-access client, :func:`apply_mutation` predicts what the cached result
will look like once the server has processed the write. The prediction is
best effort: malformed or inapplicable input yields :data:`UNCHANGED` and never
raises, so callers can simply keep their cache as it is and wait for the
authoritative response.

Projected records carry ``"$optimistic": True`` so UI code can tell them apart
from server-confirmed rows.

Relations hydrated inside a cached result are projected with their own model,
so a deleted ``User`` also clears ``Post.author``. Cascade deletes of rows that
merely reference a deleted record are not predicted.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Final
from uuid import uuid4

from cachecast.domain.clone import clone
from cachecast.domain.enums import AGGREGATE_OPERATIONS, QueryOperation
from cachecast.domain.model_meta import (
    INTEGER_TYPES,
    get_fields,
    get_id_fields,
    lower_case_first,
)
from cachecast.domain.visitors import ModelDataVisitor, NestedWriteCallbacks, NestedWriteVisitor

if TYPE_CHECKING:
    from cachecast.domain.enums import WriteAction
    from cachecast.domain.model_meta import FieldInfo, ModelMeta
    from cachecast.domain.visitors import NestedWriteVisitorContext

log = logging.getLogger(__name__)

OPTIMISTIC_FLAG: Final[str] = "$optimistic"
_JSON_TYPE: Final[str] = "Json"
_MISSING: Final = object()
_LEADING_INT: Final = re.compile(r"\s*([+-]?\d+)")


class Unchanged(Enum):
    """Marker for "this mutation does not apply, leave the cache alone"."""

    UNCHANGED = "unchanged"

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED: Final = Unchanged.UNCHANGED


def apply_mutation(
    query_model: str,
    query_op: QueryOperation | str,
    query_data: Any,
    mutation_model: str,
    mutation_op: WriteAction | str,
    mutation_args: Any,
    model_meta: ModelMeta,
    log_changes: bool = False,
) -> Any | Unchanged:
    """Try to apply a mutation to a cached query result.

    Returns the updated data when the mutation changes the cached result, else
    :data:`UNCHANGED`. ``None`` is a valid result (a deleted singular row).
    Relation fields hydrated inside the result are projected as well, each with
    the relation's target model.
    """

    if not isinstance(query_data, dict | list):
        return UNCHANGED
    if query_op in AGGREGATE_OPERATIONS or not str(query_op).startswith("find"):
        # only entity-shaped results can be patched
        return UNCHANGED

    write = _Write(mutation_model, mutation_op, mutation_args, model_meta, log_changes)
    return write.project(query_model, str(query_op), query_data)


@dataclass(frozen=True, slots=True)
class _Write:
    model: str
    operation: WriteAction | str
    args: Any
    meta: ModelMeta
    log_changes: bool

    def project(self, query_model: str, query_op: str, query_data: Any) -> Any | Unchanged:
        projection = MutationProjection(
            query_model=query_model,
            query_op=query_op,
            meta=self.meta,
            log_changes=self.log_changes,
            data=query_data,
        )
        NestedWriteVisitor(self.meta, projection.callbacks()).visit(
            self.model, self.operation, self.args
        )

        result = projection.data
        if isinstance(result, list):
            nested = self._project_items(query_model, result)
        elif isinstance(result, dict):
            nested = self._project_relations(query_model, result)
        else:
            nested = UNCHANGED

        if nested is not UNCHANGED:
            return nested
        return result if projection.updated else UNCHANGED

    def _project_items(self, query_model: str, rows: list[Any]) -> list[Any] | Unchanged:
        copied: list[Any] | None = None
        for index, row in enumerate(rows):
            if not isinstance(row, dict) or row.get(OPTIMISTIC_FLAG):
                # rows already projected optimistically are left alone
                continue
            projected = self.project(query_model, QueryOperation.FIND_UNIQUE, row)
            if projected is UNCHANGED:
                continue
            if copied is None:
                copied = list(rows)
            copied[index] = projected
        return copied if copied is not None else UNCHANGED

    def _project_relations(self, query_model: str, record: dict[str, Any]) -> Any | Unchanged:
        fields = get_fields(self.meta, query_model) or {}
        result: dict[str, Any] | None = None
        for key, value in record.items():
            info = fields.get(key)
            if info is None or not info.is_data_model or not isinstance(value, dict | list):
                continue
            op = QueryOperation.FIND_MANY if isinstance(value, list) else QueryOperation.FIND_UNIQUE
            projected = self.project(info.type, op, value)
            if projected is UNCHANGED:
                continue
            result = {**(result if result is not None else record), key: projected}
        return result if result is not None else UNCHANGED


@dataclass(slots=True, kw_only=True)
class MutationProjection:
    """Working copy of one cached result while a write payload is visited."""

    query_model: str
    query_op: str
    meta: ModelMeta
    log_changes: bool
    data: Any
    updated: bool = False

    def callbacks(self) -> NestedWriteCallbacks:
        return NestedWriteCallbacks(
            create=self.on_create,
            update=self.on_update,
            upsert=self.on_upsert,
            delete=self.on_delete,
        )

    def on_create(self, model: str, args: Any, _context: NestedWriteVisitorContext) -> None:
        if not _same_model(model, self.query_model) or not isinstance(self.data, list):
            return
        self._accept(
            create_mutate(
                self.query_model, self.query_op, self.data, args, self.meta, self.log_changes
            )
        )

    def on_update(self, model: str, args: Any, _context: NestedWriteVisitorContext) -> None:
        # list rows are updated one by one while projecting the items
        if not _same_model(model, self.query_model) or isinstance(self.data, list):
            return
        self._accept(
            update_mutate(self.query_model, self.data, model, args, self.meta, self.log_changes)
        )

    def on_upsert(self, model: str, args: Any, _context: NestedWriteVisitorContext) -> None:
        if not _same_model(model, self.query_model):
            return
        self._accept(
            upsert_mutate(
                self.query_model,
                self.query_op,
                self.data,
                model,
                args,
                self.meta,
                self.log_changes,
            )
        )

    def on_delete(self, model: str, args: Any, _context: NestedWriteVisitorContext) -> None:
        self._accept(
            delete_mutate(self.query_model, self.data, model, args, self.meta, self.log_changes)
        )

    def _accept(self, result: Any | Unchanged) -> None:
        if result is UNCHANGED:
            return
        self.data = result
        self.updated = True


def create_mutate(
    query_model: str,
    query_op: str,
    current_data: Any,
    new_data: Any,
    meta: ModelMeta,
    log_changes: bool = False,
) -> list[Any] | Unchanged:
    """Prepend an optimistic row built from ``new_data`` to a ``findMany`` result."""

    if not new_data or not isinstance(new_data, dict):
        return UNCHANGED
    if query_op != QueryOperation.FIND_MANY or not isinstance(current_data, list):
        return UNCHANGED

    fields = get_fields(meta, query_model)
    if fields is None:
        return UNCHANGED

    insert: dict[str, Any] = {}
    for name, info in fields.items():
        if info.is_data_model:
            if new_data.get(name):
                _assign_foreign_keys(info, insert, new_data[name])
            continue

        if name in new_data:
            insert[name] = clone(new_data[name])
        elif info.is_auto_timestamp:
            insert[name] = datetime.now(tz=UTC)
        elif info.has_default_value():
            insert[name] = info.default_value()

    for id_field in get_id_fields(meta, query_model):
        if insert.get(id_field.name) is not None:
            continue
        if id_field.type in INTEGER_TYPES:
            insert[id_field.name] = _max_numeric_id(current_data, id_field.name) + 1
        else:
            insert[id_field.name] = str(uuid4())

    insert[OPTIMISTIC_FLAG] = True

    if log_changes:
        log.info("Optimistic create for %s: %s", query_model, insert)
    return [insert, *current_data]


def update_mutate(
    query_model: str,
    current_data: Any,
    mutate_model: str,
    mutate_args: Any,
    meta: ModelMeta,
    log_changes: bool = False,
) -> Any | Unchanged:
    """Patch every cached row whose identifier matches ``where`` with ``data``.

    A singular result is treated as a one-element sequence. The returned
    structure is a deep clone of ``current_data``; the input is left untouched.
    """

    if not current_data or not isinstance(current_data, dict | list):
        return UNCHANGED
    if not isinstance(mutate_args, dict):
        return UNCHANGED
    where = mutate_args.get("where")
    data = mutate_args.get("data")
    if not isinstance(where, dict) or not isinstance(data, dict):
        return UNCHANGED

    fields = get_fields(meta, query_model)
    if fields is None:
        return UNCHANGED

    visitor = ModelDataVisitor(meta)
    is_list = isinstance(current_data, list)
    items = current_data if is_list else [current_data]
    working: Any = None
    changed = False

    for index, item in enumerate(items):
        scalar_data = visitor.scalar_data(query_model, item)
        if scalar_data is None or not id_fields_match(mutate_model, scalar_data, where, meta):
            continue
        if working is None:
            working = clone(current_data)
        record = working[index] if is_list else working
        if _patch_record(record, data, fields):
            changed = True
            if log_changes:
                log.info("Optimistic update for %s: %s", query_model, record)

    return working if changed else UNCHANGED


def upsert_mutate(
    query_model: str,
    query_op: str,
    current_data: Any,
    mutate_model: str,
    mutate_args: Any,
    meta: ModelMeta,
    log_changes: bool = False,
) -> Any | Unchanged:
    """Update the cached row matching ``where`` or, for ``findMany``, insert ``create``."""

    if not isinstance(mutate_args, dict):
        return UNCHANGED
    where = mutate_args.get("where")
    create = mutate_args.get("create")
    update = mutate_args.get("update")
    if not isinstance(where, dict) or not isinstance(create, dict) or not isinstance(update, dict):
        return UNCHANGED

    update_args = {"where": where, "data": update}
    if not isinstance(current_data, list):
        return update_mutate(
            query_model, current_data, mutate_model, update_args, meta, log_changes
        )

    visitor = ModelDataVisitor(meta)
    for index, item in enumerate(current_data):
        scalar_data = visitor.scalar_data(query_model, item)
        if scalar_data is None or not id_fields_match(mutate_model, scalar_data, where, meta):
            continue
        patched = update_mutate(query_model, item, mutate_model, update_args, meta, log_changes)
        if patched is UNCHANGED:
            return UNCHANGED
        return [*current_data[:index], patched, *current_data[index + 1 :]]

    return create_mutate(query_model, query_op, current_data, create, meta, log_changes)


def delete_mutate(
    query_model: str,
    current_data: Any,
    mutate_model: str,
    mutate_args: Any,
    meta: ModelMeta,
    log_changes: bool = False,
) -> Any | Unchanged:
    """Drop rows matching ``mutate_args`` from a cache of the same model.

    A deleted singular result becomes ``None``.
    """

    if current_data is None or not mutate_args:
        return UNCHANGED
    if not _same_model(query_model, mutate_model):
        return UNCHANGED

    if isinstance(current_data, list):
        result = current_data
        removed = False
        for item in current_data:
            if id_fields_match(mutate_model, item, mutate_args, meta):
                result = [x for x in result if x is not item]
                removed = True
                if log_changes:
                    log.info("Optimistic delete for %s: %s", query_model, item)
        return result if removed else UNCHANGED

    if id_fields_match(mutate_model, current_data, mutate_args, meta):
        if log_changes:
            log.info("Optimistic delete for %s: %s", query_model, current_data)
        return None
    return UNCHANGED


def id_fields_match(model: str, x: Any, y: Any, meta: ModelMeta) -> bool:
    """Check two records for identical identifier values, failing closed."""

    if not isinstance(x, dict) or not isinstance(y, dict):
        return False
    id_fields = get_id_fields(meta, model)
    if not id_fields:
        return False
    return all(_strict_equal(x.get(f.name, _MISSING), y.get(f.name, _MISSING)) for f in id_fields)


def _strict_equal(left: Any, right: Any) -> bool:
    if left is _MISSING or right is _MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, str) != isinstance(right, str):
        return False
    return bool(left == right)


def _same_model(left: str, right: str) -> bool:
    return lower_case_first(left) == lower_case_first(right)


def _max_numeric_id(rows: list[Any], field_name: str) -> int:
    values = [_parse_int(row.get(field_name)) for row in rows if isinstance(row, dict)]
    return max(values, default=0)


def _parse_int(value: Any) -> int:
    # leading digits count ("12abc" -> 12), anything else counts as 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0
    return 0


def _patch_record(
    record: dict[str, Any], data: dict[str, Any], fields: dict[str, FieldInfo]
) -> bool:
    changed = False
    for key, value in data.items():
        info = fields.get(key)
        if info is None:
            continue
        if info.is_data_model:
            if not _assign_foreign_keys(info, record, value):
                continue
        elif isinstance(value, dict) and info.type != _JSON_TYPE:
            # atomic operators other than ``set`` depend on server state
            if set(value) != {"set"}:
                continue
            record[key] = clone(value["set"])
        else:
            record[key] = clone(value)
        changed = True

    if changed:
        record[OPTIMISTIC_FLAG] = True
    return changed


def _assign_foreign_keys(info: FieldInfo, record: dict[str, Any], payload: Any) -> bool:
    """Turn ``{"connect": {"id": 1}}`` into local foreign-key assignments."""

    if not isinstance(payload, dict):
        return False
    connect = payload.get("connect")
    if not isinstance(connect, dict) or not info.foreign_key_mapping:
        return False

    assigned = False
    for referenced, foreign_key in info.foreign_key_mapping.items():
        if referenced in connect:
            record[foreign_key] = connect[referenced]
            assigned = True
    return assigned
