"""Application orchestration entry points.

These helpers sit between a client-side query cache and the projector: they
walk the cache entries a caller hands in, project a mutation onto each of them
and report which entries changed or should be refetched. The cache itself stays
owned by the caller.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, TypeAlias

from cachecast.adapters.model_meta import load_model_meta
from cachecast.config import get_meta_config, get_projection_config
from cachecast.domain.enums import OptimisticDataKind
from cachecast.domain.model_meta import lower_case_first
from cachecast.domain.mutated_models import get_mutated_models, get_read_models
from cachecast.domain.mutator import UNCHANGED, apply_mutation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cachecast.domain.enums import WriteAction
    from cachecast.domain.model_meta import ModelMeta

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryKey:
    """Identity of one cached read: model, operation and its arguments.

    ``args`` is kept as a JSON string so keys stay hashable; :meth:`parsed_args`
    decodes it for nested-read analysis and optimistic data providers.
    """

    model: str
    operation: str
    args: str | None = None
    optimistic_update: bool = True

    def parsed_args(self) -> Any:
        if not self.args:
            return None
        try:
            return json.loads(self.args)
        except json.JSONDecodeError:
            log.debug("Ignoring undecodable query args for %s.%s", self.model, self.operation)
            return None


@dataclass(slots=True)
class QueryCacheEntry:
    key: QueryKey
    data: Any
    error: object | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class OptimisticDataRequest:
    query_model: str
    query_operation: str
    query_args: Any
    current_data: Any
    mutation_args: Any


@dataclass(frozen=True, slots=True)
class OptimisticDataResult:
    """What a provider decided for one cache entry.

    ``data`` is only used with :attr:`OptimisticDataKind.UPDATE`; rows it creates
    or changes should carry ``"$optimistic": True`` like projected rows do.
    """

    kind: OptimisticDataKind
    data: Any = None


OptimisticDataProvider: TypeAlias = "Callable[[OptimisticDataRequest], OptimisticDataResult | None]"


def load_project_meta() -> ModelMeta:
    """Load the schema metadata configured via ``CACHECAST_MODEL_META``."""

    config = get_meta_config()
    path = config.resolve_path()
    log.info("Loading model metadata from %s", path)
    return load_model_meta(path)


def optimistic_update(
    entries: Iterable[QueryCacheEntry],
    mutation_model: str,
    mutation_op: WriteAction | str,
    mutation_args: Any,
    meta: ModelMeta,
    *,
    provider: OptimisticDataProvider | None = None,
    log_changes: bool | None = None,
) -> dict[QueryKey, Any]:
    """Project a mutation onto every eligible cache entry.

    Returns the new data for each entry the mutation changes; entries that
    errored or opted out of optimistic updates are skipped. A ``provider`` is
    asked first for every eligible entry and may supply the data itself, skip
    the entry, or let the default projection run (also when it returns ``None``).
    """

    if log_changes is None:
        log_changes = get_projection_config().log_changes

    updates: dict[QueryKey, Any] = {}
    for entry in entries:
        if entry.error is not None:
            log.debug("Skipping optimistic update for %s due to error: %s", entry.key, entry.error)
            continue
        if not entry.key.optimistic_update:
            log.debug("Skipping optimistic update for %s due to opt-out", entry.key)
            continue

        if provider is not None:
            decision = provider(
                OptimisticDataRequest(
                    query_model=entry.key.model,
                    query_operation=entry.key.operation,
                    query_args=entry.key.parsed_args(),
                    current_data=entry.data,
                    mutation_args=mutation_args,
                )
            )
            if decision is not None and decision.kind is OptimisticDataKind.SKIP:
                log.debug("Skipping optimistic update for %s due to provider", entry.key)
                continue
            if decision is not None and decision.kind is OptimisticDataKind.UPDATE:
                if log_changes:
                    log.info("Optimistically updating query %s due to provider", entry.key)
                updates[entry.key] = decision.data
                continue

        mutated = apply_mutation(
            entry.key.model,
            entry.key.operation,
            entry.data,
            mutation_model,
            mutation_op,
            mutation_args,
            meta,
            log_changes,
        )
        if mutated is UNCHANGED:
            continue
        if log_changes:
            log.info(
                'Optimistically updating query %s due to mutation "%s.%s"',
                entry.key,
                mutation_model,
                mutation_op,
            )
        updates[entry.key] = mutated
    return updates


def should_invalidate(
    key: QueryKey, mutated_models: Iterable[str], meta: ModelMeta | None = None
) -> bool:
    """Check whether ``key`` reads any of ``mutated_models``.

    Without ``meta`` only the query's own model is compared; with it, models
    pulled in through ``include``/``select`` in the query args count too.
    """

    targets = {lower_case_first(model) for model in mutated_models}
    if lower_case_first(key.model) in targets:
        return True
    if meta is None or not key.args:
        return False
    read = get_read_models(key.model, key.parsed_args(), meta)
    return any(lower_case_first(model) in targets for model in read)


def invalidated_keys(
    keys: Iterable[QueryKey],
    mutation_model: str,
    mutation_op: WriteAction | str,
    mutation_args: Any,
    meta: ModelMeta,
) -> list[QueryKey]:
    """Return the cached queries to refetch once ``mutation_model.mutation_op`` settles."""

    mutated = get_mutated_models(mutation_model, mutation_op, mutation_args, meta)
    log.debug('Mutation "%s.%s" touches %s', mutation_model, mutation_op, ", ".join(mutated))
    return [key for key in keys if should_invalidate(key, mutated, meta)]
