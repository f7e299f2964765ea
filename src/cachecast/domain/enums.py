"""Operation and verb names understood by the projector (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class WriteAction(StrEnum):
    """Write verbs of the data-access client, top-level and nested."""

    CREATE = "create"
    CREATE_MANY = "createMany"
    CREATE_MANY_AND_RETURN = "createManyAndReturn"
    CONNECT_OR_CREATE = "connectOrCreate"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    SET = "set"
    UPDATE = "update"
    UPDATE_MANY = "updateMany"
    UPSERT = "upsert"
    DELETE = "delete"
    DELETE_MANY = "deleteMany"

    @classmethod
    def parse(cls, value: str) -> WriteAction | None:
        try:
            return cls(value)
        except ValueError:
            return None


class QueryOperation(StrEnum):
    """Read operations whose results may sit in a client-side cache."""

    FIND_UNIQUE = "findUnique"
    FIND_UNIQUE_OR_THROW = "findUniqueOrThrow"
    FIND_FIRST = "findFirst"
    FIND_FIRST_OR_THROW = "findFirstOrThrow"
    FIND_MANY = "findMany"
    COUNT = "count"
    AGGREGATE = "aggregate"
    GROUP_BY = "groupBy"


AGGREGATE_OPERATIONS = frozenset(
    {QueryOperation.COUNT, QueryOperation.AGGREGATE, QueryOperation.GROUP_BY}
)


class OptimisticDataKind(StrEnum):
    """Outcome of a caller-supplied optimistic data provider."""

    UPDATE = "Update"
    SKIP = "Skip"
    PROCEED_DEFAULT = "ProceedDefault"
