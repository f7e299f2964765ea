"""Runtime schema metadata consumed by the write visitors and the projector.

The metadata is produced once by the schema compiler and treated as read-only
afterwards. Models are keyed by their lower-cased-first name (``User`` ->
``user``), matching the layout the compiler emits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Final, Literal, overload

from cachecast.config.errors import MetadataError

DEFAULT_ATTRIBUTE: Final[str] = "@default"
UPDATED_AT_ATTRIBUTE: Final[str] = "@updatedAt"
DELEGATE_ATTRIBUTE: Final[str] = "@@delegate"

INTEGER_TYPES: Final[frozenset[str]] = frozenset({"Int", "BigInt"})
NUMERIC_TYPES: Final[frozenset[str]] = frozenset({"Int", "BigInt", "Float", "Decimal"})
DATETIME_TYPE: Final[str] = "DateTime"
BOOLEAN_TYPE: Final[str] = "Boolean"


def lower_case_first(name: str) -> str:
    return name[:1].lower() + name[1:]


@dataclass(frozen=True, slots=True)
class AttributeArg:
    value: Any
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RuntimeAttribute:
    """A field or model attribute such as ``@default(0)`` or ``@@delegate(kind)``."""

    name: str
    args: tuple[AttributeArg, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldInfo:
    """Runtime description of one model field.

    ``foreign_key_mapping`` is only set on relation fields and maps the referenced
    field of the target model to the local foreign-key field; ``relation_field``
    is its counterpart on foreign-key fields.
    """

    name: str
    type: str
    is_id: bool = False
    is_data_model: bool = False
    is_array: bool = False
    is_optional: bool = False
    is_foreign_key: bool = False
    is_relation_owner: bool = False
    is_auto_increment: bool = False
    back_link: str | None = None
    relation_field: str | None = None
    foreign_key_mapping: dict[str, str] | None = None
    inherited_from: str | None = None
    attributes: tuple[RuntimeAttribute, ...] = ()

    def find_attribute(self, name: str) -> RuntimeAttribute | None:
        return next((attr for attr in self.attributes if attr.name == name), None)

    def has_attribute(self, name: str) -> bool:
        return self.find_attribute(name) is not None

    @property
    def is_auto_timestamp(self) -> bool:
        """``DateTime`` fields whose value the database fills in (default-now / updated-at)."""
        if self.type != DATETIME_TYPE:
            return False
        return self.has_attribute(DEFAULT_ATTRIBUTE) or self.has_attribute(UPDATED_AT_ATTRIBUTE)

    def has_default_value(self) -> bool:
        attr = self.find_attribute(DEFAULT_ATTRIBUTE)
        return attr is not None and bool(attr.args) and attr.args[0].value is not None

    def default_value(self) -> Any:
        """Return the literal ``@default`` value, or ``None`` when there is none.

        Function defaults (``autoincrement()``, ``uuid()``, ``now()``) carry no literal
        value in the metadata and yield ``None`` here.
        """
        attr = self.find_attribute(DEFAULT_ATTRIBUTE)
        if attr is None or not attr.args:
            return None
        value = attr.args[0].value
        if isinstance(value, str):
            if self.type in NUMERIC_TYPES:
                return self._parse_numeric_literal(value)
            if self.type == BOOLEAN_TYPE:
                return self._parse_boolean_literal(value)
        return value

    def _parse_boolean_literal(self, literal: str) -> bool:
        match literal.strip().lower():
            case "true":
                return True
            case "false":
                return False
            case _:
                raise MetadataError(
                    f"Default value {literal!r} of field {self.name!r} is not a valid Boolean"
                )

    def _parse_numeric_literal(self, literal: str) -> int | float | Decimal:
        text = literal.strip()
        try:
            if self.type in INTEGER_TYPES:
                return int(text)
            if self.type == "Decimal":
                return Decimal(text)
            return float(text)
        except (ValueError, InvalidOperation) as exc:
            raise MetadataError(
                f"Default value {literal!r} of field {self.name!r} is not a valid {self.type}"
            ) from exc


@dataclass(frozen=True, slots=True)
class UniqueConstraint:
    name: str
    fields: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class ModelInfo:
    name: str
    fields: dict[str, FieldInfo] = field(default_factory=dict[str, FieldInfo])
    unique_constraints: dict[str, UniqueConstraint] = field(
        default_factory=dict[str, UniqueConstraint]
    )
    base_types: tuple[str, ...] = ()
    attributes: tuple[RuntimeAttribute, ...] = ()
    discriminator: str | None = None

    @property
    def is_delegate(self) -> bool:
        return any(attr.name == DELEGATE_ATTRIBUTE for attr in self.attributes)

    @property
    def relation_fields(self) -> tuple[FieldInfo, ...]:
        return tuple(info for info in self.fields.values() if info.is_data_model)

    @property
    def scalar_fields(self) -> tuple[FieldInfo, ...]:
        return tuple(info for info in self.fields.values() if not info.is_data_model)


@dataclass(frozen=True, slots=True)
class ModelMeta:
    """Schema-wide metadata.

    ``delete_cascade`` maps a model to the models whose rows are deleted along
    with it.
    """

    models: dict[str, ModelInfo] = field(default_factory=dict[str, ModelInfo])
    delete_cascade: dict[str, tuple[str, ...]] = field(
        default_factory=dict[str, tuple[str, ...]]
    )
    auth_model: str | None = None

    def validate_invariants(self) -> None:
        for key, model in self.models.items():
            if key != lower_case_first(model.name):
                raise MetadataError(f"Model {model.name} is registered under key {key!r}")
            for info in model.relation_fields:
                target = self.models.get(lower_case_first(info.type))
                if target is None:
                    raise MetadataError(
                        f"Relation {model.name}.{info.name} targets unknown model {info.type}"
                    )
                if info.is_relation_owner or info.back_link is not None:
                    continue
                # implicit many-to-many: both sides are arrays and neither carries keys
                if info.is_array and info.foreign_key_mapping is None:
                    continue
                raise MetadataError(
                    f"Relation {model.name}.{info.name} is not owned and has no back link"
                )
        for model_name, cascaded in self.delete_cascade.items():
            for name in (model_name, *cascaded):
                if lower_case_first(name) not in self.models:
                    raise MetadataError(f"Cascade delete references unknown model {name}")


@overload
def get_model_info(
    meta: ModelMeta, model: str, *, throw_if_not_found: Literal[True]
) -> ModelInfo: ...
@overload
def get_model_info(
    meta: ModelMeta, model: str, *, throw_if_not_found: bool = False
) -> ModelInfo | None: ...
def get_model_info(
    meta: ModelMeta, model: str, *, throw_if_not_found: bool = False
) -> ModelInfo | None:
    info = meta.models.get(lower_case_first(model))
    if info is None and throw_if_not_found:
        raise MetadataError(f"Unable to load info for {model}")
    return info


def get_fields(meta: ModelMeta, model: str) -> dict[str, FieldInfo] | None:
    info = get_model_info(meta, model)
    return info.fields if info is not None else None


def resolve_field(meta: ModelMeta, model: str, field_name: str) -> FieldInfo | None:
    """Resolve a model field to its metadata, ``None`` if unknown."""
    fields = get_fields(meta, model)
    if fields is None:
        return None
    return fields.get(field_name)


def require_field(meta: ModelMeta, model: str, field_name: str) -> FieldInfo:
    info = resolve_field(meta, model, field_name)
    if info is None:
        raise MetadataError(f"Field {model}.{field_name} cannot be resolved")
    return info


def get_unique_constraints(meta: ModelMeta, model: str) -> dict[str, UniqueConstraint]:
    info = get_model_info(meta, model)
    return info.unique_constraints if info is not None else {}


def get_id_fields(
    meta: ModelMeta, model: str, *, throw_if_not_found: bool = False
) -> list[FieldInfo]:
    """Return the simple identifier fields of ``model``.

    Fields flagged ``is_id`` that are not relation-valued win; otherwise the first
    unique constraint stands in for the identifier.
    """
    info = get_model_info(meta, model)
    if info is None:
        if throw_if_not_found:
            raise MetadataError(f"Unable to load info for {model}")
        return []

    id_fields = [f for f in info.fields.values() if f.is_id and not f.is_data_model]
    if not id_fields:
        for constraint in info.unique_constraints.values():
            candidates = [info.fields.get(name) for name in constraint.fields]
            id_fields = [f for f in candidates if f is not None and not f.is_data_model]
            break

    if not id_fields and throw_if_not_found:
        raise MetadataError(f"Model {model} does not have any id field")
    return id_fields
