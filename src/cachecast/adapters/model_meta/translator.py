"""Translate validated metadata documents into domain metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cachecast.domain.model_meta import (
    AttributeArg,
    FieldInfo,
    ModelInfo,
    ModelMeta,
    RuntimeAttribute,
    UniqueConstraint,
    lower_case_first,
)

if TYPE_CHECKING:
    from .schema import MetaAttribute, MetaDocument, MetaField, MetaModel


def translate_document(document: MetaDocument) -> ModelMeta:
    models = {
        lower_case_first(model.name): translate_model(model) for model in document.models.values()
    }
    return ModelMeta(
        models=models,
        delete_cascade={
            model: tuple(cascaded) for model, cascaded in document.delete_cascade.items()
        },
        auth_model=document.auth_model,
    )


def translate_model(model: MetaModel) -> ModelInfo:
    return ModelInfo(
        name=model.name,
        fields={name: translate_field(info) for name, info in model.fields_.items()},
        unique_constraints={
            name: UniqueConstraint(name=constraint.name, fields=tuple(constraint.fields_))
            for name, constraint in model.unique_constraints.items()
        },
        base_types=tuple(model.base_types),
        attributes=_translate_attributes(model.attributes),
        discriminator=model.discriminator,
    )


def translate_field(info: MetaField) -> FieldInfo:
    return FieldInfo(
        name=info.name,
        type=info.type,
        is_id=info.is_id,
        is_data_model=info.is_data_model,
        is_array=info.is_array,
        is_optional=info.is_optional,
        is_foreign_key=info.is_foreign_key,
        is_relation_owner=info.is_relation_owner,
        is_auto_increment=info.is_auto_increment,
        back_link=info.back_link,
        relation_field=info.relation_field,
        foreign_key_mapping=dict(info.foreign_key_mapping)
        if info.foreign_key_mapping is not None
        else None,
        inherited_from=info.inherited_from,
        attributes=_translate_attributes(info.attributes),
    )


def _translate_attributes(attributes: list[MetaAttribute]) -> tuple[RuntimeAttribute, ...]:
    return tuple(
        RuntimeAttribute(
            name=attr.name,
            args=tuple(AttributeArg(value=arg.value, name=arg.name) for arg in attr.args),
        )
        for attr in attributes
    )
