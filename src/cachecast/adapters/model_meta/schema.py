"""Schema of the metadata document emitted by the schema compiler."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class MetaBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Model metadata %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class MetaAttributeArg(MetaBaseModel):
    name: str | None = None
    value: Any = None


class MetaAttribute(MetaBaseModel):
    name: str
    args: list[MetaAttributeArg] = Field(default_factory=list["MetaAttributeArg"])


class MetaField(MetaBaseModel):
    name: str
    type: str
    is_id: bool = Field(default=False, alias="isId")
    is_data_model: bool = Field(default=False, alias="isDataModel")
    is_array: bool = Field(default=False, alias="isArray")
    is_optional: bool = Field(default=False, alias="isOptional")
    is_foreign_key: bool = Field(default=False, alias="isForeignKey")
    is_relation_owner: bool = Field(default=False, alias="isRelationOwner")
    is_auto_increment: bool = Field(default=False, alias="isAutoIncrement")
    back_link: str | None = Field(default=None, alias="backLink")
    relation_field: str | None = Field(default=None, alias="relationField")
    foreign_key_mapping: dict[str, str] | None = Field(default=None, alias="foreignKeyMapping")
    inherited_from: str | None = Field(default=None, alias="inheritedFrom")
    attributes: list[MetaAttribute] = Field(default_factory=list["MetaAttribute"])


class MetaUniqueConstraint(MetaBaseModel):
    name: str
    fields_: list[str] = Field(alias="fields")


class MetaModel(MetaBaseModel):
    name: str
    fields_: dict[str, MetaField] = Field(default_factory=dict[str, "MetaField"], alias="fields")
    unique_constraints: dict[str, MetaUniqueConstraint] = Field(
        default_factory=dict[str, "MetaUniqueConstraint"], alias="uniqueConstraints"
    )
    base_types: list[str] = Field(default_factory=list, alias="baseTypes")
    attributes: list[MetaAttribute] = Field(default_factory=list["MetaAttribute"])
    discriminator: str | None = None


class MetaDocument(MetaBaseModel):
    models: dict[str, MetaModel]
    delete_cascade: dict[str, list[str]] = Field(default_factory=dict, alias="deleteCascade")
    auth_model: str | None = Field(default=None, alias="authModel")
