from __future__ import annotations

from decimal import Decimal

import pytest

from cachecast.config.errors import MetadataError
from cachecast.domain.model_meta import (
    FieldInfo,
    ModelInfo,
    ModelMeta,
    UniqueConstraint,
    get_fields,
    get_id_fields,
    get_model_info,
    get_unique_constraints,
    lower_case_first,
    require_field,
    resolve_field,
)
from tests.helpers.meta import default, meta, model


def test_lower_case_first() -> None:
    assert lower_case_first("BlogPost") == "blogPost"
    assert lower_case_first("") == ""


def test_lookups_accept_either_model_spelling(blog_meta: ModelMeta) -> None:
    assert get_model_info(blog_meta, "Post") is get_model_info(blog_meta, "post")
    fields = get_fields(blog_meta, "Post")
    assert fields is not None
    assert "comments" in fields
    assert resolve_field(blog_meta, "Post", "title") is fields["title"]
    assert resolve_field(blog_meta, "Post", "missing") is None
    assert resolve_field(blog_meta, "Nope", "title") is None
    assert set(get_unique_constraints(blog_meta, "User")) == {"id", "email"}
    assert get_unique_constraints(blog_meta, "Nope") == {}


def test_require_field_and_model_raise_for_unknown_names(blog_meta: ModelMeta) -> None:
    with pytest.raises(MetadataError, match=r"Post\.nope cannot be resolved"):
        require_field(blog_meta, "Post", "nope")
    with pytest.raises(MetadataError, match="Unable to load info for Nope"):
        get_model_info(blog_meta, "Nope", throw_if_not_found=True)


def test_id_fields_exclude_relations(blog_meta: ModelMeta) -> None:
    assert [f.name for f in get_id_fields(blog_meta, "Post")] == ["id"]
    assert get_id_fields(blog_meta, "Nope") == []


def test_id_fields_fall_back_to_first_unique_constraint() -> None:
    info = ModelInfo(
        name="Membership",
        fields={
            "orgId": FieldInfo(name="orgId", type="String"),
            "userId": FieldInfo(name="userId", type="String"),
        },
        unique_constraints={
            "orgId_userId": UniqueConstraint(name="orgId_userId", fields=("orgId", "userId"))
        },
    )
    membership_meta = ModelMeta(models={"membership": info})

    assert [f.name for f in get_id_fields(membership_meta, "Membership")] == ["orgId", "userId"]


def test_id_fields_raise_when_requested_and_missing() -> None:
    keyless = meta(model("Log", FieldInfo(name="line", type="String")))

    assert get_id_fields(keyless, "Log") == []
    with pytest.raises(MetadataError, match="does not have any id field"):
        get_id_fields(keyless, "Log", throw_if_not_found=True)


def test_default_values_parse_numeric_literals() -> None:
    assert FieldInfo(name="n", type="Int", attributes=(default("42"),)).default_value() == 42
    assert FieldInfo(name="f", type="Float", attributes=(default("1.5"),)).default_value() == 1.5
    decimal_field = FieldInfo(name="d", type="Decimal", attributes=(default("2.50"),))
    assert decimal_field.default_value() == Decimal("2.50")
    assert FieldInfo(name="s", type="String", attributes=(default("42"),)).default_value() == "42"
    flag = FieldInfo(name="b", type="Boolean", attributes=(default(False),))
    assert flag.default_value() is False
    assert FieldInfo(name="none", type="Int").default_value() is None


def test_invalid_numeric_default_is_a_metadata_error() -> None:
    broken = FieldInfo(name="count", type="Int", attributes=(default("lots"),))

    with pytest.raises(MetadataError, match="'lots' of field 'count' is not a valid Int"):
        broken.default_value()


def test_boolean_defaults_parse_string_literals() -> None:
    enabled = FieldInfo(name="on", type="Boolean", attributes=(default("true"),))
    disabled = FieldInfo(name="off", type="Boolean", attributes=(default(" FALSE "),))
    broken = FieldInfo(name="flag", type="Boolean", attributes=(default("yes"),))

    assert enabled.default_value() is True
    assert disabled.default_value() is False
    with pytest.raises(MetadataError, match="'yes' of field 'flag' is not a valid Boolean"):
        broken.default_value()


def test_auto_timestamp_and_delegate_flags(blog_meta: ModelMeta) -> None:
    user = get_model_info(blog_meta, "User", throw_if_not_found=True)
    assert user.fields["createdAt"].is_auto_timestamp
    assert user.fields["updatedAt"].is_auto_timestamp
    assert not user.fields["email"].is_auto_timestamp
    assert not user.fields["role"].is_auto_timestamp
    assert user.fields["role"].has_default_value()
    assert not user.fields["id"].has_default_value()

    assert get_model_info(blog_meta, "Asset", throw_if_not_found=True).is_delegate
    assert not user.is_delegate
    assert {f.name for f in user.relation_fields} == {"posts", "profile"}


def test_validate_invariants_accepts_blog_schema(blog_meta: ModelMeta) -> None:
    blog_meta.validate_invariants()


def test_validate_invariants_rejects_unowned_relation_without_back_link() -> None:
    broken = meta(
        model("Author", FieldInfo(name="id", type="Int", is_id=True)),
        model(
            "Book",
            FieldInfo(name="id", type="Int", is_id=True),
            FieldInfo(name="author", type="Author", is_data_model=True),
        ),
    )

    with pytest.raises(MetadataError, match=r"Book\.author is not owned"):
        broken.validate_invariants()


def test_validate_invariants_rejects_unknown_relation_target() -> None:
    broken = meta(
        model(
            "Book",
            FieldInfo(name="id", type="Int", is_id=True),
            FieldInfo(name="shelf", type="Shelf", is_data_model=True, is_relation_owner=True),
        ),
    )

    with pytest.raises(MetadataError, match="targets unknown model Shelf"):
        broken.validate_invariants()


def test_validate_invariants_rejects_unknown_cascade_target() -> None:
    broken = meta(model("Book", FieldInfo(name="id", type="Int", is_id=True)), Book=("Page",))

    with pytest.raises(MetadataError, match="Cascade delete references unknown model Page"):
        broken.validate_invariants()
