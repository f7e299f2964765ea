from __future__ import annotations

from typing import TYPE_CHECKING

from cachecast.domain.mutated_models import get_mutated_models, get_read_models
from tests.helpers.meta import meta, model

if TYPE_CHECKING:
    from cachecast.domain.model_meta import ModelMeta


def test_delete_follows_cascade_targets(blog_meta: ModelMeta) -> None:
    mutated = get_mutated_models("User", "delete", {"where": {"id": "u1"}}, blog_meta)

    assert mutated == ["User", "Post", "Profile", "Comment"]


def test_delete_many_without_where_reports_only_target(blog_meta: ModelMeta) -> None:
    assert get_mutated_models("Post", "deleteMany", {}, blog_meta) == ["Post"]


def test_create_adds_base_types(blog_meta: ModelMeta) -> None:
    mutated = get_mutated_models("Video", "create", {"data": {"duration": 10}}, blog_meta)

    assert mutated == ["Video", "Asset"]


def test_nested_writes_report_every_touched_model(blog_meta: ModelMeta) -> None:
    args = {
        "where": {"id": 1},
        "data": {
            "author": {"connect": {"id": "u1"}},
            "comments": {"create": {"content": "hi"}},
            "tags": {"set": [{"id": 1}]},
        },
    }

    mutated = get_mutated_models("Post", "update", args, blog_meta)

    assert mutated == ["Post", "User", "Comment", "Tag"]


def test_nested_delete_cascades_from_child(blog_meta: ModelMeta) -> None:
    args = {"where": {"id": "u1"}, "data": {"posts": {"delete": {"id": 2}}}}

    mutated = get_mutated_models("User", "update", args, blog_meta)

    assert mutated == ["User", "Post", "Comment"]


def test_self_referencing_cascade_terminates() -> None:
    looped = meta(model("Node"), model("Edge"), Node=("Node", "Edge"), Edge=("Node",))

    mutated = get_mutated_models("Node", "delete", {"where": {"id": 1}}, looped)

    assert mutated == ["Node", "Edge"]


def test_model_names_are_deduplicated_case_insensitively_on_first_letter(
    blog_meta: ModelMeta,
) -> None:
    mutated = get_mutated_models("post", "update", {"where": {"id": 1}, "data": {}}, blog_meta)

    assert mutated == ["post"]


def test_read_models_follow_nested_includes(blog_meta: ModelMeta) -> None:
    args = {"include": {"author": True, "comments": {"include": {"post": True}}}}

    assert get_read_models("Post", args, blog_meta) == ["Post", "User", "Comment"]


def test_read_models_skip_deselected_relations_and_count_relation_counts(
    blog_meta: ModelMeta,
) -> None:
    args = {
        "select": {
            "title": True,
            "author": False,
            "_count": {"select": {"comments": True}},
        }
    }

    assert get_read_models("Post", args, blog_meta) == ["Post", "Comment"]
    assert get_read_models("Post", None, blog_meta) == ["Post"]
