from __future__ import annotations

from typing import TYPE_CHECKING, Any

from cachecast.domain.clone import clone
from cachecast.domain.visitors import ModelDataVisitor

if TYPE_CHECKING:
    from cachecast.domain.model_meta import ModelMeta


def test_visit_reports_scalar_projection_once(blog_meta: ModelMeta) -> None:
    instance = {
        "id": 7,
        "title": "Hello",
        "author": {"id": "u1", "email": "a@example.com"},
        "comments": [{"id": 1, "content": "nice"}],
        "_count": {"comments": 1},
    }
    before = clone(instance)
    calls: list[tuple[str, dict[str, Any], dict[str, Any]]] = []

    ModelDataVisitor(blog_meta).visit(
        "Post", instance, lambda model, inst, data: calls.append((model, inst, data))
    )

    assert len(calls) == 1
    model, inst, data = calls[0]
    assert model == "Post"
    assert inst is instance
    assert data == {"id": 7, "title": "Hello", "_count": {"comments": 1}}
    assert instance == before


def test_visit_ignores_non_records(blog_meta: ModelMeta) -> None:
    calls: list[object] = []
    visitor = ModelDataVisitor(blog_meta)

    visitor.visit("Post", None, lambda *args: calls.append(args))
    visitor.visit("Post", [{"id": 1}], lambda *args: calls.append(args))

    assert calls == []
    assert visitor.scalar_data("Post", "nope") is None


def test_scalar_data_for_unknown_model_keeps_every_key(blog_meta: ModelMeta) -> None:
    visitor = ModelDataVisitor(blog_meta)

    assert visitor.scalar_data("Ghost", {"id": 1, "posts": []}) == {"id": 1, "posts": []}
