from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from cachecast.ui import cli

if TYPE_CHECKING:
    from pathlib import Path


def _write(tmp_path: Path, name: str, payload: Any) -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CACHECAST_LOG_CHANGES", "CACHECAST_LOG_LEVEL", "CACHECAST_MODEL_META"):
        monkeypatch.delenv(name, raising=False)


def test_project_prints_projected_result(
    tmp_path: Path, blog_meta_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    query_data = _write(tmp_path, "query.json", [{"id": 1, "title": "a"}])
    mutation_args = _write(
        tmp_path, "mutation.json", {"where": {"id": 1}, "data": {"title": "b"}}
    )

    cli.main(
        [
            "--meta",
            str(blog_meta_path),
            "project",
            "--query-model",
            "Post",
            "--query-op",
            "findMany",
            "--query-data",
            str(query_data),
            "--mutation-model",
            "Post",
            "--mutation-op",
            "update",
            "--mutation-args",
            str(mutation_args),
        ]
    )

    output = json.loads(capsys.readouterr().out)
    assert output == [{"id": 1, "title": "b", "$optimistic": True}]


def test_project_without_change_prints_nothing(
    tmp_path: Path,
    blog_meta_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("CACHECAST_MODEL_META", str(blog_meta_path))
    query_data = _write(tmp_path, "query.json", 3)
    mutation_args = _write(tmp_path, "mutation.json", {"where": {"id": 1}})

    cli.main(
        [
            "project",
            "--query-model",
            "Post",
            "--query-op",
            "count",
            "--query-data",
            str(query_data),
            "--mutation-model",
            "Post",
            "--mutation-op",
            "delete",
            "--mutation-args",
            str(mutation_args),
        ]
    )

    assert capsys.readouterr().out == ""


def test_mutated_models_lists_cascade(
    tmp_path: Path, blog_meta_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    mutation_args = _write(tmp_path, "mutation.json", {"where": {"id": "u1"}})

    cli.main(
        [
            "--meta",
            str(blog_meta_path),
            "mutated-models",
            "--mutation-model",
            "User",
            "--mutation-op",
            "delete",
            "--mutation-args",
            str(mutation_args),
        ]
    )

    assert json.loads(capsys.readouterr().out) == ["User", "Post", "Profile", "Comment"]


def test_invalid_json_is_a_validation_error(tmp_path: Path, blog_meta_path: Path) -> None:
    broken = tmp_path / "mutation.json"
    broken.write_text("{", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli.main(
            [
                "--meta",
                str(blog_meta_path),
                "mutated-models",
                "--mutation-model",
                "User",
                "--mutation-op",
                "delete",
                "--mutation-args",
                str(broken),
            ]
        )

    assert exc.value.code == 2


def test_missing_metadata_configuration_is_fatal(tmp_path: Path) -> None:
    mutation_args = _write(tmp_path, "mutation.json", {"where": {"id": "u1"}})

    with pytest.raises(SystemExit) as exc:
        cli.main(
            [
                "mutated-models",
                "--mutation-model",
                "User",
                "--mutation-op",
                "delete",
                "--mutation-args",
                str(mutation_args),
            ]
        )

    assert exc.value.code == 1


def test_unknown_operation_is_rejected_by_argparse(tmp_path: Path) -> None:
    mutation_args = _write(tmp_path, "mutation.json", {})

    with pytest.raises(SystemExit) as exc:
        cli.main(
            [
                "mutated-models",
                "--mutation-model",
                "User",
                "--mutation-op",
                "truncate",
                "--mutation-args",
                str(mutation_args),
            ]
        )

    assert exc.value.code == 2
