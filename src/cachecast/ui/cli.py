# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from cachecast.adapters.model_meta import load_model_meta
from cachecast.app import load_project_meta
from cachecast.config import configure_logging, get_projection_config
from cachecast.domain.enums import QueryOperation, WriteAction
from cachecast.domain.mutated_models import get_mutated_models
from cachecast.domain.mutator import UNCHANGED, apply_mutation

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from cachecast.domain.model_meta import ModelMeta

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Project writes onto cached query results")
    parser.add_argument(
        "--meta",
        type=Path,
        help="Compiled model metadata JSON (defaults to $CACHECAST_MODEL_META)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    project = subparsers.add_parser("project", help="Optimistically apply a mutation to a result")
    project.add_argument("--query-model", required=True, help="Model of the cached query")
    project.add_argument(
        "--query-op",
        required=True,
        choices=[op.value for op in QueryOperation],
        help="Operation of the cached query",
    )
    project.add_argument(
        "--query-data",
        type=Path,
        required=True,
        help="JSON file holding the cached query result",
    )
    _add_mutation_arguments(project)
    project.add_argument(
        "--log-changes",
        action="store_true",
        default=None,
        help="Log every optimistic change (defaults to $CACHECAST_LOG_CHANGES)",
    )

    mutated = subparsers.add_parser("mutated-models", help="List models touched by a mutation")
    _add_mutation_arguments(mutated)

    return parser.parse_args(list(argv))


def _add_mutation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--mutation-model", required=True, help="Model the write targets")
    parser.add_argument(
        "--mutation-op",
        required=True,
        choices=[action.value for action in WriteAction],
        help="Top-level write operation",
    )
    parser.add_argument(
        "--mutation-args",
        type=Path,
        required=True,
        help="JSON file holding the write arguments",
    )


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc.msg}") from exc


def _load_meta(args: argparse.Namespace) -> ModelMeta:
    if args.meta is not None:
        return load_model_meta(args.meta)
    return load_project_meta()


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, default=str))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    config = get_projection_config()
    configure_logging(level=config.log_level)
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        query_data = None
        if parsed_args.command == "project":
            query_data = _read_json(parsed_args.query_data)
        mutation_args = _read_json(parsed_args.mutation_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        meta = _load_meta(parsed_args)
        if parsed_args.command == "project":
            log_changes = (
                config.log_changes if parsed_args.log_changes is None else parsed_args.log_changes
            )
            result = apply_mutation(
                parsed_args.query_model,
                parsed_args.query_op,
                query_data,
                parsed_args.mutation_model,
                parsed_args.mutation_op,
                mutation_args,
                meta,
                log_changes,
            )
            if result is UNCHANGED:
                log.info(
                    "No applicable change for %s.%s", parsed_args.query_model, parsed_args.query_op
                )
            else:
                _print_json(result)
        elif parsed_args.command == "mutated-models":
            _print_json(
                get_mutated_models(
                    parsed_args.mutation_model,
                    parsed_args.mutation_op,
                    mutation_args,
                    meta,
                )
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error during projection")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
