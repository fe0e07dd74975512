"""Command line entry point for markpad."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, TextIO

from .editor.controller import EditorController
from .editor.document_model import DEFAULT_DOCUMENT_NAME
from .editor.history import HistoryPolicy
from .editor.workspace import SessionRegistry
from .errors import MarkpadError
from .services.importers import FileCandidate
from .services.memory_client import MemoryClient
from .services.persistence import JsonFileStore, PersistenceScheduler
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure structured logging for the command line tools."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, console=debug, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load()
    except Exception as exc:  # pragma: no cover - unreadable settings file
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def build_controller(
    settings: Settings,
    *,
    notify: Any | None = None,
    memory_client: MemoryClient | None = None,
) -> EditorController:
    """Assemble a controller from settings: history cap, store and remote client."""

    policy = HistoryPolicy(max_entries=settings.history_max_entries)
    scheduler = PersistenceScheduler(
        JsonFileStore(settings.storage_path), delay=settings.autosave_delay
    )
    client = memory_client
    if client is None and settings.memory_api_key:
        client = MemoryClient(settings.memory_config())
    return EditorController(
        registry=SessionRegistry(history_policy=policy),
        scheduler=scheduler,
        memory_client=client,
        notify=notify or _print_notification,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``markpad`` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = _env_flag("MARKPAD_DEBUG")
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("MARKPAD_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    settings = load_settings(store=store)
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.dump_settings:
        _dump_settings(settings, store)
        return 0
    if args.command is None:
        parser.print_help()
        return 0

    controller = build_controller(settings)
    try:
        return args.handler(controller, args)
    except MarkpadError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _cmd_restore(controller: EditorController, args: argparse.Namespace) -> int:
    if controller.restore() is None:
        print("No persisted draft found.", file=sys.stderr)
        return 1
    sys.stdout.write(controller.active_session.text)
    return 0


def _cmd_export(controller: EditorController, args: argparse.Namespace) -> int:
    candidates = _read_candidates(args.sources)
    if candidates is None:
        return 2
    result = controller.import_files(candidates)
    for session_id in result.accepted:
        controller.activate(session_id)
        payload = controller.save()
        if payload is not None:
            target = payload.write_to(args.out)
            print(target)
    return 0 if not result.rejected else 2


def _cmd_search(controller: EditorController, args: argparse.Namespace) -> int:
    if args.append:
        candidates = _read_candidates([args.append])
        if candidates is None:
            return 2
        result = controller.import_files(candidates)
        if not result.accepted:
            return 2
    elif controller.restore() is None:
        controller.registry.restore(DEFAULT_DOCUMENT_NAME, "")
    count = asyncio.run(controller.search_and_append(args.query))
    _LOGGER.info("Search for %r returned %d hits", args.query, count)
    if args.append:
        payload = controller.save()
        if payload is not None:
            payload.write_to(Path(args.append).parent)
        return 0
    controller.persist_now()
    sys.stdout.write(controller.active_session.text)
    return 0


def _cmd_upload(controller: EditorController, args: argparse.Namespace) -> int:
    candidates = _read_candidates([args.path])
    if candidates is None:
        return 2
    result = controller.import_files(candidates)
    if not result.accepted:
        return 2
    document_id = asyncio.run(controller.upload())
    print(document_id or "")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markpad",
        description="Inspect drafts, export documents and talk to the memory service.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.markpad/settings.json path.",
    )
    subparsers = parser.add_subparsers(dest="command")

    restore = subparsers.add_parser("restore", help="Print the persisted draft.")
    restore.set_defaults(handler=_cmd_restore)

    export = subparsers.add_parser("export", help="Import files and export them as Markdown.")
    export.add_argument("sources", nargs="+", metavar="FILE")
    export.add_argument("--out", default=".", metavar="DIR")
    export.set_defaults(handler=_cmd_export)

    search = subparsers.add_parser("search", help="Search memories and append the results.")
    search.add_argument("query")
    search.add_argument("--append", metavar="FILE", help="Markdown file to append results to.")
    search.set_defaults(handler=_cmd_search)

    upload = subparsers.add_parser("upload", help="Upload a document to the memory service.")
    upload.add_argument("path", metavar="FILE")
    upload.set_defaults(handler=_cmd_upload)
    return parser


def _read_candidates(paths: Sequence[str]) -> list[FileCandidate] | None:
    candidates: list[FileCandidate] = []
    for path in paths:
        try:
            candidates.append(FileCandidate.from_path(path))
        except OSError as exc:
            _LOGGER.warning("Unable to read %s: %s", path, exc)
            print(f"error: cannot read {path}: {exc.strerror or exc}", file=sys.stderr)
            return None
    return candidates


def _print_notification(title: str, message: str, level: str) -> None:
    print(f"[{level}] {title}: {message}", file=sys.stderr)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _dump_settings(settings: Settings, store: SettingsStore, *, stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    payload: dict[str, Any] = asdict(settings)
    payload["memory_api_key"] = redact_secret(settings.memory_api_key)
    metadata: Mapping[str, Any] = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "log_path": str(logging_utils.get_log_path() or ""),
        "environment_variables": sorted(name for name in os.environ if name.startswith("MARKPAD_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
