"""Command-line entry point for applying line edits to files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.document_model import EditConflictError
from .editor.editing import LineEditOrderError
from .editor.patches import parse_line_edits
from .remotes.console import ConsoleHost
from .remotes.github import RemoteSourceError
from .remotes.host import PickerHost
from .remotes.models import PickRemoteSourceResult
from .remotes.registry import RemoteProviderRegistry
from .remotes.session import pick_with_settings, remember_source
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import file_io
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, log_dir: str | None = None, force: bool = False) -> None:
    """Configure structured logging for the command-line tools."""

    log_path = logging_utils.setup_logging(debug, log_dir=log_dir, force=force)
    _LOGGER.debug("Logging configured (file=%s)", log_path)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `linesplice` console script."""

    args = _parse_cli_args(argv)

    settings_path = args.settings_path or os.environ.get("LINESPLICE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    configure_logging(args.debug or settings.debug_logging, log_dir=settings.log_dir, force=True)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if args.command == "apply":
        return run_apply(
            Path(args.file),
            Path(args.edits),
            output=Path(args.output) if args.output else None,
            dry_run=args.dry_run,
            settings=settings,
        )

    if args.command == "remote":
        return run_remote(settings, settings_store, branch=args.branch, provider_name=args.provider)

    print("No command given; see --help.", file=sys.stderr)
    return 2


def run_apply(
    path: Path,
    edits_path: Path,
    *,
    output: Path | None = None,
    dry_run: bool = False,
    settings: Settings | None = None,
    stream: TextIO | None = None,
) -> int:
    """Apply the JSON line edits in ``edits_path`` to ``path``."""

    settings = settings or Settings()
    try:
        payload = json.loads(file_io.read_text(edits_path))
        edits = parse_line_edits(payload)
    except (OSError, ValueError, TypeError) as exc:
        print(f"Invalid edits file {edits_path}: {exc}", file=sys.stderr)
        return 2

    try:
        document = file_io.load_document(path, default_eol=settings.default_eol)
    except (OSError, UnicodeError) as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return 2

    try:
        edits.apply(document)
    except (LineEditOrderError, EditConflictError) as exc:
        print(f"Invalid edits file {edits_path}: {exc}", file=sys.stderr)
        return 2

    if dry_run:
        destination = stream or sys.stdout
        destination.write(document.get_value())
        return 0

    target = output or path
    if target == path and file_io.has_changed_on_disk(document):
        print(f"{path} changed on disk while editing; not overwriting.", file=sys.stderr)
        return 1
    file_io.save_document(document, target)
    _LOGGER.info("Applied %d line edit(s) to %s (version %d)", len(edits), target, document.version_id)
    return 0


def run_remote(
    settings: Settings,
    store: SettingsStore,
    *,
    branch: bool = False,
    provider_name: str | None = None,
    host: PickerHost | None = None,
    registry: RemoteProviderRegistry | None = None,
    stream: TextIO | None = None,
) -> int:
    """Let the user pick a remote repository and print ``URL [BRANCH]``.

    The chosen URL is remembered in the settings file as a recent source.
    """

    active_host = host or ConsoleHost(settle_seconds=settings.remote_query_debounce_seconds + 0.05)
    try:
        result = asyncio.run(
            pick_with_settings(settings, active_host, registry=registry, branch=branch, provider_name=provider_name)
        )
    except RemoteSourceError as exc:
        print(f"Remote source lookup failed: {exc}", file=sys.stderr)
        return 2

    if result is None:
        print("No repository selected.", file=sys.stderr)
        return 1
    if isinstance(result, PickRemoteSourceResult):
        url, chosen_branch = result.url, result.branch
    else:
        url, chosen_branch = result, None

    destination = stream or sys.stdout
    destination.write(f"{url} {chosen_branch}\n" if chosen_branch else f"{url}\n")
    try:
        remember_source(store, url)
    except OSError as exc:
        _LOGGER.warning("Could not record %s as a recent source: %s", url, exc)
    return 0


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linesplice",
        description="Apply whole-line edits to text files and pick remote repositories.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.linesplice/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command")
    apply_parser = subparsers.add_parser("apply", help="Apply a JSON list of line edits to FILE.")
    apply_parser.add_argument("file", metavar="FILE")
    apply_parser.add_argument("--edits", required=True, metavar="EDITS.json")
    apply_parser.add_argument("--output", metavar="PATH", help="Write the result here instead of FILE.")
    apply_parser.add_argument("--dry-run", action="store_true", help="Print the result instead of writing it.")

    remote_parser = subparsers.add_parser("remote", help="Pick a remote repository URL (and optionally a branch).")
    remote_parser.add_argument("--branch", action="store_true", help="Also pick a branch of the chosen repository.")
    remote_parser.add_argument("--provider", metavar="NAME", help="Open provider NAME directly, skipping the provider list.")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is type(None) or normalized.lower() in {"none", "null"}:
        return None
    if is_dataclass(target):
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dataclass overrides must be valid JSON") from exc
        return target(**payload)
    if target is list:
        try:
            return json.loads(normalized or "[]")
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
    if target is dict:
        try:
            return json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["github_token"] = redact_secret(payload.get("github_token") or "")
    metadata = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("LINESPLICE_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
