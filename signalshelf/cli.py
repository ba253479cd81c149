"""
CLI interface for the signal shelf.

Usage:
    signalshelf add https://example.com/post "Some post" --tag reading-list
    signalshelf list --status inbox
    signalshelf update <id> --status done
"""

import json
import os
import shutil
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import Shelf
from .config import get_store_dir
from .errors import PersistenceError, log_exception
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import SORT_NEWEST, Signal, TagCount, local_date


# Quiet by default. Set SIGNALSHELF_VERBOSE=1 to enable debug mode via environment
if os.environ.get("SIGNALSHELF_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"signalshelf {version('signalshelf')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="signalshelf",
    help="Save links for later: tag them, track them, find them again.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _output_width() -> int:
    """Terminal width for title truncation. Use generous default when not a TTY."""
    if not sys.stdout.isatty():
        return 200
    return shutil.get_terminal_size((120, 24)).columns


def _format_signal_line(signal: Signal) -> str:
    """One line: id, status, date, title, [tags]."""
    pin = "*" if signal.pinned else " "
    prefix = f"{signal.id} {pin}{signal.status:<7}  {local_date(signal.created_at)}  "
    tags = f"  [{', '.join(signal.tags)}]" if signal.tags else ""
    max_title = max(20, _output_width() - len(prefix) - len(tags))
    title = signal.title
    if len(title) > max_title:
        title = title[:max_title - 3].rsplit(" ", 1)[0] + "..."
    return f"{prefix}{title}{tags}"


def _format_signal_full(signal: Signal) -> str:
    """All fields, one per line, for `get`."""
    lines = [
        f"id: {signal.id}",
        f"url: {signal.url}",
        f"title: {signal.title}",
        f"status: {signal.status}",
        f"tags: {', '.join(signal.tags)}",
        f"created: {signal.created_at}",
        f"updated: {signal.updated_at}",
    ]
    if signal.pinned:
        lines.append("pinned: true")
    if signal.notes:
        lines.append("")
        lines.append(signal.notes)
    return "\n".join(lines)


def render_signals(signals: list[Signal], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([s.to_dict() for s in signals], indent=2, ensure_ascii=False)
    return "\n".join(_format_signal_line(s) for s in signals)


def render_signal(signal: Signal, as_json: bool = False) -> str:
    if as_json:
        return json.dumps(signal.to_dict(), indent=2, ensure_ascii=False)
    return _format_signal_full(signal)


def render_tags(tags: list[TagCount], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([t.to_dict() for t in tags], indent=2)
    if not tags:
        return ""
    width = max(len(t.name) for t in tags)
    return "\n".join(f"{t.name:<{width}}  {t.count}" for t in tags)


def _echo_errors(errors: dict[str, str]) -> None:
    for name, message in errors.items():
        typer.echo(f"{name}: {message}", err=True)


def _not_found(id: str):
    typer.echo(f"Not found: {id}", err=True)
    raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="SIGNALSHELF_STORE_PATH",
        help="Path to the store directory (default: ~/.signalshelf/)"
    )
]

TagOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--tag", "-t",
        help="Tag (repeatable)"
    )
]

StatusOption = Annotated[
    Optional[str],
    typer.Option(
        "--status",
        help="inbox, reading, or done"
    )
]


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="SIGNALSHELF_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Save links for later: tag them, track them, find them again."""


def _get_shelf(store: Optional[Path]) -> Shelf:
    """Open the shelf, handling errors gracefully."""
    import atexit

    actual_store = store if store is not None else _get_store_override()
    try:
        shelf = Shelf(actual_store)
    except (OSError, ValueError) as e:
        log_exception(e, "open", get_store_dir(actual_store))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(shelf.close)
    return shelf


def _run(shelf: Shelf, context: str, fn, *args, **kwargs):
    """Call a shelf operation, turning persistence failures into exit 1."""
    try:
        return fn(*args, **kwargs)
    except PersistenceError as e:
        log_path = log_exception(e, context, shelf.config.path)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command("list")
def list_cmd(
    query: Annotated[Optional[str], typer.Argument(
        help="Text to find in url, title, notes, or tags")] = None,
    tag: Annotated[Optional[str], typer.Option(
        "--tag", "-t", help="Only signals with this tag")] = None,
    status: StatusOption = None,
    sort: Annotated[str, typer.Option(
        "--sort", help="newest or oldest")] = SORT_NEWEST,
    pinned_first: Annotated[bool, typer.Option(
        "--pinned-first", help="Show pinned signals first")] = False,
    store: StoreOption = None,
):
    """List saved signals, newest first."""
    shelf = _get_shelf(store)
    signals = _run(shelf, "list", shelf.list_signals, query, tag, status, sort,
                   pinned_first=pinned_first)
    output = render_signals(signals, as_json=_get_json_output())
    if output:
        typer.echo(output)


@app.command()
def get(
    id: Annotated[str, typer.Argument(help="Signal ID")],
    store: StoreOption = None,
):
    """Show one signal."""
    shelf = _get_shelf(store)
    signal = _run(shelf, "get", shelf.get_signal, id)
    if signal is None:
        _not_found(id)
    typer.echo(render_signal(signal, as_json=_get_json_output()))


@app.command()
def add(
    url: Annotated[str, typer.Argument(help="http:// or https:// URL")],
    title: Annotated[str, typer.Argument(help="Title (2-120 characters)")],
    notes: Annotated[Optional[str], typer.Option(
        "--notes", "-n", help="Free-text notes")] = None,
    tag: TagOption = None,
    status: StatusOption = None,
    store: StoreOption = None,
):
    """Save a new signal."""
    shelf = _get_shelf(store)
    payload = {"url": url, "title": title, "notes": notes, "tags": tag or [], "status": status}
    signal, errors = _run(shelf, "add", shelf.create_signal, payload)
    if errors:
        _echo_errors(errors)
        raise typer.Exit(1)
    typer.echo(render_signal(signal, as_json=True) if _get_json_output() else signal.id)


@app.command()
def update(
    id: Annotated[str, typer.Argument(help="Signal ID")],
    url: Annotated[Optional[str], typer.Option("--url", help="New URL")] = None,
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", "-n", help="New notes")] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t", help="Replace tags (repeatable)")] = None,
    clear_tags: Annotated[bool, typer.Option(
        "--clear-tags", help="Remove all tags")] = False,
    status: StatusOption = None,
    store: StoreOption = None,
):
    """Change fields of a signal. Only the given options change."""
    shelf = _get_shelf(store)
    patch: dict = {}
    for key, value in (("url", url), ("title", title), ("notes", notes), ("status", status)):
        if value is not None:
            patch[key] = value
    if clear_tags:
        patch["tags"] = []
    elif tag:
        patch["tags"] = tag

    signal, errors = _run(shelf, "update", shelf.patch_signal, id, patch)
    if errors:
        _echo_errors(errors)
        raise typer.Exit(1)
    if signal is None:
        _not_found(id)
    typer.echo(render_signal(signal, as_json=_get_json_output()))


@app.command()
def delete(
    id: Annotated[str, typer.Argument(help="Signal ID")],
    store: StoreOption = None,
):
    """Delete a signal."""
    shelf = _get_shelf(store)
    if not _run(shelf, "delete", shelf.delete_signal, id):
        _not_found(id)
    if _get_json_output():
        typer.echo(json.dumps({"deleted": True}))
    else:
        typer.echo(f"Deleted: {id}")


@app.command()
def tags(
    store: StoreOption = None,
):
    """List tags with usage counts."""
    shelf = _get_shelf(store)
    output = render_tags(_run(shelf, "tags", shelf.list_tags), as_json=_get_json_output())
    if output:
        typer.echo(output)


@app.command()
def pin(
    id: Annotated[str, typer.Argument(help="Signal ID")],
    store: StoreOption = None,
):
    """Pin or unpin a signal."""
    shelf = _get_shelf(store)
    signal = _run(shelf, "pin", shelf.toggle_pinned, id)
    if signal is None:
        _not_found(id)
    if _get_json_output():
        typer.echo(render_signal(signal, as_json=True))
    else:
        typer.echo(f"{'Pinned' if signal.pinned else 'Unpinned'}: {id}")


@app.command()
def reset(
    yes: Annotated[bool, typer.Option(
        "--yes", "-y", help="Don't ask for confirmation")] = False,
    store: StoreOption = None,
):
    """Remove all signals (the examples come back on next use)."""
    if not yes:
        typer.confirm("Remove all signals?", abort=True)
    shelf = _get_shelf(store)
    _run(shelf, "reset", shelf.reset)
    typer.echo("Store reset")


@app.command()
def health(
    store: StoreOption = None,
):
    """Report that the store opens."""
    shelf = _get_shelf(store)
    typer.echo(json.dumps(shelf.health()))


@app.command()
def mcp(
    store: StoreOption = None,
):
    """Run the MCP stdio server."""
    actual_store = store if store is not None else _get_store_override()
    if actual_store is not None:
        os.environ["SIGNALSHELF_STORE_PATH"] = str(actual_store)
    from .mcp import main as mcp_main
    mcp_main()


def main():
    try:
        app()
    except KeyboardInterrupt:
        raise SystemExit(130)


if __name__ == "__main__":
    main()
