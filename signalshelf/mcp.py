"""
MCP stdio server for signalshelf: saved-link tools for AI agents.

Exposes Shelf operations as MCP tools so local agents can save, find,
and triage links without HTTP infrastructure.

Usage:
    signalshelf mcp

All Shelf calls go through a single asyncio.Lock; the store itself
serializes operations across threads.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .api import Shelf
from .cli import render_signal, render_signals, render_tags
from .errors import PersistenceError

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "signalshelf",
    instructions=(
        "Save links for later. Each signal has a URL, title, notes, tags, "
        "and a status (inbox, reading, done). List and filter them, update "
        "status as you read, and delete what is no longer useful."
    ),
)

_shelf: Optional[Shelf] = None
_lock = asyncio.Lock()


def _get_shelf() -> Shelf:
    """Lazy-init Shelf (respects SIGNALSHELF_STORE_PATH env).

    Must be called inside ``async with _lock``.
    """
    global _shelf
    if _shelf is None:
        store_path = os.environ.get("SIGNALSHELF_STORE_PATH")
        _shelf = Shelf(Path(store_path) if store_path else None)
    return _shelf


def _format_errors(errors: dict[str, str]) -> str:
    return "Error: " + "; ".join(f"{k}: {v}" for k, v in errors.items())


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_WRITE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "List saved links. Optionally filter by free text (matches url, title, "
        "notes, or tags), exact tag, or status; sort newest or oldest first."
    ),
    annotations=_READ_ONLY,
)
async def shelf_list(
    query: Annotated[Optional[str], Field(
        description="Case-insensitive text to find in url, title, notes, or tags.",
    )] = None,
    tag: Annotated[Optional[str], Field(
        description="Only signals carrying this exact tag.",
    )] = None,
    status: Annotated[Optional[str], Field(
        description="Only signals with this status: inbox, reading, or done.",
    )] = None,
    sort: Annotated[str, Field(
        description="newest (default) or oldest.",
    )] = "newest",
) -> str:
    """List signals."""
    async with _lock:
        try:
            signals = _get_shelf().list_signals(query, tag, status, sort)
        except PersistenceError as e:
            return f"Error: {e}"
    if not signals:
        return "No signals found."
    return render_signals(signals)


@mcp.tool(
    description="Show one saved link with all its fields, as JSON.",
    annotations=_READ_ONLY,
)
async def shelf_get(
    id: Annotated[str, Field(description="Signal ID.")],
) -> str:
    """Get a signal."""
    async with _lock:
        try:
            signal = _get_shelf().get_signal(id)
        except PersistenceError as e:
            return f"Error: {e}"
    if signal is None:
        return f"Not found: {id}"
    return render_signal(signal, as_json=True)


@mcp.tool(
    description="Save a link for later.",
    annotations=_WRITE,
)
async def shelf_add(
    url: Annotated[str, Field(description="http:// or https:// URL.")],
    title: Annotated[str, Field(description="Title, 2-120 characters.")],
    notes: Annotated[Optional[str], Field(description="Free-text notes.")] = None,
    tags: Annotated[Optional[list[str]], Field(
        description='Up to 12 short tags. Example: ["research", "api"]',
    )] = None,
    status: Annotated[Optional[str], Field(
        description="inbox (default), reading, or done.",
    )] = None,
) -> str:
    """Create a signal."""
    payload = {"url": url, "title": title, "notes": notes, "tags": tags, "status": status}
    async with _lock:
        try:
            signal, errors = _get_shelf().create_signal(payload)
        except PersistenceError as e:
            return f"Error: {e}"
    if errors:
        return _format_errors(errors)
    return f"Saved: {signal.id}"


@mcp.tool(
    description=(
        "Change fields of a saved link. Only the given fields change; "
        "tags, when given, replace the existing tags."
    ),
    annotations=_WRITE,
)
async def shelf_update(
    id: Annotated[str, Field(description="Signal ID.")],
    url: Annotated[Optional[str], Field(description="New URL.")] = None,
    title: Annotated[Optional[str], Field(description="New title.")] = None,
    notes: Annotated[Optional[str], Field(description="New notes.")] = None,
    tags: Annotated[Optional[list[str]], Field(description="New tag list.")] = None,
    status: Annotated[Optional[str], Field(description="inbox, reading, or done.")] = None,
) -> str:
    """Update a signal."""
    patch = {
        key: value
        for key, value in (("url", url), ("title", title), ("notes", notes),
                           ("tags", tags), ("status", status))
        if value is not None
    }
    async with _lock:
        try:
            signal, errors = _get_shelf().patch_signal(id, patch)
        except PersistenceError as e:
            return f"Error: {e}"
    if errors:
        return _format_errors(errors)
    if signal is None:
        return f"Not found: {id}"
    return render_signal(signal, as_json=True)


@mcp.tool(
    description="Delete a saved link.",
    annotations=_DESTRUCTIVE,
)
async def shelf_delete(
    id: Annotated[str, Field(description="Signal ID.")],
) -> str:
    """Delete a signal."""
    async with _lock:
        try:
            deleted = _get_shelf().delete_signal(id)
        except PersistenceError as e:
            return f"Error: {e}"
    return f"Deleted: {id}" if deleted else f"Not found: {id}"


@mcp.tool(
    description="List all tags with how many saved links carry each.",
    annotations=_READ_ONLY,
)
async def shelf_tags() -> str:
    """List tags."""
    async with _lock:
        try:
            tags = _get_shelf().list_tags()
        except PersistenceError as e:
            return f"Error: {e}"
    return render_tags(tags) or "No tags."


@mcp.tool(
    description="Pin or unpin a saved link (pinned links can be listed first).",
    annotations=_WRITE,
)
async def shelf_pin(
    id: Annotated[str, Field(description="Signal ID.")],
) -> str:
    """Toggle the pinned flag."""
    async with _lock:
        try:
            signal = _get_shelf().toggle_pinned(id)
        except PersistenceError as e:
            return f"Error: {e}"
    if signal is None:
        return f"Not found: {id}"
    return json.dumps({"id": signal.id, "pinned": signal.pinned})


def main():
    """Run the MCP stdio server."""
    import signal
    # The stdio reader shields blocking reads from cancellation; exit hard on Ctrl+C.
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
