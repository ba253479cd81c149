"""
Data types for the signal shelf.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


STATUS_INBOX = "inbox"
STATUS_READING = "reading"
STATUS_DONE = "done"
STATUSES = (STATUS_INBOX, STATUS_READING, STATUS_DONE)

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORTS = (SORT_NEWEST, SORT_OLDEST)

MAX_TAGS = 12
ID_LENGTH = 12


def utc_now() -> str:
    """Current UTC timestamp in canonical format: YYYY-MM-DDTHH:MM:SS.mmmZ.

    This is the single source of truth for timestamp formatting.
    """
    return format_utc(datetime.now(timezone.utc))


def format_utc(dt: datetime) -> str:
    """Format an aware datetime in canonical form."""
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Handles the canonical format as well as values without fractions
    or with '+00:00' suffixes. Naive values are taken as UTC.
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def local_date(utc_iso: str) -> str:
    """Convert a UTC ISO timestamp to a local-timezone date string (YYYY-MM-DD).

    Used for short-form display dates. Returns the input prefix for
    values that don't parse.
    """
    if not utc_iso:
        return ""
    try:
        return parse_utc_timestamp(utc_iso).astimezone().strftime("%Y-%m-%d")
    except (ValueError, OverflowError):
        return utc_iso[:10]


def make_id(taken: Optional[Iterable[str]] = None) -> str:
    """Generate a short opaque id, avoiding any in ``taken``."""
    taken = set(taken or ())
    while True:
        candidate = uuid.uuid4().hex[:ID_LENGTH]
        if candidate not in taken:
            return candidate


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """
    Normalize a tag list: trim, lowercase, drop empties, dedupe.

    First-seen order is preserved and at most MAX_TAGS are kept;
    anything after the cap is silently dropped.
    """
    normalized: list[str] = []
    if not tags:
        return normalized
    seen: set[str] = set()
    for tag in tags:
        value = str(tag).strip().lower()
        if not value or value in seen:
            continue
        seen.add(value)
        normalized.append(value)
        if len(normalized) >= MAX_TAGS:
            break
    return normalized


@dataclass
class Signal:
    """
    A saved link.

    Attribute names are snake_case; the persisted JSON uses the
    camelCase keys ``createdAt`` and ``updatedAt``. ``pinned`` is an
    optional extension and is only written when set.
    """
    id: str
    url: str
    title: str
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    status: str = STATUS_INBOX
    created_at: str = ""
    updated_at: str = ""
    pinned: bool = False

    @property
    def created(self) -> datetime:
        return parse_utc_timestamp(self.created_at)

    @property
    def updated(self) -> datetime:
        return parse_utc_timestamp(self.updated_at)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "notes": self.notes,
            "tags": list(self.tags),
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.pinned:
            data["pinned"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Signal":
        """Build a Signal from its persisted form, filling defaults."""
        created_at = data.get("createdAt") or ""
        return cls(
            id=str(data["id"]),
            url=data.get("url", ""),
            title=data.get("title", ""),
            notes=data.get("notes") or "",
            tags=list(data.get("tags") or []),
            status=data.get("status") or STATUS_INBOX,
            created_at=created_at,
            updated_at=data.get("updatedAt") or created_at,
            pinned=bool(data.get("pinned", False)),
        )


@dataclass(frozen=True)
class TagCount:
    """A distinct tag and the number of signals carrying it."""
    name: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count}


@dataclass
class SignalQuery:
    """Filters for listing signals. Empty values mean "no filter"."""
    q: Optional[str] = None
    tag: Optional[str] = None
    status: Optional[str] = None
    sort: str = SORT_NEWEST
    pinned_first: bool = False

    def matches(self, signal: Signal) -> bool:
        query = (self.q or "").strip().lower()
        if query:
            haystack = " ".join([signal.url, signal.title, signal.notes]).lower()
            if query not in haystack and not any(query in t for t in signal.tags):
                return False

        tag = (self.tag or "").strip().lower()
        if tag and tag not in signal.tags:
            return False

        if self.status and signal.status != self.status:
            return False
        return True
