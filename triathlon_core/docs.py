"""Helpers around stored documents: keys, index summaries, publish snapshots.

Storage itself (fetch/replace draft, append-only publish, active-id pointer) lives
outside the core; these pure helpers shape what it stores and lists.
"""
from __future__ import annotations

import json
import logging
import re
from copy import deepcopy
from dataclasses import dataclass
from typing import Iterable, Literal, Mapping

from .document import utc_now_iso
from .types import AdminIdentity, CompetitionDocument

logger = logging.getLogger(__name__)

DocKind = Literal["draft", "published"]

DRAFT_PREFIX = "bstri:scoring:draft:"
PUBLISHED_PREFIX = "bstri:scoring:published:"

_EVENT_ID_RE = re.compile(r"^triathlon-(\d{4})$")


@dataclass(frozen=True)
class DocumentSummary:
    event_id: str
    year: int
    kind: DocKind
    updated_at: str | None


def parse_year_from_event_id(event_id: str) -> int | None:
    """'triathlon-2026' -> 2026; anything else -> None."""
    m = _EVENT_ID_RE.match(event_id.strip())
    return int(m.group(1)) if m else None


def normalize_active_event_id(value: str | None) -> str | None:
    """Active-competition pointer value; blank clears it."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def draft_key(event_id: str) -> str:
    return f"{DRAFT_PREFIX}{event_id}"


def published_key(event_id: str) -> str:
    return f"{PUBLISHED_PREFIX}{event_id}"


def summarize_stored_document(key: str, raw: str) -> DocumentSummary | None:
    """Light index metadata for one stored entry; None for foreign keys or bad JSON."""
    if key.startswith(DRAFT_PREFIX):
        kind: DocKind = "draft"
        event_id = key[len(DRAFT_PREFIX):]
    elif key.startswith(PUBLISHED_PREFIX):
        kind = "published"
        event_id = key[len(PUBLISHED_PREFIX):]
    else:
        return None
    if not event_id:
        return None

    try:
        doc = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug(f"Skipping unreadable stored document {key!r}")
        return None
    if not isinstance(doc, dict):
        return None

    year = doc.get("year")
    if isinstance(year, bool) or not isinstance(year, int):
        return None
    updated_at = doc.get("updatedAt") if isinstance(doc.get("updatedAt"), str) else None
    return DocumentSummary(event_id=event_id, year=year, kind=kind, updated_at=updated_at)


def list_stored_documents(
    entries: Iterable[tuple[str, str]] | Mapping[str, str],
    year: int | None = None,
) -> list[DocumentSummary]:
    """
    Summaries of stored documents, newest first.

    Order: year desc, updatedAt desc, event id, kind.
    """
    items = entries.items() if isinstance(entries, Mapping) else entries
    out: list[DocumentSummary] = []
    for key, raw in items:
        summary = summarize_stored_document(key, raw)
        if summary is None:
            continue
        if year is not None and summary.year != year:
            continue
        out.append(summary)

    # Two stable passes: ascending tie-breakers first, then the descending keys.
    out.sort(key=lambda s: (s.event_id, s.kind))
    out.sort(key=lambda s: (s.year, s.updated_at or ""), reverse=True)
    return out


def publish_snapshot(
    draft: CompetitionDocument,
    admin: AdminIdentity | None,
    now: str | None = None,
) -> CompetitionDocument:
    """Immutable published copy of a draft, stamped with time and publisher."""
    now = now or utc_now_iso()
    published = deepcopy(draft)
    published.update(
        {
            "status": "published",
            "updatedAt": now,
            "updatedBy": admin,
            "publishedAt": now,
            "publishedBy": admin,
        }
    )
    logger.info(f"Published snapshot of {draft.get('eventId')!r} at {now}")
    return published
