"""Parse the published content sheet (CSV export) into Item objects.

Expected header row:
  id, code, text_target, text_native, audio_target_url, audio_native_url,
  category, status

Rows marked ``draft`` or ``disabled`` are dropped. Unknown categories fall
back to the default bucket instead of failing the row.
"""
from __future__ import annotations

import csv
import io
import logging

from phrase_trainer.categories import normalize_category
from phrase_trainer.errors import MalformedSourceError
from phrase_trainer.models import AudioRefs, Item

_log = logging.getLogger("phrase_trainer.content")

REQUIRED_COLUMNS = ("id", "code", "text_target", "text_native")
UNPUBLISHED = {"draft", "disabled"}


def _cell(row: dict, key: str) -> str:
    return (row.get(key) or "").strip()


def is_published(status: str | None) -> bool:
    return (status or "").strip().lower() not in UNPUBLISHED


def transform_row(row: dict) -> Item | None:
    """Validate one sheet row; None if it should not be served."""
    if not is_published(row.get("status")):
        return None
    item_id = _cell(row, "id")
    code = _cell(row, "code")
    if not item_id or not code:
        _log.warning("Dropping row without id/code: %r", row)
        return None
    return Item(
        id=item_id,
        code=code,
        text_target=_cell(row, "text_target"),
        text_native=_cell(row, "text_native"),
        audio=AudioRefs(
            target=_cell(row, "audio_target_url"),
            native=_cell(row, "audio_native_url"),
        ),
        category=normalize_category(row.get("category")),
        publish_state=_cell(row, "status").lower() or "published",
    )


def parse_sheet_csv(text: str) -> list[Item]:
    if not text or not text.strip():
        raise MalformedSourceError("Content source returned an empty body")

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header = [h.strip().lower() for h in (reader.fieldnames or [])]
    missing = [c for c in REQUIRED_COLUMNS if c not in header]
    if missing:
        raise MalformedSourceError(f"Content source is missing columns: {', '.join(missing)}")
    reader.fieldnames = header

    items: list[Item] = []
    for row in reader:
        # Skip blank lines
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        item = transform_row(row)
        if item:
            items.append(item)

    if not items:
        raise MalformedSourceError("Content source has no published rows")
    return items
