"""
Caption text export and re-import.

Operators export captions to a three-column CSV (``platform,date,postText``),
edit them offline and import the file again.  Parsing is strict and stops
at the first problem, because a bad row could wipe existing captions.
Validation matches rows to stored records by ``PLATFORM|date``; rows with
no matching record are reported as skipped rather than rejected.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from postplanner.scheduling.models import (
    DEFAULT_PLATFORM,
    ImportMatch,
    ImportValidation,
    Platform,
    PostRecord,
)

logger = logging.getLogger(__name__)

TEXT_CSV_HEADER = ("platform", "date", "postText")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class CaptionRow:
    platform: Platform
    date: date
    post_text: str
    row_number: int = 0

    @property
    def key(self) -> str:
        return caption_key(self.platform, self.date)


@dataclass(frozen=True)
class CaptionParseResult:
    success: bool
    rows: List[CaptionRow] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class CaptionMatch(ImportMatch):
    """A caption row matched to the record it updates.

    ``key`` is the store key of the record; ``caption_key`` is the
    ``PLATFORM|date`` key of the row.
    """

    platform: Platform = DEFAULT_PLATFORM
    caption_key: str = ""
    old_text: str = ""
    new_text: str = ""


def caption_key(platform: Platform, day: date) -> str:
    """``(INSTAGRAM, 2024-01-15)`` -> ``"IG|2024-01-15"``."""
    return f"{platform.code}|{day.isoformat()}"


def _platforms_of(record: PostRecord) -> Sequence[Platform]:
    # Legacy records carry captions for every platform
    if record.platform is None:
        return (Platform.INSTAGRAM, Platform.FACEBOOK)
    return (record.platform,)


# =============================================================================
# EXPORT
# =============================================================================


def generate_text_csv(records: Iterable[PostRecord]) -> str:
    """Render captions as ``platform,date,postText`` CSV, one row per caption."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TEXT_CSV_HEADER)
    for record in sorted(records, key=lambda r: (r.date, r.key)):
        for platform in _platforms_of(record):
            caption = record.captions.get(platform.value, "")
            if caption:
                writer.writerow([platform.code, record.date.isoformat(), caption])
    return buffer.getvalue().rstrip("\n")


# =============================================================================
# IMPORT
# =============================================================================


def parse_text_csv(content: str) -> CaptionParseResult:
    """
    Parse an edited caption CSV.

    Never raises for malformed content; the first problem found is returned
    in ``error`` and no rows are returned with it.
    """
    if content is None:
        raise ValueError("content is required")
    if content.startswith("\ufeff"):
        content = content[1:]

    table = [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]
    if not table:
        return CaptionParseResult(success=False, error="CSV file is empty")

    header = [cell.strip().lower() for cell in table[0]]
    if header[:3] != [name.lower() for name in TEXT_CSV_HEADER]:
        return CaptionParseResult(
            success=False,
            error=(
                "Invalid header. Expected: platform,date,postText. "
                f"Got: {','.join(table[0])}"
            ),
        )

    rows: List[CaptionRow] = []
    seen = set()
    for index, raw in enumerate(table[1:], start=2):
        if len(raw) < 3:
            return CaptionParseResult(
                success=False,
                error=f"Row {index} has insufficient columns (expected 3, got {len(raw)})",
            )

        code = raw[0].strip().upper()
        raw_date = raw[1].strip()
        post_text = raw[2]

        try:
            platform = Platform.from_code(code)
        except ValueError:
            return CaptionParseResult(
                success=False,
                error=f'Row {index}: Invalid platform "{code}". Must be "IG" or "FB".',
            )

        day: Optional[date] = None
        if _ISO_DATE.match(raw_date):
            try:
                day = date.fromisoformat(raw_date)
            except ValueError:
                day = None
        if day is None:
            return CaptionParseResult(
                success=False,
                error=f'Row {index}: Invalid date format "{raw_date}". Must be YYYY-MM-DD.',
            )

        if not post_text.strip():
            return CaptionParseResult(
                success=False,
                error=f"Row {index}: postText cannot be empty. This would wipe existing content.",
            )

        row = CaptionRow(platform=platform, date=day, post_text=post_text, row_number=index)
        if row.key in seen:
            return CaptionParseResult(
                success=False,
                error=(
                    f"Duplicate key found: {code} on {raw_date}. "
                    "Each platform+date combination must be unique."
                ),
            )
        seen.add(row.key)
        rows.append(row)

    return CaptionParseResult(success=True, rows=rows)


def validate_caption_import(
    rows: Sequence[CaptionRow], records: Iterable[PostRecord]
) -> ImportValidation:
    """Match parsed caption rows to stored records.

    A platform-keyed record wins over a legacy bare-date record on the same
    date, whatever order the records arrive in.
    """
    by_key: Dict[str, PostRecord] = {}
    for record in records:
        for platform in _platforms_of(record):
            key = caption_key(platform, record.date)
            current = by_key.get(key)
            if record.platform is None and current is not None and current.platform is not None:
                continue
            by_key[key] = record

    matched: List[ImportMatch] = []
    skipped: List[str] = []
    for row in rows:
        record = by_key.get(row.key)
        if record is None:
            skipped.append(row.key)
            continue
        matched.append(
            CaptionMatch(
                row_number=row.row_number,
                date=row.date,
                is_manual_date=True,
                key=record.key,
                platform=row.platform,
                caption_key=row.key,
                old_text=record.captions.get(row.platform.value, ""),
                new_text=row.post_text,
            )
        )

    if skipped:
        logger.info("[IMPORT] %d caption rows matched no post", len(skipped))
    return ImportValidation(valid=True, matched=matched, skipped=skipped)


def apply_caption_import(
    validation: ImportValidation, records: Iterable[PostRecord]
) -> List[PostRecord]:
    """
    Return updated copies of the records touched by *validation*.

    Each touched record gets the new caption text and ``status="edited"``.
    Untouched records are not returned.
    """
    by_key = {record.key: record for record in records}
    updated: Dict[str, PostRecord] = {}
    for match in validation.matched:
        if not isinstance(match, CaptionMatch):
            continue
        record = updated.get(match.key) or by_key.get(match.key)
        if record is None:
            continue
        captions = dict(record.captions)
        captions[match.platform.value] = match.new_text
        updated[match.key] = replace(record, captions=captions, status="edited")
    return [updated[key] for key in sorted(updated)]


__all__ = [
    "TEXT_CSV_HEADER",
    "CaptionRow",
    "CaptionParseResult",
    "CaptionMatch",
    "caption_key",
    "generate_text_csv",
    "parse_text_csv",
    "validate_caption_import",
    "apply_caption_import",
]
