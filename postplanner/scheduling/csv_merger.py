"""
Bulk import of post content into a generated plan.

Three steps, all side-effect free:

1. ``parse_rows`` turns raw table rows (``csv.DictReader`` dicts) into
   ``ImportRow`` objects, collecting a message per malformed row.
2. ``validate`` checks the rows against a plan and the already-committed
   dates.  Any error rejects the whole import.
3. ``apply_to_plan`` merges the rows into the plan's slots and returns a
   ``SchedulePreview``.  The plan itself is never modified.

Rows with an explicit date take that date (and become manual slots); rows
without one consume the plan's remaining auto slots in chronological order.
"""

import csv
import io
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from postplanner.exceptions import ParseError
from postplanner.scheduling.models import (
    GeneratedPlan,
    ImportMatch,
    ImportRow,
    ImportValidation,
    ParseResult,
    PlanSlot,
    SchedulePreview,
    build_record_key,
)
from postplanner.scheduling.posting_time import TimeAssigner
from postplanner.utils import format_date_display, weekday_name

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column aliases, compared after normalising the header
# ---------------------------------------------------------------------------
DATE_COLUMNS = ("date",)
BODY_COLUMNS = ("startertext", "bodytext", "body", "text", "posttext", "caption")
IMAGE_COLUMNS = ("imageurl", "image", "imagelink")

# Accepted explicit date formats, tried in order
DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y")


# =============================================================================
# PARSING
# =============================================================================


def normalize_header(name: str) -> str:
    """``" Starter_Text "`` -> ``"startertext"``."""
    return "".join(ch for ch in (name or "").lower() if ch not in " _-\t")


def parse_csv_date(value: str) -> date:
    """
    Parse an explicit import date.

    Raises:
        ParseError: When no accepted format matches.
    """
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ParseError(f'Invalid date format "{value}". Use YYYY-MM-DD or MM/DD/YY.')


def read_numbered_table(content: str) -> List[Tuple[int, Dict[str, str]]]:
    """Read CSV text with a header row into ``(line number, row)`` pairs.

    Line numbers count the header as line 1 and include skipped lines, so
    they match what a spreadsheet shows.
    """
    if content.startswith("\ufeff"):
        content = content[1:]
    reader = csv.DictReader(io.StringIO(content))
    rows: List[Tuple[int, Dict[str, str]]] = []
    for raw in reader:
        # Ignore lines that hold only separators
        if not any((value or "").strip() for value in raw.values() if isinstance(value, str)):
            continue
        rows.append((reader.line_num, {k: v for k, v in raw.items() if k is not None}))
    return rows


def read_table(content: str) -> List[Dict[str, str]]:
    """Read CSV text with a header row into a list of dicts."""
    return [row for _, row in read_numbered_table(content)]


def _lookup(row: Mapping[str, str], aliases: Sequence[str]) -> str:
    normalized = {normalize_header(k): v for k, v in row.items() if k is not None}
    for alias in aliases:
        value = normalized.get(alias)
        if value is not None:
            return value
    return ""


def parse_rows(
    raw_rows: Sequence[Mapping[str, str]],
    row_numbers: Optional[Sequence[int]] = None,
) -> ParseResult:
    """
    Convert raw table rows into ``ImportRow`` objects.

    Never raises for malformed input: every row with an unparseable date is
    reported in ``errors`` and left out of ``rows``.  Row numbers count the
    header as row 1; pass *row_numbers* when rows were dropped while reading
    so messages point at the source line.
    """
    if raw_rows is None:
        raise ValueError("raw_rows is required")

    rows: List[ImportRow] = []
    errors: List[str] = []

    for index, raw in enumerate(raw_rows):
        row_number = row_numbers[index] if row_numbers is not None else index + 2
        raw_date = (_lookup(raw, DATE_COLUMNS) or "").strip()
        body_text = (_lookup(raw, BODY_COLUMNS) or "").strip()
        image_url = (_lookup(raw, IMAGE_COLUMNS) or "").strip()

        parsed_date: Optional[date] = None
        if raw_date:
            try:
                parsed_date = parse_csv_date(raw_date)
            except ParseError as exc:
                errors.append(f"Row {row_number}: {exc}")
                continue

        rows.append(
            ImportRow(
                body_text=body_text,
                date=parsed_date,
                image_url=image_url,
                row_number=row_number,
            )
        )

    if errors:
        logger.info("[IMPORT] Parsed %d rows with %d errors", len(rows), len(errors))
    return ParseResult(rows=rows, errors=errors)


# =============================================================================
# VALIDATION
# =============================================================================


def validate(
    plan: GeneratedPlan,
    rows: Sequence[ImportRow],
    blocked_dates: Iterable[date] = frozenset(),
    partial: bool = False,
) -> ImportValidation:
    """
    Check import rows against *plan* before anything is applied.

    Rules (each violation adds one message):
        - the import must contain at least one row;
        - explicit dates must fall inside the plan range (in *partial* mode
          such rows are skipped by key instead);
        - no two rows may share an explicit date;
        - no explicit date may collide with *blocked_dates*;
        - every row needs non-empty body text;
        - dateless rows must fit into the plan's unused auto slots.

    Returns:
        ``ImportValidation``; ``valid`` is ``False`` if any rule failed.
    """
    if plan is None or rows is None:
        raise ValueError("plan and rows are required")

    blocked: Set[date] = set(blocked_dates)
    errors: List[str] = []
    skipped: List[str] = []

    if not rows:
        return ImportValidation(
            valid=False,
            errors=["Import file is empty. Please provide at least one post."],
        )

    manual_rows: Dict[date, List[int]] = {}
    accepted: List[ImportRow] = []

    for row in rows:
        if not row.body_text.strip():
            errors.append(f"Row {row.row_number}: Body text cannot be empty.")

        if row.date is None:
            accepted.append(row)
            continue

        if not plan.contains(row.date):
            if partial:
                skipped.append(build_record_key(row.date, plan.platform))
                continue
            errors.append(
                f"Row {row.row_number}: Manual date {format_date_display(row.date)} "
                f"is outside the plan range ({format_date_display(plan.start_date)} - "
                f"{format_date_display(plan.end_date)})."
            )

        manual_rows.setdefault(row.date, []).append(row.row_number)

        if row.date in blocked:
            errors.append(
                f"Row {row.row_number}: Manual date {format_date_display(row.date)} "
                f"conflicts with an existing {plan.platform.value} post."
            )
        accepted.append(row)

    for day, row_numbers in manual_rows.items():
        if len(row_numbers) > 1:
            errors.append(
                f"Duplicate manual date {format_date_display(day)} found in rows: "
                f"{', '.join(str(n) for n in row_numbers)}."
            )

    auto_needed = sum(1 for row in accepted if row.date is None)
    available_auto = [s for s in plan.slots if s.date not in manual_rows]
    if auto_needed > len(available_auto):
        errors.append(
            f"Not enough available slots. Need {auto_needed} auto-assigned dates but only "
            f"{len(available_auto)} slots are available after accounting for "
            f"{len(manual_rows)} manual dates."
        )

    matched: List[ImportMatch] = []
    if not errors:
        auto_iter = iter(available_auto)
        for row in accepted:
            day = row.date if row.date is not None else next(auto_iter).date
            matched.append(
                ImportMatch(
                    row_number=row.row_number,
                    date=day,
                    is_manual_date=row.date is not None,
                    key=build_record_key(day, plan.platform),
                )
            )
    else:
        logger.info("[IMPORT] Import rejected with %d errors", len(errors))

    return ImportValidation(
        valid=not errors,
        errors=errors,
        matched=matched,
        skipped=skipped,
    )


# =============================================================================
# MERGE
# =============================================================================


def apply_to_plan(
    plan: GeneratedPlan,
    rows: Sequence[ImportRow],
    assigner: Optional[TimeAssigner] = None,
) -> SchedulePreview:
    """
    Merge import rows into *plan*'s slots.

    Explicit-date rows land on that date (the plan's slot when it has one,
    otherwise a new slot inside the range) with ``is_manual_date=True`` and
    their content.  Dateless rows fill the remaining auto slots in
    chronological order.  Explicit dates outside the plan range are left
    out.  *plan* is not modified.
    """
    if plan is None or rows is None:
        raise ValueError("plan and rows are required")
    assigner = assigner or TimeAssigner()
    seed = plan.platform.value

    manual = [r for r in rows if r.date is not None and plan.contains(r.date)]
    auto = [r for r in rows if r.date is None]

    by_date: Dict[date, PlanSlot] = {}
    for row in manual:
        base = plan.slot_for(row.date) or PlanSlot(
            date=row.date,
            weekday_name=weekday_name(row.date),
            posting_time=assigner.assign_time(row.date, seed),
        )
        by_date[row.date] = _fill(base, row, is_manual_date=True)

    free_slots = [s for s in plan.slots if s.date not in by_date]
    for slot, row in zip(free_slots, auto):
        by_date[slot.date] = _fill(slot, row, is_manual_date=False)

    preview_rows = tuple(by_date[d] for d in sorted(by_date))
    return SchedulePreview(
        platform=plan.platform,
        start_date=plan.start_date,
        end_date=plan.end_date,
        rows=preview_rows,
        manual_date_count=len({r.date for r in manual}),
        auto_date_count=min(len(auto), len(free_slots)),
    )


def _fill(slot: PlanSlot, row: ImportRow, is_manual_date: bool) -> PlanSlot:
    image_url = row.image_url.strip()
    return replace(
        slot,
        is_manual_date=is_manual_date,
        starter_text=row.body_text,
        image_url=image_url,
        has_image=bool(image_url),
    )


class CsvMerger:
    """Parse, validate and merge an import against one ``TimeAssigner``."""

    def __init__(self, assigner: Optional[TimeAssigner] = None) -> None:
        self.assigner = assigner or TimeAssigner()

    def parse_table(self, content: str) -> ParseResult:
        numbered = read_numbered_table(content)
        return parse_rows([row for _, row in numbered], [number for number, _ in numbered])

    def parse_rows(self, raw_rows: Sequence[Mapping[str, str]]) -> ParseResult:
        return parse_rows(raw_rows)

    def validate(
        self,
        plan: GeneratedPlan,
        rows: Sequence[ImportRow],
        blocked_dates: Iterable[date] = frozenset(),
        partial: bool = False,
    ) -> ImportValidation:
        return validate(plan, rows, blocked_dates, partial=partial)

    def apply_to_plan(self, plan: GeneratedPlan, rows: Sequence[ImportRow]) -> SchedulePreview:
        return apply_to_plan(plan, rows, assigner=self.assigner)


__all__ = [
    "DATE_FORMATS",
    "normalize_header",
    "parse_csv_date",
    "read_table",
    "read_numbered_table",
    "parse_rows",
    "validate",
    "apply_to_plan",
    "CsvMerger",
]
