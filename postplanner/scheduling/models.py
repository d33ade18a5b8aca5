"""
Scheduling data models: plans, slots, import rows, previews, records, moves.

Defines the core data structures used by the scheduling subsystem:
- ``PlanSlot`` / ``GeneratedPlan``: output of the SlotPlanner.
- ``ImportRow`` / ``ParseResult`` / ``ImportValidation``: CsvMerger input and checks.
- ``SchedulePreview``: plan slots merged with imported content, ready to apply.
- ``PostRecord``: one persisted post per (date, platform) and its key scheme.
- ``MoveResult`` / ``RelocationInstruction``: outcome of a SlotMover request.
- ``ApplyResult``: aggregate counters of a batch apply.

Value objects are frozen: regenerating a plan or preview builds a new one.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from postplanner.exceptions import (
    ImportValidationError,
    OverwriteConfirmationRequired,
    ParseError,
    PastDateError,
    PersistenceError,
    PlannerBaseError,
    RecordNotFoundError,
    ValidationError,
)
from postplanner.utils import weekday_name

if TYPE_CHECKING:
    from postplanner.scheduling.posting_time import TimeAssigner


# =============================================================================
# ENUMS
# =============================================================================


class Platform(Enum):
    """Social platforms that each hold at most one post per date."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"

    @property
    def code(self) -> str:
        """Two-letter code used by the caption text CSV (``FB`` / ``IG``)."""
        return "FB" if self is Platform.FACEBOOK else "IG"

    @classmethod
    def from_code(cls, code: str) -> "Platform":
        normalized = code.strip().upper()
        if normalized == "FB":
            return cls.FACEBOOK
        if normalized == "IG":
            return cls.INSTAGRAM
        raise ValueError(f'Unknown platform code "{code}". Must be "IG" or "FB".')


DEFAULT_PLATFORM = Platform.FACEBOOK


class TimeSource(Enum):
    """How a posting time was set.

    A manual edit sets ``MANUAL``; any date change resets it to ``AUTO``.
    """

    AUTO = "auto"
    MANUAL = "manual"


class ErrorKind(Enum):
    """Failure categories reported in result objects."""

    PARSE = "parse"
    VALIDATION = "validation"
    PAST_DATE = "past_date"
    OVERWRITE_CONFIRMATION_REQUIRED = "overwrite_confirmation_required"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"


class MoveState(Enum):
    """Per-attempt move state machine.

    Transitions:
        REQUESTED -> VALIDATED -> NEEDS_CONFIRM_OVERWRITE
                               -> TIME_REASSIGNED -> COMMITTED
                  -> REJECTED
    """

    REQUESTED = "requested"
    VALIDATED = "validated"
    NEEDS_CONFIRM_OVERWRITE = "needs_confirm_overwrite"
    TIME_REASSIGNED = "time_reassigned"
    COMMITTED = "committed"
    REJECTED = "rejected"


# =============================================================================
# RECORD KEY SCHEME
# Bare ``YYYY-MM-DD`` (legacy, single platform) or ``YYYY-MM-DD-<platform>``.
# =============================================================================


def build_record_key(day: date, platform: Optional[Platform] = None) -> str:
    """Build the persistence key for a post."""
    if platform is None:
        return day.isoformat()
    return f"{day.isoformat()}-{platform.value}"


def parse_record_key(key: str) -> Tuple[date, Optional[Platform]]:
    """
    Split a record key into its date and optional platform.

    Raises:
        ParseError: If the key has no valid date prefix or names an
            unknown platform.
    """
    if not key or len(key) < 10:
        raise ParseError(f"Invalid record key '{key}'")
    try:
        day = date.fromisoformat(key[:10])
    except ValueError as exc:
        raise ParseError(f"Invalid record key '{key}': bad date prefix") from exc

    rest = key[10:]
    if not rest:
        return day, None
    if not rest.startswith("-") or len(rest) == 1:
        raise ParseError(f"Invalid record key '{key}'")
    try:
        return day, Platform(rest[1:])
    except ValueError as exc:
        raise ParseError(f"Invalid record key '{key}': unknown platform '{rest[1:]}'") from exc


# =============================================================================
# PLAN
# =============================================================================


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Start date {self.start.isoformat()} must be on or before "
                f"end date {self.end.isoformat()}"
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


@dataclass(frozen=True)
class PlanSlot:
    """A single posting slot on a calendar date.

    Attributes:
        date: Calendar date (unique within a plan or preview).
        weekday_name: English weekday name of ``date``.
        posting_time: ``HH:MM`` 24-hour, always on the 5-minute grid.
        is_manual_date: ``True`` when the date came from explicit import input.
        has_image: Whether an image URL is attached.
        starter_text: Body text that seeds the caption.
        image_url: Optional image URL.
        posting_time_source: Provenance of ``posting_time``.
    """

    date: date
    weekday_name: str
    posting_time: str
    is_manual_date: bool = False
    has_image: bool = False
    starter_text: str = ""
    image_url: str = ""
    posting_time_source: TimeSource = TimeSource.AUTO

    def with_posting_time(self, time: str) -> "PlanSlot":
        """Return a copy with a manually edited time, rounded to 5 minutes."""
        from postplanner.scheduling.posting_time import round_to_nearest_5min

        return replace(
            self,
            posting_time=round_to_nearest_5min(time),
            posting_time_source=TimeSource.MANUAL,
        )

    def with_date(
        self, new_date: date, assigner: "TimeAssigner", platform_seed: str
    ) -> "PlanSlot":
        """Return a copy on *new_date*; the time is always re-derived."""
        return replace(
            self,
            date=new_date,
            weekday_name=weekday_name(new_date),
            posting_time=assigner.assign_time(new_date, platform_seed),
            posting_time_source=TimeSource.AUTO,
        )


@dataclass(frozen=True)
class GeneratedPlan:
    """Output of ``SlotPlanner.build_plan``.

    Invariants: slots are chronological with unique dates inside
    ``[start_date, end_date]`` and never on a blocked date.
    """

    start_date: date
    end_date: date
    platform: Platform
    cadence: int
    slots: Tuple[PlanSlot, ...]
    day_of_week_breakdown: Dict[str, List[date]]

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def slot_dates(self) -> List[date]:
        return [slot.date for slot in self.slots]

    def slot_for(self, day: date) -> Optional[PlanSlot]:
        return next((s for s in self.slots if s.date == day), None)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


# =============================================================================
# IMPORT
# =============================================================================


@dataclass(frozen=True)
class ImportRow:
    """One parsed row of an import table.

    ``date`` is ``None`` when the row should be auto-assigned.
    ``row_number`` is 1-indexed with the header as row 1.
    """

    body_text: str
    date: Optional[date] = None
    image_url: str = ""
    row_number: int = 0

    @property
    def is_manual_date(self) -> bool:
        return self.date is not None


@dataclass(frozen=True)
class ParseResult:
    rows: List[ImportRow] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ImportMatch:
    """Where an accepted import row will land."""

    row_number: int
    date: date
    is_manual_date: bool
    key: str = ""


@dataclass(frozen=True)
class ImportValidation:
    """Outcome of validating an import.

    Attributes:
        valid: ``True`` only when ``errors`` is empty (all-or-nothing).
        errors: Human-readable problems in report order.
        matched: Accepted rows and their resolved dates.
        skipped: Keys of rows left out (e.g. outside the plan range in
            partial mode).
    """

    valid: bool
    errors: List[str] = field(default_factory=list)
    matched: List[ImportMatch] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skipped_preview(self, limit: int = 5) -> str:
        """First *limit* skipped keys, with a ``+N more`` tail."""
        shown = ", ".join(self.skipped[:limit])
        extra = len(self.skipped) - limit
        if extra > 0:
            return f"{shown}, +{extra} more"
        return shown

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise ImportValidationError(list(self.errors))


@dataclass(frozen=True)
class SchedulePreview:
    """Plan slots merged with imported content, ready for the apply step."""

    platform: Platform
    start_date: date
    end_date: date
    rows: Tuple[PlanSlot, ...]
    manual_date_count: int
    auto_date_count: int

    @property
    def total_posts(self) -> int:
        return len(self.rows)


# =============================================================================
# PERSISTED RECORD
# =============================================================================


@dataclass(frozen=True)
class PostRecord:
    """One stored post.

    ``platform`` is ``None`` for legacy single-platform records whose key
    is the bare date.
    """

    date: date
    platform: Optional[Platform] = None
    starter_text: str = ""
    image_url: str = ""
    posting_time: Optional[str] = None
    posting_time_source: TimeSource = TimeSource.AUTO
    status: str = "input"
    captions: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return build_record_key(self.date, self.platform)

    def to_row(self) -> Dict[str, Any]:
        """Serialize for a store."""
        return {
            "key": self.key,
            "date": self.date.isoformat(),
            "platform": self.platform.value if self.platform else None,
            "starter_text": self.starter_text,
            "image_url": self.image_url,
            "posting_time": self.posting_time,
            "posting_time_source": self.posting_time_source.value,
            "status": self.status,
            "captions": dict(self.captions),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PostRecord":
        platform = row.get("platform")
        return cls(
            date=date.fromisoformat(row["date"]),
            platform=Platform(platform) if platform else None,
            starter_text=row.get("starter_text") or "",
            image_url=row.get("image_url") or "",
            posting_time=row.get("posting_time"),
            posting_time_source=TimeSource(row.get("posting_time_source") or "auto"),
            status=row.get("status") or "input",
            captions=dict(row.get("captions") or {}),
        )


# =============================================================================
# MOVE
# =============================================================================


@dataclass(frozen=True)
class RelocationInstruction:
    """What the store must do to commit a move: write target, delete source."""

    source_key: str
    target_key: str
    record: PostRecord


_ERROR_EXCEPTIONS = {
    ErrorKind.NOT_FOUND: RecordNotFoundError,
    ErrorKind.PERSISTENCE: PersistenceError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.PARSE: ParseError,
}


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a SlotMover request.

    ``needs_confirm_overwrite`` is advisory: nothing was changed and the
    caller may retry with ``overwrite=True``.
    """

    ok: bool
    needs_confirm_overwrite: bool = False
    error: Optional[ErrorKind] = None
    message: str = ""
    state: MoveState = MoveState.REQUESTED
    instruction: Optional[RelocationInstruction] = None
    target_date: Optional[date] = None
    today: Optional[date] = None
    target_key: str = ""

    def raise_for_error(self) -> None:
        """Raise the exception matching this result, if it is not ``ok``."""
        if self.ok:
            return
        if self.needs_confirm_overwrite:
            raise OverwriteConfirmationRequired(self.target_key)
        if self.error is ErrorKind.PAST_DATE and self.target_date and self.today:
            raise PastDateError(self.target_date, self.today)
        exc_cls = _ERROR_EXCEPTIONS.get(self.error, PlannerBaseError)
        raise exc_cls(self.message or "Move failed")


# =============================================================================
# APPLY
# =============================================================================


@dataclass(frozen=True)
class ApplyFailure:
    key: str
    error: str


@dataclass(frozen=True)
class ApplyResult:
    """Aggregate outcome of writing a preview; one row never aborts the batch."""

    created: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[ApplyFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.skipped + self.failed

    def summary(self) -> str:
        parts: List[str] = []
        if self.created:
            parts.append(f"{self.created} created")
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        if self.failed:
            parts.append(f"{self.failed} failed")
        return ", ".join(parts) + "." if parts else "No rows imported."


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "Platform",
    "DEFAULT_PLATFORM",
    "TimeSource",
    "ErrorKind",
    "MoveState",
    "build_record_key",
    "parse_record_key",
    "DateRange",
    "PlanSlot",
    "GeneratedPlan",
    "ImportRow",
    "ParseResult",
    "ImportMatch",
    "ImportValidation",
    "SchedulePreview",
    "PostRecord",
    "RelocationInstruction",
    "MoveResult",
    "ApplyFailure",
    "ApplyResult",
]
