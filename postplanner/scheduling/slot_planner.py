"""
Slot planner: turns a date range and a weekly cadence into posting slots.

``SlotPlanner.build_plan`` is a pure function of its inputs.  Calling it
twice with the same arguments yields equal plans (same dates, same times),
so operators see the same weekly rhythm every time they regenerate.

Weekday distribution:

1. *Rhythm.*  For cadence ``c`` the weekday offsets ``floor(i * 7 / c)``
   (``i < c``) spread ``c`` posts over the week without clustering.  Every
   rotation of that pattern is scored by summed weekday priority and the
   best one wins (ties go to the rotation anchored earliest in the week).
   With the default priorities cadence 5 gives Mon, Wed, Thu, Fri, Sun.
2. Candidate dates on rhythm weekdays are used first.  When there are
   more than needed (partial weeks round down) an evenly spaced subset by
   chronological index is kept.
3. When rhythm dates cannot fill the target (blocked dates, partial weeks
   rounding up) the deficit is filled by an evenly spaced subset of the
   remaining candidates.
"""

import logging
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from postplanner.config import DEFAULT_DAY_PRIORITY, Settings, get_settings
from postplanner.exceptions import ValidationError
from postplanner.scheduling.models import (
    DEFAULT_PLATFORM,
    DateRange,
    GeneratedPlan,
    PlanSlot,
    Platform,
)
from postplanner.scheduling.posting_time import TimeAssigner
from postplanner.utils import WEEKDAY_NAMES, iter_days, weekday_name

logger = logging.getLogger(__name__)

MIN_CADENCE = 1
MAX_CADENCE = 7


# =============================================================================
# PURE HELPERS
# =============================================================================


def target_slot_count(cadence: int, days: int) -> int:
    """``round(cadence * days / 7)`` with halves rounded up, clamped to ``[0, days]``."""
    return min(max((2 * cadence * days + 7) // 14, 0), days)


def pick_evenly(items: Sequence[date], count: int) -> List[date]:
    """Pick *count* items spread evenly across *items* (order preserved)."""
    total = len(items)
    if count <= 0 or total == 0:
        return []
    count = min(count, total)
    return [items[((2 * i + 1) * total) // (2 * count)] for i in range(count)]


def group_by_weekday(dates: Iterable[date]) -> Dict[str, List[date]]:
    """Group dates by weekday name, Monday first, dates in calendar order."""
    grouped: Dict[str, List[date]] = {name: [] for name in WEEKDAY_NAMES}
    for day in sorted(dates):
        grouped[weekday_name(day)].append(day)
    return grouped


# =============================================================================
# PLANNER
# =============================================================================


class SlotPlanner:
    """Builds ``GeneratedPlan`` objects.

    Args:
        assigner: Time source for slots.  Defaults to a ``TimeAssigner``
            with only the default posting window.
        day_priority: Weekday (Monday == 0) to engagement score.
    """

    def __init__(
        self,
        assigner: Optional[TimeAssigner] = None,
        day_priority: Optional[Dict[int, int]] = None,
    ) -> None:
        self.assigner = assigner or TimeAssigner()
        self.day_priority: Dict[int, int] = dict(day_priority or DEFAULT_DAY_PRIORITY)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SlotPlanner":
        settings = settings or get_settings()
        assigner = TimeAssigner(
            profile=settings.industry_profile,
            default_window=settings.default_window,
        )
        return cls(assigner=assigner, day_priority=settings.day_priority)

    # ----------------------------------------------------------------
    # RHYTHM
    # ----------------------------------------------------------------

    def rhythm_weekdays(self, cadence: int) -> FrozenSet[int]:
        """Weekdays (Monday == 0) that carry the weekly rhythm for *cadence*."""
        offsets = sorted({(i * 7) // cadence for i in range(cadence)})
        best_anchor = 0
        best_score = -1
        for anchor in range(7):
            score = sum(self.day_priority.get((anchor + o) % 7, 0) for o in offsets)
            if score > best_score:
                best_anchor, best_score = anchor, score
        return frozenset((best_anchor + o) % 7 for o in offsets)

    # ----------------------------------------------------------------
    # PLAN
    # ----------------------------------------------------------------

    def build_plan(
        self,
        start_date: date,
        end_date: date,
        cadence: int,
        blocked_dates: Iterable[date] = frozenset(),
        platform: Platform = DEFAULT_PLATFORM,
    ) -> GeneratedPlan:
        """
        Select posting slots for ``[start_date, end_date]``.

        Args:
            start_date: First day of the range (inclusive).
            end_date: Last day of the range (inclusive).
            cadence: Posts per week, 1-7.
            blocked_dates: Dates already occupied for *platform*.  Never
                selected and never modified.
            platform: Platform the plan is for; also seeds posting times.

        Returns:
            A new ``GeneratedPlan``.

        Raises:
            ValidationError: On missing dates, ``start_date > end_date`` or
                a cadence outside 1-7.
        """
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        date_range = DateRange(start_date, end_date)
        if isinstance(cadence, bool) or not isinstance(cadence, int):
            raise ValidationError(f"cadence must be an integer, got {cadence!r}")
        if not MIN_CADENCE <= cadence <= MAX_CADENCE:
            raise ValidationError(
                f"cadence must be between {MIN_CADENCE} and {MAX_CADENCE}, got {cadence}"
            )

        blocked = frozenset(blocked_dates)
        pool = [d for d in iter_days(date_range.start, date_range.end) if d not in blocked]
        target = target_slot_count(cadence, date_range.days)
        needed = min(target, len(pool))

        rhythm = self.rhythm_weekdays(cadence)
        primary = [d for d in pool if d.weekday() in rhythm]
        if len(primary) >= needed:
            selected = pick_evenly(primary, needed)
        else:
            secondary = [d for d in pool if d.weekday() not in rhythm]
            selected = sorted(primary + pick_evenly(secondary, needed - len(primary)))

        slots = tuple(
            PlanSlot(
                date=day,
                weekday_name=weekday_name(day),
                posting_time=self.assigner.assign_time(day, platform.value),
            )
            for day in selected
        )

        if needed < target:
            logger.warning(
                "[PLANNER] Only %d of %d target slots available (%d days, %d blocked)",
                needed,
                target,
                date_range.days,
                date_range.days - len(pool),
            )
        logger.info(
            "[PLANNER] Built %s plan %s..%s: cadence=%d, %d slots",
            platform.value,
            start_date.isoformat(),
            end_date.isoformat(),
            cadence,
            len(slots),
        )

        return GeneratedPlan(
            start_date=start_date,
            end_date=end_date,
            platform=platform,
            cadence=cadence,
            slots=slots,
            day_of_week_breakdown=group_by_weekday(selected),
        )


def build_plan(
    start_date: date,
    end_date: date,
    cadence: int,
    blocked_dates: Iterable[date] = frozenset(),
    platform: Platform = DEFAULT_PLATFORM,
) -> GeneratedPlan:
    """Module-level shortcut using a planner built from the global settings."""
    return SlotPlanner.from_settings().build_plan(
        start_date, end_date, cadence, blocked_dates, platform
    )


__all__ = [
    "MIN_CADENCE",
    "MAX_CADENCE",
    "target_slot_count",
    "pick_evenly",
    "group_by_weekday",
    "SlotPlanner",
    "build_plan",
]
