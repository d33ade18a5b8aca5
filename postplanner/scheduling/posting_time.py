"""
Deterministic posting-time assignment on a 5-minute grid.

``TimeAssigner.assign_time(date, seed)`` always returns the same ``HH:MM``
for the same inputs, so regenerating a plan never reshuffles times that an
operator has already seen.  The seed is hashed with SHA-256; changing the
hash would move every auto-assigned time and must be treated as a
breaking change for stored data.
"""

import logging
from datetime import date
from dataclasses import replace
from typing import List, Optional

from postplanner.config import DEFAULT_POSTING_WINDOW, IndustryProfile, PostingWindow
from postplanner.scheduling.models import PostRecord, TimeSource
from postplanner.utils import (
    is_weekend,
    minutes_to_time,
    stable_hash,
    time_to_minutes,
    weekday_name,
)

logger = logging.getLogger(__name__)

GRID_MINUTES = 5

# Latest time on the grid; rounding never produces "24:00".
_LAST_GRID_MINUTE = 23 * 60 + 55


def round_to_nearest_5min(time: str) -> str:
    """
    Round a manually entered ``HH:MM`` to the nearest 5 minutes.

    ``10:02`` -> ``10:00``, ``10:03`` -> ``10:05``; ``23:58`` clamps to ``23:55``.

    Raises:
        ParseError: If *time* is not a valid 24-hour time.
    """
    minutes = time_to_minutes(time)
    rounded = ((minutes + GRID_MINUTES // 2) // GRID_MINUTES) * GRID_MINUTES
    return minutes_to_time(min(rounded, _LAST_GRID_MINUTE))


def format_time_for_display(time: str) -> str:
    """``"17:05"`` -> ``"5:05 PM"``."""
    minutes = time_to_minutes(time)
    hours, mins = divmod(minutes, 60)
    period = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {period}"


class TimeAssigner:
    """Pseudo-random but reproducible time-of-day generator.

    Args:
        profile: Industry profile supplying per-platform weekday/weekend
            windows.  ``None`` means every lookup uses *default_window*.
        default_window: Fallback when the profile has no window for the
            requested platform or day type.
    """

    def __init__(
        self,
        profile: Optional[IndustryProfile] = None,
        default_window: PostingWindow = DEFAULT_POSTING_WINDOW,
    ) -> None:
        self.profile = profile
        self.default_window = default_window

    # ----------------------------------------------------------------
    # WINDOWS
    # ----------------------------------------------------------------

    def windows_for(self, day: date, platform: str) -> List[PostingWindow]:
        if self.profile is not None:
            day_type = "weekend" if is_weekend(day) else "weekday"
            windows = self.profile.windows_for(platform, day_type)
            if windows:
                return windows
        return [self.default_window]

    def window_for(self, day: date, platform_seed: str) -> PostingWindow:
        """The single window used for *day*; chosen by hash when several apply."""
        windows = self.windows_for(day, platform_seed)
        if len(windows) == 1:
            return windows[0]
        index = stable_hash(self._seed(day, platform_seed), part=0) % len(windows)
        return windows[index]

    def window_description(self, day: date, platform_seed: str) -> str:
        return f"{weekday_name(day)}: {self.window_for(day, platform_seed).describe()}"

    # ----------------------------------------------------------------
    # ASSIGNMENT
    # ----------------------------------------------------------------

    def assign_time(self, day: date, platform_seed: str) -> str:
        """
        Deterministic posting time for *day*.

        Args:
            day: Calendar date of the slot.
            platform_seed: Platform name (also used for the window lookup)
                or any other stable seed.

        Returns:
            ``HH:MM`` on the 5-minute grid, inside the selected window.
        """
        window = self.window_for(day, platform_seed)

        # Snap window ends inward onto the grid.
        first = -(-window.start_minutes // GRID_MINUTES) * GRID_MINUTES
        last = (window.end_minutes // GRID_MINUTES) * GRID_MINUTES
        if last < first:
            # Window narrower than one grid step
            return round_to_nearest_5min(window.earliest)

        increments = (last - first) // GRID_MINUTES + 1
        index = stable_hash(self._seed(day, platform_seed), part=1) % increments
        return minutes_to_time(first + index * GRID_MINUTES)

    def reassign_for_date(self, record: PostRecord, new_date: date) -> PostRecord:
        """Move *record* to *new_date*; manual time provenance is discarded."""
        seed = record.platform.value if record.platform else ""
        return replace(
            record,
            date=new_date,
            posting_time=self.assign_time(new_date, seed),
            posting_time_source=TimeSource.AUTO,
        )

    def ensure_posting_time(self, record: PostRecord) -> PostRecord:
        """Return *record* with a posting time, generating one if missing."""
        if record.posting_time:
            return record
        seed = record.platform.value if record.platform else ""
        return replace(
            record,
            posting_time=self.assign_time(record.date, seed),
            posting_time_source=TimeSource.AUTO,
        )

    @staticmethod
    def _seed(day: date, platform_seed: str) -> str:
        return f"{day.isoformat()}|{platform_seed}"


__all__ = [
    "GRID_MINUTES",
    "TimeAssigner",
    "round_to_nearest_5min",
    "format_time_for_display",
]
