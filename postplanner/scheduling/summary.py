"""
Plain-text schedule summary for a ``SchedulePreview``.

The report lists the date range, post counts, posts grouped by weekday and
one line per post with a short preview of its text.  Writing to disk goes
through ``aiofiles`` so the CLI and async callers share one code path.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

import aiofiles

from postplanner.scheduling.models import SchedulePreview
from postplanner.scheduling.slot_planner import group_by_weekday
from postplanner.utils import format_date_display, format_date_short

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 30

# Report order; the week starts on Sunday here as on a wall calendar
_REPORT_DAY_ORDER = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def _preview(text: str) -> str:
    if len(text) > PREVIEW_CHARS:
        return text[:PREVIEW_CHARS] + "..."
    return text


def render_schedule_summary(
    preview: SchedulePreview,
    generated_at: datetime,
    blocked_count: int = 0,
) -> str:
    """Render *preview* as the plain-text schedule report."""
    lines: List[str] = []

    lines.append("=" * 60)
    lines.append("POSTING SCHEDULE SUMMARY")
    lines.append("=" * 60)
    lines.append("")

    lines.append(
        f"Date Range: {format_date_display(preview.start_date)} - "
        f"{format_date_display(preview.end_date)}"
    )
    lines.append(f"Platform: {preview.platform.value}")
    lines.append(f"Total Posts: {preview.total_posts}")
    lines.append(f"  - Manual dates: {preview.manual_date_count}")
    lines.append(f"  - Auto-assigned dates: {preview.auto_date_count}")
    if blocked_count > 0:
        lines.append(f"  - Blocked by existing posts: {blocked_count}")
    lines.append("")

    lines.append("-" * 40)
    lines.append("POSTS BY DAY OF WEEK")
    lines.append("-" * 40)
    grouped = group_by_weekday(row.date for row in preview.rows)
    for day_name in _REPORT_DAY_ORDER:
        dates = grouped[day_name]
        if dates:
            lines.append(f"{day_name:<12}: {', '.join(format_date_short(d) for d in dates)}")
    lines.append("")

    lines.append("-" * 60)
    lines.append("DETAILED SCHEDULE")
    lines.append("-" * 60)
    lines.append("Date          Time   Date Source  Preview")
    lines.append("-" * 60)
    for row in preview.rows:
        source = "manual" if row.is_manual_date else "auto"
        lines.append(
            f"{format_date_display(row.date):<12}  {row.posting_time:<6} "
            f"{source:<12} {_preview(row.starter_text)}"
        )

    lines.append("")
    lines.append("=" * 60)
    lines.append(f"Generated: {generated_at.strftime('%m/%d/%Y %I:%M %p %Z').strip()}")
    lines.append("=" * 60)
    return "\n".join(lines) + "\n"


async def write_schedule_summary(
    preview: SchedulePreview,
    path: Union[str, Path],
    generated_at: Optional[datetime] = None,
    blocked_count: int = 0,
    timezone: str = "America/Denver",
) -> Path:
    """Render the summary and write it to *path*; returns the path written."""
    generated_at = generated_at or datetime.now(ZoneInfo(timezone))
    content = render_schedule_summary(preview, generated_at, blocked_count)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(target, "w", encoding="utf-8") as f:
        await f.write(content)

    logger.info("[SUMMARY] Wrote schedule summary to %s", target)
    return target


__all__ = [
    "PREVIEW_CHARS",
    "render_schedule_summary",
    "write_schedule_summary",
]
