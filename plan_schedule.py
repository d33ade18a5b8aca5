"""
Build a posting plan and optionally merge a content CSV into it.

Usage::

    # Plan three posts a week for January:
    python plan_schedule.py --start 2024-01-01 --end 2024-01-31 --cadence 3

    # Merge a content file and write the summary report:
    python plan_schedule.py --start 2024-01-01 --end 2024-01-31 --cadence 3 \\
        --csv posts.csv --summary-out out/schedule.txt

    # Keep rows dated outside the range out of the import instead of failing:
    python plan_schedule.py --start 2024-01-01 --end 2024-01-14 --cadence 5 \\
        --csv posts.csv --partial
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("plan_schedule")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plan social posting slots and merge imported content"
    )
    parser.add_argument("--start", required=True, help="First day, YYYY-MM-DD")
    parser.add_argument("--end", required=True, help="Last day, YYYY-MM-DD")
    parser.add_argument(
        "--cadence",
        type=int,
        default=None,
        help="Posts per week, 1-7 (default: industry recommendation)",
    )
    parser.add_argument(
        "--platform",
        choices=["facebook", "instagram"],
        default=None,
        help="Platform to plan for (default: settings default_platform)",
    )
    parser.add_argument(
        "--csv",
        metavar="FILE",
        help="Content CSV with date / starterText / imageUrl columns",
    )
    parser.add_argument(
        "--partial",
        action="store_true",
        help="Skip rows dated outside the plan range instead of rejecting the file",
    )
    parser.add_argument(
        "--blocked",
        nargs="*",
        default=[],
        metavar="DATE",
        help="Dates already taken for this platform",
    )
    parser.add_argument(
        "--summary-out",
        metavar="FILE",
        help="Write the schedule summary to this file",
    )
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    from postplanner.config import get_settings
    from postplanner.exceptions import ParseError, PlannerBaseError, ValidationError
    from postplanner.scheduling.csv_merger import CsvMerger
    from postplanner.scheduling.models import Platform, SchedulePreview
    from postplanner.scheduling.posting_time import format_time_for_display
    from postplanner.scheduling.slot_planner import SlotPlanner
    from postplanner.scheduling.summary import render_schedule_summary, write_schedule_summary
    from postplanner.utils import parse_iso_date

    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    platform = Platform(args.platform or settings.default_platform)
    cadence = args.cadence or settings.industry_profile.recommended_cadence.get(platform.value, 3)

    try:
        start = parse_iso_date(args.start)
        end = parse_iso_date(args.end)
        blocked = {parse_iso_date(value) for value in args.blocked}
    except ParseError as exc:
        logger.error("Invalid date argument: %s", exc)
        return 1

    planner = SlotPlanner.from_settings(settings)
    try:
        plan = planner.build_plan(start, end, cadence, blocked, platform)
    except (PlannerBaseError, ValidationError) as exc:
        logger.error("Cannot build plan: %s", exc)
        return 1

    if args.csv:
        merger = CsvMerger(planner.assigner)
        content = Path(args.csv).read_text(encoding="utf-8")
        parsed = merger.parse_table(content)
        if not parsed.ok:
            for error in parsed.errors:
                print(error)
            return 1

        validation = merger.validate(plan, parsed.rows, blocked, partial=args.partial)
        if not validation.valid:
            print(f"Import rejected ({len(validation.errors)} problems):")
            for error in validation.errors:
                print(f"  - {error}")
            return 1
        if validation.skipped:
            print(
                f"Skipped {validation.skipped_count} rows outside the range: "
                f"{validation.skipped_preview(settings.skipped_preview_limit)}"
            )
        preview = merger.apply_to_plan(plan, parsed.rows)
    else:
        preview = SchedulePreview(
            platform=plan.platform,
            start_date=plan.start_date,
            end_date=plan.end_date,
            rows=plan.slots,
            manual_date_count=0,
            auto_date_count=0,
        )

    generated_at = datetime.now(ZoneInfo(settings.timezone))
    print(render_schedule_summary(preview, generated_at, blocked_count=len(blocked)))
    for slot in preview.rows:
        logger.debug(
            "%s %s %s",
            slot.date.isoformat(),
            slot.weekday_name,
            format_time_for_display(slot.posting_time),
        )

    if args.summary_out:
        await write_schedule_summary(
            preview,
            args.summary_out,
            generated_at=generated_at,
            blocked_count=len(blocked),
        )
        print(f"Summary written to {args.summary_out}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
