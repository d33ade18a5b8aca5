"""Scheduling subsystem: slot planning, import merge, relocation, apply."""

from postplanner.scheduling.apply import ScheduleApplier
from postplanner.scheduling.csv_merger import CsvMerger
from postplanner.scheduling.models import (
    DEFAULT_PLATFORM,
    GeneratedPlan,
    MoveResult,
    PlanSlot,
    Platform,
    PostRecord,
    SchedulePreview,
    build_record_key,
    parse_record_key,
)
from postplanner.scheduling.posting_time import TimeAssigner
from postplanner.scheduling.slot_mover import SlotMover
from postplanner.scheduling.slot_planner import SlotPlanner
from postplanner.scheduling.store import InMemoryPostStore, SupabasePostStore

__all__ = [
    "DEFAULT_PLATFORM",
    "GeneratedPlan",
    "MoveResult",
    "PlanSlot",
    "Platform",
    "PostRecord",
    "SchedulePreview",
    "build_record_key",
    "parse_record_key",
    "TimeAssigner",
    "SlotPlanner",
    "CsvMerger",
    "SlotMover",
    "ScheduleApplier",
    "InMemoryPostStore",
    "SupabasePostStore",
]
