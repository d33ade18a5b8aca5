"""
Relocation of an already-committed post to another date.

``SlotMover.plan_move`` is the pure decision step: given the record, the
target date and whether the target is occupied, it returns a ``MoveResult``
that either rejects the move, asks for overwrite confirmation, or carries a
``RelocationInstruction`` (write the target key, delete the source key).
Moving a post onto its own date is always a no-op, even for past dates.

``SlotMover.move`` runs that decision against a store.  The first call for
an occupied target is advisory; a second call with ``overwrite=True``
performs the move.  The commit goes through ``PostStore.relocate`` so a
failed move leaves the post at its source key only.

On every committed move the posting time is re-derived for the new date and
its provenance is reset to ``auto``.  The record's platform is carried into
the new key; legacy records keyed by bare date move as the default platform.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional

from postplanner.config import Settings, get_settings
from postplanner.exceptions import PastDateError, PersistenceError
from postplanner.scheduling.models import (
    DEFAULT_PLATFORM,
    ErrorKind,
    MoveResult,
    MoveState,
    Platform,
    PostRecord,
    RelocationInstruction,
    build_record_key,
    parse_record_key,
)
from postplanner.scheduling.posting_time import TimeAssigner
from postplanner.scheduling.store import PostStore
from postplanner.utils import today_in_timezone

logger = logging.getLogger(__name__)


class SlotMover:
    """Moves one post per call while keeping one post per (date, platform).

    Args:
        assigner: Time source for the re-derived posting time.
        default_platform: Platform assumed for legacy bare-date keys.
        timezone: Business timezone that defines "today".
    """

    def __init__(
        self,
        assigner: Optional[TimeAssigner] = None,
        default_platform: Platform = DEFAULT_PLATFORM,
        timezone: str = "America/Denver",
    ) -> None:
        self.assigner = assigner or TimeAssigner()
        self.default_platform = default_platform
        self.timezone = timezone

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SlotMover":
        settings = settings or get_settings()
        return cls(
            assigner=TimeAssigner(
                profile=settings.industry_profile,
                default_window=settings.default_window,
            ),
            default_platform=Platform(settings.default_platform),
            timezone=settings.timezone,
        )

    def today(self) -> date:
        return today_in_timezone(self.timezone)

    # ================================================================
    # DECISION
    # ================================================================

    def plan_move(
        self,
        record: PostRecord,
        target_date: date,
        target_occupied: bool = False,
        overwrite: bool = False,
        today: Optional[date] = None,
        source_key: Optional[str] = None,
    ) -> MoveResult:
        """
        Decide what a move of *record* to *target_date* requires.

        Args:
            record: The committed record being moved.
            target_date: Requested new date.
            target_occupied: Whether a record for the same platform already
                exists on *target_date*.
            overwrite: Caller's explicit authorisation to replace it.
            today: Operational "today"; defaults to the business timezone.
            source_key: Key the record is stored under, when it differs
                from ``record.key``.

        Returns:
            ``MoveResult``.  ``instruction`` is set only when the store has
            something to do.
        """
        if record is None or target_date is None:
            raise ValueError("record and target_date are required")
        today = today or self.today()

        if target_date == record.date:
            return MoveResult(
                ok=True,
                state=MoveState.VALIDATED,
                target_date=target_date,
                today=today,
                target_key=source_key or record.key,
            )

        if target_date < today:
            error = PastDateError(target_date, today)
            logger.info("[MOVER] Rejected move of %s: %s", record.key, error)
            return MoveResult(
                ok=False,
                error=ErrorKind.PAST_DATE,
                message=str(error),
                state=MoveState.REJECTED,
                target_date=target_date,
                today=today,
            )

        platform = record.platform or self.default_platform
        target_key = build_record_key(target_date, platform)

        if target_occupied and not overwrite:
            logger.info("[MOVER] %s is occupied, confirmation required", target_key)
            return MoveResult(
                ok=False,
                needs_confirm_overwrite=True,
                error=ErrorKind.OVERWRITE_CONFIRMATION_REQUIRED,
                message=f"A post already exists at '{target_key}'.",
                state=MoveState.NEEDS_CONFIRM_OVERWRITE,
                target_date=target_date,
                today=today,
                target_key=target_key,
            )

        moved = self.assigner.reassign_for_date(replace(record, platform=platform), target_date)
        return MoveResult(
            ok=True,
            state=MoveState.TIME_REASSIGNED,
            instruction=RelocationInstruction(
                source_key=source_key or record.key,
                target_key=moved.key,
                record=moved,
            ),
            target_date=target_date,
            today=today,
            target_key=moved.key,
        )

    # ================================================================
    # EXECUTION
    # ================================================================

    async def move(
        self,
        store: PostStore,
        record_key: str,
        target_date: date,
        overwrite: bool = False,
        today: Optional[date] = None,
    ) -> MoveResult:
        """
        Move the record stored at *record_key* to *target_date*.

        Never raises for store failures; they are reported as
        ``ErrorKind.PERSISTENCE`` with the store's message.
        """
        if store is None or not record_key or target_date is None:
            raise ValueError("store, record_key and target_date are required")
        parse_record_key(record_key)

        try:
            record = await store.read(record_key)
            if record is None:
                return MoveResult(
                    ok=False,
                    error=ErrorKind.NOT_FOUND,
                    message=f"No post found for key {record_key}",
                    state=MoveState.REJECTED,
                    target_date=target_date,
                )

            occupied = await self._occupied_keys(store, record, record_key, target_date)
            result = self.plan_move(
                record,
                target_date,
                target_occupied=bool(occupied),
                overwrite=overwrite,
                today=today,
                source_key=record_key,
            )
            instruction = result.instruction
            if instruction is None:
                return result

            await store.relocate(
                instruction.source_key,
                instruction.target_key,
                instruction.record,
                replace_keys=occupied,
            )
        except PersistenceError as exc:
            logger.error("[MOVER] Move of %s failed: %s", record_key, exc)
            return MoveResult(
                ok=False,
                error=ErrorKind.PERSISTENCE,
                message=str(exc),
                state=MoveState.REJECTED,
                target_date=target_date,
            )

        logger.info(
            "[MOVER] Moved %s -> %s (time %s)",
            instruction.source_key,
            instruction.target_key,
            instruction.record.posting_time,
        )
        return replace(result, state=MoveState.COMMITTED)

    async def _occupied_keys(
        self, store: PostStore, record: PostRecord, record_key: str, target_date: date
    ) -> List[str]:
        platform = record.platform or self.default_platform
        candidates = [build_record_key(target_date, platform)]
        if platform is self.default_platform:
            # Legacy bare-date records belong to the default platform
            candidates.append(build_record_key(target_date))

        occupied: List[str] = []
        for key in candidates:
            if key != record_key and await store.exists(key):
                occupied.append(key)
        return occupied


__all__ = [
    "SlotMover",
    "build_record_key",
    "parse_record_key",
]
