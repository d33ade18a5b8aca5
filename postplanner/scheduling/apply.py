"""
Apply step: writes a confirmed ``SchedulePreview`` to a post store.

Rows are written concurrently through a bounded worker pool.  Each row is
independent: a failing row is counted and reported, never aborting the
rest of the batch.  Caption generation for a freshly written record is
best effort; its failure is logged and the row still counts as created.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from postplanner.config import Settings, get_settings
from postplanner.scheduling.models import (
    ApplyFailure,
    ApplyResult,
    PlanSlot,
    PostRecord,
    SchedulePreview,
)
from postplanner.scheduling.store import CaptionGenerator, PostStore

logger = logging.getLogger(__name__)

_CREATED = "created"
_SKIPPED = "skipped"
_FAILED = "failed"


def record_for_slot(slot: PlanSlot, preview: SchedulePreview) -> PostRecord:
    """Build the record persisted for one preview row."""
    return PostRecord(
        date=slot.date,
        platform=preview.platform,
        starter_text=slot.starter_text,
        image_url=slot.image_url,
        posting_time=slot.posting_time,
        posting_time_source=slot.posting_time_source,
        status="input",
    )


class ScheduleApplier:
    """Persists preview rows with at most *concurrency* writes in flight.

    Args:
        store: Destination ``PostStore``.
        caption_generator: Optional collaborator invoked once per created
            record.
        concurrency: Size of the worker pool.
    """

    def __init__(
        self,
        store: PostStore,
        caption_generator: Optional[CaptionGenerator] = None,
        concurrency: int = 3,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.store = store
        self.caption_generator = caption_generator
        self.concurrency = concurrency

    @classmethod
    def from_settings(
        cls,
        store: PostStore,
        caption_generator: Optional[CaptionGenerator] = None,
        settings: Optional[Settings] = None,
    ) -> "ScheduleApplier":
        settings = settings or get_settings()
        return cls(store, caption_generator, concurrency=settings.apply_concurrency)

    async def apply(self, preview: SchedulePreview, overwrite: bool = False) -> ApplyResult:
        """
        Write every row of *preview*.

        Args:
            preview: Confirmed preview from the CsvMerger.
            overwrite: Replace records whose key already exists instead of
                skipping them.

        Returns:
            ``ApplyResult`` with created/skipped/failed counters and the
            per-key failure reasons.
        """
        if preview is None:
            raise ValueError("preview is required")

        semaphore = asyncio.Semaphore(self.concurrency)
        records = [record_for_slot(slot, preview) for slot in preview.rows]

        logger.info(
            "[APPLY] Writing %d %s posts (overwrite=%s, concurrency=%d)",
            len(records),
            preview.platform.value,
            overwrite,
            self.concurrency,
        )

        outcomes = await asyncio.gather(
            *(self._apply_one(semaphore, record, overwrite) for record in records)
        )

        failures: List[ApplyFailure] = sorted(
            (ApplyFailure(key=key, error=reason) for key, status, reason in outcomes if status == _FAILED),
            key=lambda f: f.key,
        )
        result = ApplyResult(
            created=sum(1 for _, status, _ in outcomes if status == _CREATED),
            skipped=sum(1 for _, status, _ in outcomes if status == _SKIPPED),
            failed=len(failures),
            failures=failures,
        )
        logger.info("[APPLY] %s", result.summary())
        return result

    async def _apply_one(
        self, semaphore: asyncio.Semaphore, record: PostRecord, overwrite: bool
    ) -> Tuple[str, str, str]:
        key = record.key
        async with semaphore:
            try:
                if not overwrite and await self.store.exists(key):
                    logger.debug("[APPLY] %s exists, skipping", key)
                    return key, _SKIPPED, ""
                await self.store.write(key, record)
            except Exception as exc:
                logger.error("[APPLY] Failed to write %s: %s", key, exc)
                return key, _FAILED, str(exc)

            if self.caption_generator is not None:
                try:
                    await self.caption_generator.generate(record)
                except Exception as exc:
                    logger.warning("[APPLY] Caption generation failed for %s: %s", key, exc)

        return key, _CREATED, ""


async def apply_preview(
    store: PostStore,
    preview: SchedulePreview,
    overwrite: bool = False,
    caption_generator: Optional[CaptionGenerator] = None,
) -> ApplyResult:
    """Convenience wrapper using the configured worker pool size."""
    applier = ScheduleApplier.from_settings(store, caption_generator)
    return await applier.apply(preview, overwrite=overwrite)


__all__ = [
    "record_for_slot",
    "ScheduleApplier",
    "apply_preview",
]
