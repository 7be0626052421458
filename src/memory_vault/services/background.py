"""Fire-and-forget persistence of extracted memory candidates.

A bounded queue drained by a single task in small concurrent batches. When the
queue is full the oldest waiting candidate is dropped and counted. Nothing is
durable: pending candidates are lost when the process exits.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

from memory_vault.core.config import MaintenanceConfig, settings
from memory_vault.core.errors import is_expected_outcome
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import MemoryCandidate

logger = get_logger(__name__)

SaveCandidate = Callable[[MemoryCandidate], Awaitable[Any]]


class BackgroundMemoryQueue:
    def __init__(self, save: SaveCandidate, config: MaintenanceConfig | None = None) -> None:
        config = config or settings.maintenance
        self._save = save
        self.capacity = config.queue_capacity
        self.batch_size = config.batch_size
        self.batch_pause = config.batch_pause_seconds
        self._queue: asyncio.Queue[MemoryCandidate] = asyncio.Queue(maxsize=self.capacity)
        self._worker: asyncio.Task[None] | None = None
        self.submitted = 0
        self.processed = 0
        self.rejected = 0
        self.failed = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._drain(), name="memory-background-queue")

    def submit(self, candidate: MemoryCandidate) -> None:
        """Enqueue without blocking; evicts the oldest candidate when full."""
        if self._queue.full():
            oldest = self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
            logger.warning(
                "Background queue full, dropped oldest candidate",
                user_id=oldest.user_id,
                capacity=self.capacity,
                dropped=self.dropped,
            )
        self._queue.put_nowait(candidate)
        self.submitted += 1
        self.start()

    async def _process(self, candidate: MemoryCandidate) -> None:
        try:
            await self._save(candidate)
            self.processed += 1
        except Exception as e:
            if is_expected_outcome(e):
                self.rejected += 1
                logger.info("Background candidate not stored", user_id=candidate.user_id, reason=str(e))
            else:
                self.failed += 1
                logger.error("Background candidate failed", user_id=candidate.user_id, error=e)

    async def _drain(self) -> None:
        while True:
            batch = [await self._queue.get()]
            while len(batch) < self.batch_size and not self._queue.empty():
                batch.append(self._queue.get_nowait())

            try:
                await asyncio.gather(*(self._process(candidate) for candidate in batch))
            finally:
                for _ in batch:
                    self._queue.task_done()

            if self.batch_pause:
                await asyncio.sleep(self.batch_pause)

    async def join(self) -> None:
        """Wait until every submitted candidate has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        if self.pending:
            logger.info("Background queue stopped with pending candidates", pending=self.pending)

    def stats(self) -> dict[str, int]:
        return {
            "pending": self.pending,
            "submitted": self.submitted,
            "processed": self.processed,
            "rejected": self.rejected,
            "failed": self.failed,
            "dropped": self.dropped,
        }
