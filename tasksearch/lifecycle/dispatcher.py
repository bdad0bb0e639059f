"""
Background dispatch of embedding lifecycle jobs.

Source-record writes hand their follow-up work to the dispatcher and
return immediately. Jobs sit in bounded in-process queues, one per worker:
1. submit_upsert / submit_delete enqueue without waiting
2. Jobs for a source ID always land on the same worker queue, so writes
   to one record are applied in submission order
3. Workers pop jobs and run them through the lifecycle manager
4. stop() drains what is queued (up to a timeout) and abandons the rest

A full queue drops the job with a warning; the next backfill repairs it.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from tasksearch.lifecycle.config import DispatcherConfig
from tasksearch.lifecycle.manager import EmbeddingLifecycleManager
from tasksearch.observability.logging import bind_context
from tasksearch.observability.metrics import get_metrics
from tasksearch.sources.schemas import TaskRecord

logger = structlog.get_logger(__name__)


@dataclass
class EmbeddingJob:
    """
    A unit of lifecycle work.

    Attributes:
        action: "upsert" carries the record, "delete" only the source ID
        source_id: ID of the affected source record
        record: Snapshot of the record taken after its write committed
        enqueued_at: Monotonic time of submission
    """

    action: Literal["upsert", "delete"]
    source_id: str
    record: TaskRecord | None = None
    enqueued_at: float = field(default_factory=time.monotonic)


class EmbeddingDispatcher:
    """
    Bounded per-worker queues in front of the lifecycle manager.

    Each worker owns one queue and processes it serially. A job is routed
    by its source ID, so an older snapshot can never overwrite a newer one.

    Usage:
        dispatcher = EmbeddingDispatcher(manager)
        await dispatcher.start()
        dispatcher.submit_upsert(record)   # returns at once
        await dispatcher.stop()            # drain, then cancel workers
    """

    def __init__(
        self,
        manager: EmbeddingLifecycleManager,
        config: DispatcherConfig | None = None,
    ):
        self._manager = manager
        self._config = config or DispatcherConfig()
        self._queues: list[asyncio.Queue[EmbeddingJob]] = [
            asyncio.Queue(maxsize=self._config.max_queue_size)
            for _ in range(self._config.worker_count)
        ]
        self._workers: list[asyncio.Task] = []
        self._running = False
        self._metrics = get_metrics()

        self._stats = {
            "submitted": 0,
            "completed": 0,
            "dropped": 0,
            "abandoned": 0,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return sum(queue.qsize() for queue in self._queues)

    def _queue_for(self, source_id: str) -> asyncio.Queue[EmbeddingJob]:
        return self._queues[hash(source_id) % len(self._queues)]

    async def _join_all(self) -> None:
        await asyncio.gather(*(queue.join() for queue in self._queues))

    async def start(self) -> None:
        """Spawn the worker pool. Calling start() twice is a no-op."""
        if self._running:
            return

        self._running = True
        self._workers = [
            asyncio.create_task(
                self._worker_loop(i, queue), name=f"embedding-dispatch-{i}"
            )
            for i, queue in enumerate(self._queues)
        ]
        logger.info(
            "Embedding dispatcher started",
            workers=self._config.worker_count,
            max_queue_size=self._config.max_queue_size,
        )

    async def stop(self, drain: bool = True) -> None:
        """
        Stop accepting jobs and shut the worker pool down.

        Args:
            drain: Wait up to drain_timeout_seconds for queued jobs first.
                Jobs still queued afterwards are abandoned and counted.
        """
        if not self._running:
            return

        self._running = False
        logger.info("Stopping embedding dispatcher", pending=self.pending, drain=drain)

        if drain and self._workers:
            try:
                async with asyncio.timeout(self._config.drain_timeout_seconds):
                    await self._join_all()
            except TimeoutError:
                logger.warning(
                    "Dispatcher drain timed out",
                    pending=self.pending,
                    timeout=self._config.drain_timeout_seconds,
                )

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        abandoned = self._discard_pending()
        if abandoned:
            self._stats["abandoned"] += abandoned
            self._metrics.record_dispatch_dropped("abandoned", abandoned)
            logger.warning(
                "Abandoned queued embedding jobs; backfill will recover them",
                abandoned=abandoned,
            )

        self._metrics.set_dispatch_queue_depth(0)
        logger.info("Embedding dispatcher stopped", **self._stats)

    def submit_upsert(self, record: TaskRecord) -> bool:
        """
        Queue a create/update of a source record's embedding.

        Never blocks and never raises.

        Returns:
            True if queued, False if dropped
        """
        return self._submit(EmbeddingJob(action="upsert", source_id=record.id, record=record))

    def submit_delete(self, source_id: str) -> bool:
        """Queue removal of a source record's embedding. Never blocks."""
        return self._submit(EmbeddingJob(action="delete", source_id=source_id))

    def _submit(self, job: EmbeddingJob) -> bool:
        if not self._running:
            return self._drop(job, "not_running")

        try:
            self._queue_for(job.source_id).put_nowait(job)
        except asyncio.QueueFull:
            return self._drop(job, "queue_full")

        self._stats["submitted"] += 1
        self._metrics.set_dispatch_queue_depth(self.pending)
        return True

    def _drop(self, job: EmbeddingJob, reason: str) -> bool:
        self._stats["dropped"] += 1
        self._metrics.record_dispatch_dropped(reason)
        logger.warning(
            "Embedding job dropped",
            action=job.action,
            source_id=job.source_id,
            reason=reason,
        )
        return False

    def _discard_pending(self) -> int:
        discarded = 0
        for queue in self._queues:
            while True:
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                queue.task_done()
                discarded += 1
        return discarded

    async def _worker_loop(self, worker_id: int, queue: asyncio.Queue[EmbeddingJob]) -> None:
        """Pop and run jobs from this worker's queue until cancelled."""
        # Each worker task runs in its own context copy
        bind_context(dispatch_worker=worker_id)
        while True:
            job = await queue.get()
            outcome = "completed"
            try:
                await self._run_job(job)
            except asyncio.CancelledError:
                # stop() cut the job short; it did not complete
                outcome = "abandoned"
                self._metrics.record_dispatch_dropped("abandoned")
                raise
            except Exception:
                # The manager is fail-soft; this only guards the worker itself
                logger.exception(
                    "Embedding dispatch worker error",
                    worker_id=worker_id,
                    source_id=job.source_id,
                )
            finally:
                queue.task_done()
                self._stats[outcome] += 1
                self._metrics.set_dispatch_queue_depth(self.pending)

    async def _run_job(self, job: EmbeddingJob) -> None:
        if job.action == "upsert" and job.record is not None:
            await self._manager.on_upsert(job.record)
        elif job.action == "delete":
            await self._manager.on_delete(job.source_id)

    async def wait_idle(self) -> None:
        """Wait until every queued job has been processed."""
        await self._join_all()

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            "running": self._running,
            "workers": len(self._workers),
            "pending": self.pending,
            **self._stats,
        }
