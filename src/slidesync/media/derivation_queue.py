"""Single-worker queue serializing media derivations."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass

import structlog

from ..scenes.scenes_models import Scene
from .media_service import DerivedArtifacts, MediaDerivationPipeline

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class _DerivationJob:
    scene: Scene
    future: asyncio.Future[DerivedArtifacts]


class DerivationQueue:
    """Run derivations one at a time, in submission order.

    Callers ``await submit(scene)`` and resume once their job finished. A single
    worker task consumes the queue, so at most one encoder runs at any moment.
    The worker is started lazily on first submit if :meth:`start` was not
    called. A job that already started cannot be aborted.
    """

    def __init__(self, pipeline: MediaDerivationPipeline) -> None:
        self._pipeline = pipeline
        self._queue: asyncio.Queue[_DerivationJob] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name="slidesync-derivation-worker")

    async def stop(self) -> None:
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        queue, self._queue = self._queue, None
        while queue is not None and not queue.empty():
            queue.get_nowait().future.cancel()

    async def submit(self, scene: Scene) -> DerivedArtifacts:
        if not self.running:
            self.start()
        assert self._queue is not None
        future: asyncio.Future[DerivedArtifacts] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_DerivationJob(scene=scene, future=future))
        return await future

    async def __call__(self, scene: Scene) -> DerivedArtifacts:
        return await self.submit(scene)

    async def _run(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            job = await queue.get()
            try:
                if job.future.cancelled():
                    continue
                result = await self._pipeline.derive(job.scene)
            except asyncio.CancelledError:
                job.future.cancel()
                raise
            except Exception as exc:
                logger.exception(
                    "media.queue.job_failed", scene_id=job.scene.id, filename=job.scene.filename
                )
                if not job.future.done():
                    job.future.set_exception(exc)
            else:
                self.processed += 1
                if not job.future.done():
                    job.future.set_result(result)
            finally:
                queue.task_done()


__all__ = ["DerivationQueue"]
