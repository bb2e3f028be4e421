"""Job dispatcher that runs async jobs in order, one queue per target."""

from __future__ import annotations

import abc
import asyncio
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable

from .process_tools import RequestingProcess

log = logging.getLogger(__name__)


class _TargetKind(enum.Enum):
    HOST = "host"
    BACKGROUND_LOOP = "background-loop"
    CONTAINER = "container"


@dataclass(frozen=True)
class JobTarget:
    """Where a job runs: the host, a free-running background loop, or a container."""

    kind: _TargetKind
    process: RequestingProcess | None = None

    @classmethod
    def host(cls) -> "JobTarget":
        return cls(_TargetKind.HOST)

    @classmethod
    def background_loop(cls) -> "JobTarget":
        return cls(_TargetKind.BACKGROUND_LOOP)

    @classmethod
    def container(cls, process: RequestingProcess) -> "JobTarget":
        return cls(_TargetKind.CONTAINER, process)

    @property
    def is_background_loop(self) -> bool:
        return self.kind is _TargetKind.BACKGROUND_LOOP

    def __repr__(self) -> str:
        if self.kind is _TargetKind.CONTAINER:
            return f"JobTarget.container(nsroot={self.process.nsroot!r})"
        return f"JobTarget.{self.kind.name.lower()}()"


class Job(abc.ABC):
    """A unit of async work routed to a target."""

    @abc.abstractmethod
    def desc(self) -> str:
        """Free-form description used for logging."""

    @abc.abstractmethod
    def job_target(self) -> JobTarget:
        """The target whose queue runs this job."""

    def execute_after_cancellation(self) -> bool:
        """Whether the job should still run after cancellation."""
        return False

    @abc.abstractmethod
    def create_task(self) -> Awaitable[None]:
        """Create the awaitable that carries out the job."""

    def __repr__(self) -> str:
        return f"Job(target={self.job_target()!r}, desc={self.desc()!r})"


class DispatcherClosedError(RuntimeError):
    """Raised when a job is dispatched to a closed dispatcher."""


_CLOSED = object()


async def _run_job(job: Job) -> None:
    try:
        await job.create_task()
    except asyncio.CancelledError:
        raise
    except Exception:
        log.exception("Job %r failed", job.desc())


async def _job_target_loop(target: JobTarget, queue: asyncio.Queue) -> None:
    log.info("Starting loop for %r", target)
    while (job := await queue.get()) is not _CLOSED:
        log.debug("Executing job: %s", job.desc())
        await _run_job(job)
    log.info("Loop for %r ended — channel closed", target)


class Dispatcher:
    """Routes jobs to per-target loops running on a dedicated thread.

    Jobs for the same target run one after another in dispatch order; jobs for
    background loops run concurrently and are cancelled when the dispatcher
    closes. Jobs already queued for other targets still run before shutdown.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False
        self._ready = threading.Event()
        self._loop = asyncio.new_event_loop()
        self._inbox: asyncio.Queue | None = None
        self._thread: threading.Thread | None = threading.Thread(
            target=self._thread_main, name="job-dispatcher", daemon=True
        )
        self._thread.start()
        self._ready.wait()

    def _thread_main(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._dispatcher_loop())
        finally:
            self._loop.close()

    async def _dispatcher_loop(self) -> None:
        self._inbox = asyncio.Queue()
        self._ready.set()
        queues: dict[JobTarget, asyncio.Queue] = {}
        target_tasks: list[asyncio.Task] = []
        background_tasks: list[asyncio.Task] = []

        while (job := await self._inbox.get()) is not _CLOSED:
            target = job.job_target()
            if target.is_background_loop:
                background_tasks.append(asyncio.ensure_future(_run_job(job)))
                log.info("Spawned new background loop for %r", job.desc())
                continue
            queue = queues.get(target)
            if queue is None:
                queue = asyncio.Queue()
                queues[target] = queue
                target_tasks.append(asyncio.ensure_future(_job_target_loop(target, queue)))
                log.info("Spawned new loop for %r", target)
            queue.put_nowait(job)

        log.info("Channel has been closed")
        for queue in queues.values():
            queue.put_nowait(_CLOSED)
        for task in background_tasks:
            task.cancel()
        await asyncio.gather(*target_tasks, *background_tasks, return_exceptions=True)
        log.info("Global dispatcher shutting down gracefully")

    def dispatch(self, job: Job) -> None:
        """Queue a job; raises DispatcherClosedError after close()."""
        with self._lock:
            if self._closed:
                raise DispatcherClosedError("Dispatcher already closed")
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, job)

    def close(self) -> None:
        """Stop accepting jobs and cancel background loops."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            log.debug("Checking for running jobs before shutdown")
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, _CLOSED)
        log.debug("Pending jobs canceled")

    def wait_until_finished(self) -> None:
        """Close the dispatcher and block until its thread has finished."""
        self.close()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join()