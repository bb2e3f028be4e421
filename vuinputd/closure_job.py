"""A job whose work is given as a callable."""

from __future__ import annotations

from typing import Awaitable, Callable

from .job import Job, JobTarget


class ClosureJob(Job):
    """Job built from a callable that receives the job and returns an awaitable."""

    def __init__(
        self,
        desc: str,
        target: JobTarget,
        execute_after_cancellation: bool,
        task_creator: Callable[["ClosureJob"], Awaitable[None]],
    ) -> None:
        self._desc = str(desc)
        self._target = target
        self._execute_after_cancellation = execute_after_cancellation
        self._task_creator = task_creator

    def desc(self) -> str:
        return self._desc

    def job_target(self) -> JobTarget:
        return self._target

    def execute_after_cancellation(self) -> bool:
        return self._execute_after_cancellation

    def create_task(self) -> Awaitable[None]:
        return self._task_creator(self)