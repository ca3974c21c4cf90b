"""
Background install/update jobs.

Each job is one asyncio task that owns its inputs and resolves to a single
Plugin or exception. The owner polls without blocking and applies results
itself; job coroutines never touch caller state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional

from skir.models.plugin import Plugin

if TYPE_CHECKING:
    from skir.core.store import PluginStore

logger = logging.getLogger(__name__)

JobKind = Literal["install", "update"]


@dataclass
class Job:
    """A running install or update."""

    kind: JobKind
    description: str  # The ref for installs, owner/repo for updates
    task: asyncio.Task
    plugin: Optional[Plugin] = None  # Input plugin for updates


@dataclass
class JobResult:
    """The single outcome of a finished job."""

    job: Job
    plugin: Optional[Plugin] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> JobKind:
        return self.job.kind


class JobRunner:
    """Spawns store operations as tasks and collects their results."""

    def __init__(self, store: "PluginStore"):
        self.store = store
        self._jobs: list[Job] = []

    def spawn_install(self, ref: str) -> Job:
        task = asyncio.create_task(self.store.install(ref), name=f"install:{ref}")
        job = Job(kind="install", description=ref, task=task)
        self._jobs.append(job)
        logger.debug(f"Spawned install job for {ref}")
        return job

    def spawn_update(self, plugin: Plugin) -> Job:
        task = asyncio.create_task(self.store.update(plugin), name=f"update:{plugin.slug}")
        job = Job(kind="update", description=plugin.slug, task=task, plugin=plugin)
        self._jobs.append(job)
        logger.debug(f"Spawned update job for {plugin.slug}")
        return job

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def has_pending(self) -> bool:
        return bool(self._jobs)

    def poll(self) -> list[JobResult]:
        """Collect every finished job without blocking.

        Finished jobs are removed from the back of the list first so earlier
        indices stay valid while draining.
        """
        finished = [i for i, job in enumerate(self._jobs) if job.task.done()]
        results: list[JobResult] = []

        for i in reversed(finished):
            job = self._jobs.pop(i)
            results.append(self._collect(job))

        return results

    @staticmethod
    def _collect(job: Job) -> JobResult:
        if job.task.cancelled():
            return JobResult(job=job, error=asyncio.CancelledError(f"{job.kind} cancelled"))
        error = job.task.exception()
        if error is not None:
            logger.debug(f"{job.kind} job for {job.description} failed: {error}")
            return JobResult(job=job, error=error)
        return JobResult(job=job, plugin=job.task.result())

    async def join(self) -> None:
        """Wait for every pending job to finish. Results stay queued for poll()."""
        if self._jobs:
            await asyncio.gather(*(job.task for job in self._jobs), return_exceptions=True)

    def cancel_all(self) -> int:
        """Cancel outstanding jobs; returns how many were still running."""
        cancelled = 0
        for job in self._jobs:
            if not job.task.done():
                job.task.cancel()
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} running jobs")
        return cancelled
