# jobs.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from .model import ExitStatus, Job

if TYPE_CHECKING:
    from .executor import ChildChain


@dataclass
class BackgroundJob:
    id: int
    job: Job
    chain: "ChildChain"


@dataclass(frozen=True)
class FinishedJob:
    id: int
    job: Job
    status: ExitStatus


class JobTable:
    """
    Background jobs that are still running.

    Nothing is reaped asynchronously: the read-eval loop calls reap() before
    every prompt, which polls each job without blocking.
    """

    def __init__(self) -> None:
        self._jobs: Dict[int, BackgroundJob] = {}
        self._next_id = 1

    def add(self, job: Job, chain: "ChildChain") -> int:
        job_id = self._next_id
        self._next_id += 1
        self._jobs[job_id] = BackgroundJob(job_id, job, chain)
        return job_id

    def get(self, job_id: int) -> Optional[BackgroundJob]:
        return self._jobs.get(job_id)

    def reap(self) -> List[FinishedJob]:
        finished: List[FinishedJob] = []
        for job_id, entry in list(self._jobs.items()):
            status = entry.chain.poll()
            if status is not None:
                del self._jobs[job_id]
                finished.append(FinishedJob(job_id, entry.job, status))
        return finished

    def wait_all(self) -> List[FinishedJob]:
        """Block until every tracked job finished."""
        finished: List[FinishedJob] = []
        for job_id, entry in sorted(self._jobs.items()):
            finished.append(FinishedJob(job_id, entry.job, entry.chain.wait()))
        self._jobs.clear()
        return finished

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[BackgroundJob]:
        return iter(list(self._jobs.values()))
