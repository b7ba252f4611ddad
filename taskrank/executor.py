"""
Chunked execution over column arrays.

A query over tens of thousands of tasks must not block the host's event
loop. Work is split into fixed-size chunks; between chunks the executor
awaits the scheduler (asyncio.sleep(0) by default), which lets other
coroutines run, and checks the cancellation token.

Pipeline per query:
1. extract_columns(): one O(N) pass from TaskRecord objects into flat arrays
2. ChunkedExecutor.for_each_chunk(): batch work per [start, end) slice
3. ScoreCache: per-task breakdowns written once, read by later stages
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import numpy as np

from .errors import QueryCancelledError
from .models import ScoreBreakdown, TaskRecord

logger = logging.getLogger(__name__)


class Scheduler(ABC):
    """Where the executor suspends between chunks"""

    @abstractmethod
    async def yield_now(self) -> None:
        pass


class AsyncioScheduler(Scheduler):
    """Yield to the running event loop so other tasks (UI, I/O) get a turn"""

    async def yield_now(self) -> None:
        await asyncio.sleep(0)


class NullScheduler(Scheduler):
    """Never suspends; for batch jobs and the reference implementation"""

    async def yield_now(self) -> None:
        return None


class CancellationToken:
    """
    Cooperative cancellation flag owned by the caller.

    The executor checks it at every chunk boundary; once set, the running
    query raises QueryCancelledError and returns no partial result.
    """

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise QueryCancelledError(self.reason or "query cancelled")


@dataclass
class TaskColumns:
    """Parallel flat arrays, one entry per task, in input order"""
    tasks: List[TaskRecord]
    ids: List[str]
    texts: List[str]             # lowercased
    due: np.ndarray              # int64 date ordinal, 0 = none
    priority: np.ndarray         # int8 1..4, 0 = none
    statuses: List[str]

    def __len__(self) -> int:
        return len(self.tasks)


def extract_columns(tasks: Sequence[TaskRecord]) -> TaskColumns:
    """
    Flatten task records into columns in a single pass.

    Task ids are unique within the query: a second task with the same
    path, line and text gets a numeric suffix.
    """
    n = len(tasks)
    ids: List[str] = []
    texts: List[str] = []
    statuses: List[str] = []
    due = np.zeros(n, dtype=np.int64)
    priority = np.zeros(n, dtype=np.int8)
    seen: Dict[str, int] = {}

    for i, task in enumerate(tasks):
        task_id = task.task_id
        if task_id in seen:
            seen[task_id] += 1
            task_id = f"{task_id}-{seen[task_id]}"
        else:
            seen[task_id] = 0
        ids.append(task_id)
        texts.append(task.text.lower())
        statuses.append(task.status)
        if task.due_date is not None:
            due[i] = task.due_date.toordinal()
        if task.priority is not None:
            priority[i] = task.priority

    return TaskColumns(
        tasks=list(tasks),
        ids=ids,
        texts=texts,
        due=due,
        priority=priority,
        statuses=statuses,
    )


class ScoreCache:
    """Score breakdowns keyed by per-query task id"""

    def __init__(self):
        self._entries: Dict[str, ScoreBreakdown] = {}

    def put(self, task_id: str, breakdown: ScoreBreakdown) -> None:
        self._entries[task_id] = breakdown

    def get(self, task_id: str) -> Optional[ScoreBreakdown]:
        return self._entries.get(task_id)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def chunk_bounds(n: int, chunk_size: int) -> Iterator[tuple]:
    """[start, end) pairs covering range(n)"""
    for start in range(0, n, chunk_size):
        yield start, min(start + chunk_size, n)


class ChunkedExecutor:
    """
    Runs synchronous batch work in chunks with cooperative yields.

    Usage:
        executor = ChunkedExecutor(chunk_size=500)
        await executor.for_each_chunk(len(columns), score_chunk)
    """

    def __init__(
        self,
        chunk_size: int = 500,
        scheduler: Optional[Scheduler] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.chunk_size = max(int(chunk_size), 1)
        self.scheduler = scheduler or AsyncioScheduler()
        self.cancel_token = cancel_token or CancellationToken()
        self.chunks_processed = 0

    def check_cancelled(self) -> None:
        self.cancel_token.raise_if_cancelled()

    async def checkpoint(self) -> None:
        """Yield once and re-check cancellation (used around non-chunked steps)"""
        self.check_cancelled()
        await self.scheduler.yield_now()
        self.check_cancelled()

    async def for_each_chunk(self, n: int, fn: Callable[[int, int], None]) -> None:
        """
        Call fn(start, end) for every chunk of range(n), yielding in between.

        Raises:
            QueryCancelledError: If the token is cancelled before or between chunks
        """
        for start, end in chunk_bounds(n, self.chunk_size):
            self.check_cancelled()
            fn(start, end)
            self.chunks_processed += 1
            await self.scheduler.yield_now()
        self.check_cancelled()
