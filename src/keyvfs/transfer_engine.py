"""
Runs independent per-chunk tasks (chunk uploads and payload downloads) on a bounded thread pool.

Failure policy is "attempt all, first error wins":
    - a failing task never cancels the tasks already running or still waiting for a slot.
    - the first error seen is kept and handed back once every task has finished, later errors are only logged.
So after a failed upload some chunks may already be in the bucket, the caller has to clean up or re-run.

Tasks are taken from the (possibly lazy) task iterable only when a slot is free,
so at most 'concurrency' tasks (and the chunks they hold) are alive at once.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8

T = TypeVar("T")

# A task is any zero-argument callable, e.g. a functools.partial of an upload function.
TransferTask = Callable[[], T]
# Called with (number of finished tasks, index of the task that just finished).
ProgressCallback = Callable[[int, int], None]


@dataclass
class TransferOutcome(Generic[T]):
    """
    Outcome of running a set of tasks.

    results[i] holds the return value of task i, or None if it failed.
    """

    results: list[T | None] = field(default_factory=list)
    first_error: BaseException | None = None
    failed_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.first_error is None

    def raise_first_error(self) -> None:
        """Raise the first error seen while running the tasks, if there was one."""
        if self.first_error is not None:
            raise self.first_error


class ConcurrentTransferEngine:
    """Executes tasks with at most 'concurrency' of them running at the same time."""

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY):
        if concurrency < 1:
            raise ValueError(f"Concurrency must be a positive integer, got {concurrency}.")
        self.concurrency = concurrency

    def run(
        self,
        tasks: Iterable[TransferTask[T]],
        on_task_done: ProgressCallback | None = None,
    ) -> TransferOutcome[T]:
        """
        Run every task and wait for all of them to finish.

        If iterating 'tasks' itself raises (e.g. the source file can't be read), no more tasks are started,
        the running ones are waited for and the exception is re-raised.
        """
        slots = threading.BoundedSemaphore(self.concurrency)
        lock = threading.Lock()
        results: dict[int, T] = {}
        outcome: TransferOutcome[T] = TransferOutcome()
        finished = 0

        def settle(index: int, future: Future) -> None:
            nonlocal finished
            try:
                error = future.exception()
                if error is None:
                    # each task owns its own index, no lock needed for this write
                    results[index] = future.result()
                else:
                    logger.error(f"Task {index + 1} failed: {error}")

                with lock:
                    finished += 1
                    if error is not None:
                        outcome.failed_count += 1
                        if outcome.first_error is None:
                            outcome.first_error = error
                    if on_task_done is not None:
                        on_task_done(finished, index)
            finally:
                slots.release()

        task_count = 0
        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            for index, task in enumerate(tasks):
                slots.acquire()
                future = executor.submit(task)
                future.add_done_callback(lambda done, index=index: settle(index, done))
                task_count += 1

        outcome.results = [results.get(index) for index in range(task_count)]
        logger.debug(f"Ran {task_count} task(s) with concurrency {self.concurrency}, {outcome.failed_count} failed.")
        return outcome
