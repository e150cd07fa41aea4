import logging
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Event, Semaphore
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5  # Backblaze can do 10 with exponential backoff, so let's try 5

Job = Callable[[], None]


class JobPool:
    """Runs independent jobs with at most `max_parallel` in flight.

    Every job outcome is collected: `run` returns one `Exception | None` per
    job, in job order. Jobs that had not started when the pool was cancelled
    (or stopped) are never called and report None.
    """

    def __init__(
        self,
        max_parallel: int = DEFAULT_MAX_WORKERS,
        cancel_event: Event | None = None,
        sequential: bool = False,
    ) -> None:
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be at least 1, got {max_parallel}")
        self.max_parallel = max_parallel
        self.cancel_event = cancel_event or Event()
        self.sequential = sequential or max_parallel == 1
        self._stop = Event()

    def stop(self) -> None:
        """Keep queued jobs from starting, in flight jobs still finish."""
        self._stop.set()

    def should_stop(self) -> bool:
        return self.cancel_event.is_set() or self._stop.is_set()

    def _run_one(self, job: Job) -> Exception | None:
        if self.should_stop():
            return None
        try:
            job()
            return None
        except Exception as e:
            return e

    def _run_sequential(self, jobs: list[Job]) -> list[Exception | None]:
        return [self._run_one(job) for job in jobs]

    def _run_parallel(self, jobs: list[Job]) -> list[Exception | None]:
        results: list[Exception | None] = [None] * len(jobs)
        futures: list[tuple[int, Future[Exception | None]]] = []
        semaphore = Semaphore(self.max_parallel)
        with ThreadPoolExecutor(
            max_workers=self.max_parallel, thread_name_prefix="part-copy"
        ) as executor:
            for i, job in enumerate(jobs):
                # If we are back filled on the workers, then we stall.
                semaphore.acquire()
                if self.should_stop():
                    semaphore.release()
                    logger.debug("pool stopped, skipping %d queued jobs", len(jobs) - i)
                    break
                fut = executor.submit(self._run_one, job)
                fut.add_done_callback(lambda _: semaphore.release())
                futures.append((i, fut))

            for i, fut in futures:
                results[i] = fut.result()
        return results

    def run(self, jobs: list[Job]) -> list[Exception | None]:
        if not jobs:
            return []
        if self.sequential:
            return self._run_sequential(jobs)
        return self._run_parallel(jobs)
