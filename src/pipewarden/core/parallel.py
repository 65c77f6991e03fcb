"""Parallel execution of independent jobs with a join barrier."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


class ParallelExecutor:
    """Runs named jobs concurrently and waits for all of them.

    Jobs are expected to report their own failures in their return value.
    An exception escaping a job is handed to ``on_error`` so that every job
    still yields exactly one result.
    """

    def __init__(self, max_workers: int = 4, sequential: bool = False) -> None:
        self._max_workers = max(1, max_workers)
        self._sequential = sequential

    def run(
        self,
        jobs: Sequence[Tuple[str, Callable[[], T]]],
        on_error: Callable[[str, Exception], T],
    ) -> List[T]:
        """Run every job and return results in submission order.

        Args:
            jobs: (name, callable) pairs.
            on_error: Builds a result for a job that raised.

        Returns:
            One result per job, in the order the jobs were given.
        """
        if not jobs:
            return []

        if self._sequential or len(jobs) == 1:
            LOGGER.debug(f"Running {len(jobs)} job(s) sequentially")
            return [self._run_one(name, func, on_error) for name, func in jobs]

        LOGGER.debug(f"Running {len(jobs)} jobs with {self._max_workers} workers")
        results: Dict[int, T] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {
                pool.submit(func): (index, name) for index, (name, func) in enumerate(jobs)
            }
            for future in as_completed(futures):
                index, name = futures[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    LOGGER.error(f"Job {name} raised: {e}")
                    results[index] = on_error(name, e)
        return [results[i] for i in range(len(jobs))]

    @staticmethod
    def _run_one(
        name: str,
        func: Callable[[], T],
        on_error: Callable[[str, Exception], T],
    ) -> T:
        try:
            return func()
        except Exception as e:
            LOGGER.error(f"Job {name} raised: {e}")
            return on_error(name, e)
