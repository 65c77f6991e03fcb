"""Tests for the parallel executor."""

from __future__ import annotations

import threading
from typing import List, Tuple

from pipewarden.core.parallel import ParallelExecutor


def _on_error(name: str, error: Exception) -> str:
    return f"{name} failed: {error}"


class TestParallelExecutor:
    """Tests for ParallelExecutor."""

    def test_empty(self) -> None:
        assert ParallelExecutor().run([], on_error=_on_error) == []

    def test_results_in_submission_order(self) -> None:
        """Test results come back in the order jobs were given."""
        jobs = [(str(i), (lambda i=i: f"job-{i}")) for i in range(8)]
        results = ParallelExecutor(max_workers=4).run(jobs, on_error=_on_error)
        assert results == [f"job-{i}" for i in range(8)]

    def test_exception_goes_to_on_error(self) -> None:
        """Test that one raising job does not prevent the others."""

        def boom() -> str:
            raise RuntimeError("kaput")

        jobs = [("ok", lambda: "fine"), ("bad", boom), ("ok2", lambda: "also fine")]
        results = ParallelExecutor(max_workers=3).run(jobs, on_error=_on_error)
        assert results == ["fine", "bad failed: kaput", "also fine"]

    def test_sequential_runs_on_calling_thread(self) -> None:
        seen: List[Tuple[str, int]] = []

        def record(name: str) -> str:
            seen.append((name, threading.get_ident()))
            return name

        jobs = [("a", lambda: record("a")), ("b", lambda: record("b"))]
        results = ParallelExecutor(sequential=True).run(jobs, on_error=_on_error)
        assert results == ["a", "b"]
        assert [name for name, _ in seen] == ["a", "b"]
        assert all(ident == threading.get_ident() for _, ident in seen)

    def test_jobs_run_concurrently(self) -> None:
        """Test that jobs overlap when run in parallel."""
        barrier = threading.Barrier(3, timeout=5)

        def wait() -> bool:
            barrier.wait()
            return True

        jobs = [(str(i), wait) for i in range(3)]
        assert ParallelExecutor(max_workers=3).run(jobs, on_error=_on_error) == [True] * 3
