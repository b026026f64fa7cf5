"""
Bounded prover worker pool.

Each worker thread owns one ProverOrchestrator (and therefore one backend
instance), built by the factory when the thread starts. Jobs are callables
``job(orchestrator) -> result``; they never see another worker's
orchestrator. Loaded Parameters are shared read-only between all of them.

There is no cancellation: a submitted job runs to completion or failure.
Jobs beyond the worker count wait in FIFO order.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

from .orchestrator import ProverOrchestrator

log = logging.getLogger("zkprover.workers")

T = TypeVar("T")
Job = Callable[[ProverOrchestrator], T]


class ProverPool:
    def __init__(
        self,
        factory: Callable[[], ProverOrchestrator],
        workers: int = 3,
        *,
        name: str = "prover",
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._factory = factory
        self._local = threading.local()
        self.workers = workers
        self._executor = ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix=name,
            initializer=self._init_worker,
        )

    def _init_worker(self) -> None:
        self._local.orchestrator = self._factory()
        log.debug("worker %s ready", threading.current_thread().name)

    def _call(self, job: Job) -> T:
        orchestrator: Optional[ProverOrchestrator] = getattr(self._local, "orchestrator", None)
        if orchestrator is None:
            raise RuntimeError("worker has no orchestrator")
        return job(orchestrator)

    def submit(self, job: Job) -> "Future[T]":
        return self._executor.submit(self._call, job)

    def run(self, job: Job) -> T:
        """Submit and wait."""
        return self.submit(job).result()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ProverPool":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()


__all__ = ["ProverPool", "Job"]
