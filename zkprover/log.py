"""
Logging helpers.

Prover pipeline messages carry a fixed "[ZKPROVER]" header so they can be
grepped out of mixed uvicorn / application logs.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

MSG_HEADER = "ZKPROVER"

log = logging.getLogger("zkprover")


def tagged(msg: str) -> str:
    return f"[{MSG_HEADER}] {msg}"


def log_info(msg: str, logger: Optional[logging.Logger] = None) -> None:
    (logger or log).info(tagged(msg))


def log_warning(msg: str, logger: Optional[logging.Logger] = None) -> None:
    (logger or log).warning(tagged(msg))


def log_error(msg: str, logger: Optional[logging.Logger] = None) -> None:
    (logger or log).error(tagged(msg))


def configure_logging(level: str = "INFO") -> None:
    # Basic logging if caller hasn't configured it
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


class Stopwatch:
    """
    Elapsed-time logger.

        sw = Stopwatch()
        ...
        sw.end("finish loading params")   # logs "... (1.234s)"
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or log
        self._t0 = time.perf_counter()

    def start(self) -> None:
        self._t0 = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._t0

    def end(self, msg: str) -> float:
        dt = self.elapsed
        self._log.info(tagged(f"{msg} ({dt:.3f}s)"))
        return dt


__all__ = ["tagged", "log_info", "log_warning", "log_error", "configure_logging", "Stopwatch"]
