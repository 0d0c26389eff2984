from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator

import psutil

from rangetreex import config as rx_config


@dataclass
class OperationLog:
    """Mutable record handed to the body of :func:`log_operation`."""

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    wall_ms: float = 0.0
    cpu_user_ms: float = 0.0
    rss_delta: int = 0

    def add_metadata(self, **values: Any) -> None:
        self.metadata.update(values)

    def format(self) -> str:
        parts = [
            f"op={self.name}",
            f"wall_ms={self.wall_ms:.3f}",
            f"cpu_user_ms={self.cpu_user_ms:.3f}",
            f"rss_delta={self.rss_delta}",
        ]
        parts.extend(f"{key}={value}" for key, value in self.metadata.items())
        return " ".join(parts)


@contextmanager
def log_operation(
    logger: logging.Logger,
    name: str,
    *,
    enabled: bool | None = None,
) -> Iterator[OperationLog | None]:
    """Time the wrapped block and log wall/CPU/RSS usage when it completes.

    Yields ``None`` when diagnostics are disabled so callers can skip metadata
    collection entirely.
    """

    if enabled is None:
        enabled = rx_config.runtime_config().enable_diagnostics
    if not enabled:
        yield None
        return

    process = psutil.Process()
    rss_before = process.memory_info().rss
    cpu_before = process.cpu_times().user
    start = time.perf_counter()
    op_log = OperationLog(name=name)
    yield op_log
    op_log.wall_ms = (time.perf_counter() - start) * 1e3
    op_log.cpu_user_ms = (process.cpu_times().user - cpu_before) * 1e3
    op_log.rss_delta = int(process.memory_info().rss - rss_before)
    logger.info("%s", op_log.format())


__all__ = ["OperationLog", "log_operation"]
