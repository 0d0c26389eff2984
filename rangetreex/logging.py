from __future__ import annotations

import logging

_ROOT = "rangetreex"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger namespaced under ``rangetreex``."""

    if not name:
        return logging.getLogger(_ROOT)
    return logging.getLogger(f"{_ROOT}.{name}")


__all__ = ["get_logger"]
