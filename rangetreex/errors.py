from __future__ import annotations


class InvalidConfigurationError(ValueError):
    """Raised when a request is incompatible with how the searcher was configured."""


__all__ = ["InvalidConfigurationError"]
