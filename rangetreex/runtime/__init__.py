"""Validated runtime settings shared by the config cache and the ``Runtime`` façade."""

from .model import RuntimeModel

__all__ = ["RuntimeModel"]
