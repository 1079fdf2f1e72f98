"""Protocol interfaces shared across otakuproxy layers."""

from .cache import CacheBackend

__all__ = ["CacheBackend"]
