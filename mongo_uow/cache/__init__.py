from .base import CacheEntry, ICache
from .memory import DISPOSE, RESET, MemoryCache

__all__ = ["CacheEntry", "DISPOSE", "ICache", "MemoryCache", "RESET"]
