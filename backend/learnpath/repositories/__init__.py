"""SQL repositories backing the cache and the provider call log."""

from .cache_entries import SqlCacheStore
from .provider_calls import SqlProviderCallLog

__all__ = ["SqlCacheStore", "SqlProviderCallLog"]
