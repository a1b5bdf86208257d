"""
Short-TTL read cache for catalogue and collection lookups.

Owned by the caller and passed in where it is needed; backed by one of the
Django cache aliases so tests and single-process setups use local memory
while deployments can point it at Redis.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.cache import BaseCache, caches

logger = logging.getLogger(__name__)

MISS = object()

DEFAULT_TTL_SECONDS = 300


class ReadCache:
    def __init__(
        self,
        backend: BaseCache | None = None,
        key_prefix: str = "read-cache",
        default_ttl: int | None = None,
    ):
        self.backend = backend or caches[getattr(settings, "IMPORT_READ_CACHE_ALIAS", "default")]
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl or getattr(settings, "IMPORT_READ_CACHE_TTL", DEFAULT_TTL_SECONDS)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def get(self, key: str) -> Any:
        """Return the cached value, or MISS. A cached None is a hit."""
        value = self.backend.get(self._key(key), MISS)
        logger.debug("read cache %s: %s", "miss" if value is MISS else "hit", key)
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.backend.set(self._key(key), value, timeout=ttl or self.default_ttl)

    def invalidate(self, key: str) -> None:
        self.backend.delete(self._key(key))
