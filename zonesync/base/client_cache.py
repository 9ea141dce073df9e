"""
Provider driver cache.

Cloud accounts are looked up on every task run; creating a fresh SDK
client each time is wasteful, so drivers are pooled per provider and
account configuration.
"""

from __future__ import annotations

import hashlib
import json
import threading
from typing import Any, Callable


class DriverCache:
    """Thread-safe, in-process cache of DNS drivers keyed by provider + config hash."""

    _instance: DriverCache | None = None
    _cache: dict[str, Any]
    _lock: threading.Lock

    def __new__(cls) -> DriverCache:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._cache = {}
            cls._instance._lock = threading.Lock()
        return cls._instance

    @staticmethod
    def _make_key(cloud_provider: str, config: dict) -> str:
        # Sort keys so dict ordering doesn't affect the hash.
        serialised = json.dumps(
            {"provider": cloud_provider, "config": config},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(serialised.encode()).hexdigest()

    def get_or_create(
        self,
        cloud_provider: str,
        config: dict,
        factory: Callable[[], Any],
    ) -> Any:
        """Return a cached driver or build one via *factory*.

        Args:
            cloud_provider: Cloud provider name (e.g. 'aws').
            config: Raw account configuration dict.
            factory: Zero-argument callable that builds a new driver.

        Returns:
            The cached (or newly-created) driver instance.
        """
        key = self._make_key(cloud_provider, config)
        with self._lock:
            if key not in self._cache:
                self._cache[key] = factory()
            return self._cache[key]

    def invalidate(self, cloud_provider: str, config: dict) -> None:
        """Drop the driver cached for one provider/config pair, if any."""
        with self._lock:
            self._cache.pop(self._make_key(cloud_provider, config), None)

    def clear(self) -> None:
        """Flush all cached drivers."""
        with self._lock:
            self._cache.clear()
