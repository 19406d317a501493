"""
Process-wide provider registry.

Drivers register a factory under a lowercase name at import time; the Client
resolves the configured name here. Lookups take a shared (reader) lock and
registration an exclusive (writer) lock, so many threads can resolve
providers while a late registration is in progress.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from paygate.application.ports.payment_gateway import PaymentGateway
from paygate.core.config import ProviderConfig
from paygate.domain.common.exceptions import UnsupportedProviderError


ProviderFactory = Callable[..., PaymentGateway]


class _ReadWriteLock:
    """Writer-preferring reader/writer lock on top of ``threading.Condition``."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ProviderRegistry:
    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}
        self._lock = _ReadWriteLock()

    @staticmethod
    def _normalize(name: str) -> str:
        return (name or "").strip().lower()

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Install ``factory`` under ``name``; re-registering replaces it."""
        key = self._normalize(name)
        if not key:
            raise ValueError("provider name must not be empty")
        with self._lock.write():
            self._factories[key] = factory

    def unregister(self, name: str) -> None:
        with self._lock.write():
            self._factories.pop(self._normalize(name), None)

    def create(self, name: str, config: ProviderConfig, **kwargs: Any) -> PaymentGateway:
        key = self._normalize(name)
        with self._lock.read():
            factory = self._factories.get(key)
        if factory is None:
            raise UnsupportedProviderError(key or name)
        return factory(config, **kwargs)

    def names(self) -> list[str]:
        with self._lock.read():
            return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        with self._lock.read():
            return self._normalize(name) in self._factories


registry = ProviderRegistry()


def register_provider(name: str, factory: ProviderFactory) -> None:
    registry.register(name, factory)


def create_provider(name: str, config: ProviderConfig, **kwargs: Any) -> PaymentGateway:
    return registry.create(name, config, **kwargs)


def registered_providers() -> list[str]:
    return registry.names()
