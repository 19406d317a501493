"""
Payment gateway drivers and the provider registry.
"""
from __future__ import annotations

from .registry import (
    ProviderRegistry,
    create_provider,
    register_provider,
    registered_providers,
    registry,
)


_defaults_loaded = False


def register_default_providers() -> None:
    """Import the bundled drivers; each one registers itself on import."""
    global _defaults_loaded
    if _defaults_loaded:
        return
    from . import doku_client, midtrans_client, xendit_client  # noqa: F401

    _defaults_loaded = True


__all__ = [
    "ProviderRegistry",
    "registry",
    "register_provider",
    "create_provider",
    "registered_providers",
    "register_default_providers",
]
