"""
Provider registry. Source modules call register_provider() at import time;
the set is fixed once this module has loaded.
"""
from __future__ import annotations

from .base import Provider


# Ordered; results are reported in registration order
_PROVIDERS: list[Provider] = []


def register_provider(provider: Provider) -> Provider:
    # Deduplicate: a re-registered name replaces the old entry in place
    for i, existing in enumerate(_PROVIDERS):
        if existing.name == provider.name:
            _PROVIDERS[i] = provider
            return provider
    _PROVIDERS.append(provider)
    return provider


def get_providers() -> tuple[Provider, ...]:
    return tuple(_PROVIDERS)


def list_providers():
    return [p.to_dict() for p in _PROVIDERS]


# ──────────────────────────────
#  Import all sources to register them
# ──────────────────────────────
def _load_providers():
    from .sources import vidsrc         # noqa: F401  4 mirrors, #the_frame click


_load_providers()
