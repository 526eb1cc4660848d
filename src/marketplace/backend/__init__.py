"""Order backend factory.

Provides get_backend() / set_backend() to swap implementations:
- InMemoryBackend for development and testing (default)
- RestBackend when BAZAAR_BACKEND_URL is set
- LocalOnlyBackend once the backend of record is unreachable

The first ``PersistenceUnavailable`` engages local-only mode for the rest of
the process; ``reset_backend()`` leaves it.
"""

import os
from dataclasses import dataclass
from typing import Any

import structlog

from marketplace.backend.in_memory import InMemoryBackend
from marketplace.backend.local_only import LocalOnlyBackend
from marketplace.backend.port import OrderBackend
from marketplace.backend.rest import RestBackend
from marketplace.errors import PersistenceUnavailable

logger = structlog.get_logger(__name__)

_current_backend: OrderBackend | None = None
_fallback: LocalOnlyBackend | None = None


@dataclass(frozen=True)
class BackendResult:
    """Outcome of one backend call as seen by the core."""

    synced: bool
    mode: str
    value: Any = None
    error: str | None = None


def _default_backend() -> OrderBackend:
    url = os.getenv("BAZAAR_BACKEND_URL")
    if url:
        return RestBackend(url, api_key=os.getenv("BAZAAR_BACKEND_API_KEY"))
    return InMemoryBackend()


def get_backend() -> OrderBackend:
    """Return the active backend. Local-only once fallback is engaged."""
    global _current_backend
    if _fallback is not None:
        return _fallback
    if _current_backend is None:
        _current_backend = _default_backend()
    return _current_backend


def set_backend(backend: OrderBackend) -> None:
    """Override the active backend (useful for tests)."""
    global _current_backend, _fallback
    _current_backend = backend
    _fallback = None


def reset_backend() -> None:
    """Reset to the default backend and leave local-only mode."""
    global _current_backend, _fallback
    _current_backend = None
    _fallback = None


def engage_local_only(reason: str) -> None:
    global _fallback
    if _fallback is None:
        logger.warning("Backend unreachable, switching to local-only mode", reason=reason)
        _fallback = LocalOnlyBackend(reason)


def is_local_only() -> bool:
    return _fallback is not None


def call_backend(operation: str, *args, **kwargs) -> BackendResult:
    """Invoke one backend operation without letting an outage escape.

    A ``PersistenceUnavailable`` engages local-only mode and is reported in
    the result instead of raised, so the caller's local change stands.
    """
    backend = get_backend()
    try:
        value = getattr(backend, operation)(*args, **kwargs)
    except PersistenceUnavailable as exc:
        engage_local_only(str(exc))
        return BackendResult(synced=False, mode="local_only", error=str(exc))

    if is_local_only():
        return BackendResult(synced=False, mode="local_only", value=value)
    if value is False or value is None:
        return BackendResult(synced=False, mode="remote", value=value, error=f"{operation} was rejected by the backend")
    return BackendResult(synced=True, mode="remote", value=value)
