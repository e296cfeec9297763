"""Optional Logfire integration for tracing claims and scale decisions."""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

_logfire = None
_configured = False


def _load_logfire():
    global _logfire
    if _logfire is not None:
        return _logfire
    try:
        import logfire
    except ImportError:
        _logfire = False
        return _logfire
    _logfire = logfire
    return _logfire


def _env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def enabled() -> bool:
    # Off unless asked for: tracing ships data to an external service.
    if not _env_truthy(os.getenv("MACHINEPOOL_LOGFIRE")):
        return False
    return bool(_load_logfire())


def configure() -> bool:
    logfire = _load_logfire()
    if not logfire or not enabled():
        return False
    global _configured
    if not _configured:
        try:
            logfire.configure(
                service_name="machinepool",
                console=None if _env_truthy(os.getenv("MACHINEPOOL_LOGFIRE_CONSOLE")) else False,
            )
        except Exception as exc:
            logger.warning("Logfire configuration failed, tracing disabled: %s", exc)
            return False
        _configured = True
    return True


@contextmanager
def span(name: str, **attrs: Any) -> Iterator[None]:
    if not configure():
        yield
        return
    with _load_logfire().span(name, **attrs):
        yield


def reset() -> None:
    """Forget cached configuration. For testing only."""
    global _logfire, _configured
    _logfire = None
    _configured = False
