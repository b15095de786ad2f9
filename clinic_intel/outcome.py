"""
Outcome type for best-effort storage calls.

Non-critical storage paths (dynamic compound lookup, candidate registration,
signal persistence) never raise into the pipeline. They return Ok or Degraded
so callers and tests can see which path was taken without reading logs.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: Any = None
    degraded: bool = False


@dataclass(frozen=True)
class Degraded:
    operation: str
    error: str
    degraded: bool = True

    @property
    def value(self) -> None:
        return None


def best_effort(operation: str, fn: Callable[..., Any], *args, **kwargs):
    """
    Run a storage call, converting any failure into a Degraded outcome.

    Args:
        operation: Short name used in the log line and on the Degraded record
        fn: Callable to run
        *args, **kwargs: Passed through to fn

    Returns:
        Ok(value) on success, Degraded(operation, error) on failure
    """
    try:
        return Ok(fn(*args, **kwargs))
    except Exception as e:
        logger.warning("%s failed (non-fatal): %s", operation, e)
        return Degraded(operation=operation, error=str(e))


def value_or(outcome, default: Optional[Any] = None) -> Any:
    """Unwrap an outcome, returning default for Degraded or empty values."""
    if outcome.degraded or outcome.value is None:
        return default
    return outcome.value
