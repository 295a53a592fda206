import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SideEffectResult(BaseModel):
    label: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


async def run_best_effort(label: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> SideEffectResult:
    """
    Runs a post-commit hook (notification, waiting list, calendar) after the
    primary state change is already persisted. Errors are logged and returned,
    never raised, so the caller's transition is never undone.
    """
    try:
        value = await func(*args, **kwargs)
        return SideEffectResult(label=label, ok=True, value=value)
    except Exception as e:
        logger.exception(f"Post-commit step '{label}' failed: {e}")
        return SideEffectResult(label=label, ok=False, error=str(e))
