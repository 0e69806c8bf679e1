"""
Hook manager for account and approval lifecycle events.
"""
from __future__ import annotations

from typing import Callable, Any, Awaitable, TypeVar, ParamSpec
from dataclasses import dataclass, field
from enum import IntEnum
from collections import defaultdict
import logging

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class HookPriority(IntEnum):
    """Hook execution priority (lower runs first)."""
    FIRST = 0
    NORMAL = 50
    LAST = 100


@dataclass
class Hook:
    """Registered hook information."""
    name: str
    handler: Callable[..., Awaitable[Any]]
    priority: HookPriority = HookPriority.NORMAL


@dataclass
class HookResult:
    """Result from running hooks."""
    hook_name: str
    results: list[Any] = field(default_factory=list)
    errors: list[tuple[str, Exception]] = field(default_factory=list)


class HookManager:
    """
    Dispatches lifecycle events after a unit of work has committed.

    Events:
    - account.created: user=User, coach_id=UUID | None (coach the account is attached to)
    - account.updated: user=User, changed=set[str]
    - account.deleted: user_id=UUID
    - approval.approved: request=ApprovalRequest
    - approval.rejected: request=ApprovalRequest

    Handler failures are logged and collected, never propagated: the
    triggering operation has already committed.

    Example usage:
    ```python
    @hooks.on("approval.approved")
    async def notify_user(request):
        ...
    ```
    """

    def __init__(self):
        self._hooks: dict[str, list[Hook]] = defaultdict(list)

    def register(
        self,
        name: str,
        handler: Callable[..., Awaitable[Any]],
        *,
        priority: HookPriority = HookPriority.NORMAL,
    ) -> Hook:
        """Register a hook handler."""
        hook = Hook(name=name, handler=handler, priority=priority)
        self._hooks[name].append(hook)
        self._hooks[name].sort(key=lambda h: h.priority)

        logger.debug("Registered hook: %s (priority=%s)", name, priority)
        return hook

    def on(
        self,
        name: str,
        *,
        priority: HookPriority = HookPriority.NORMAL,
    ) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
        """Decorator to register a hook handler."""
        def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
            self.register(name, func, priority=priority)
            return func
        return decorator

    async def trigger(self, name: str, *args, **kwargs) -> HookResult:
        """Run all handlers for a hook in priority order."""
        result = HookResult(hook_name=name)

        for hook in list(self._hooks.get(name, [])):
            try:
                result.results.append(await hook.handler(*args, **kwargs))
            except Exception as e:
                result.errors.append((str(hook.handler), e))
                logger.error("Hook %s handler error: %s", name, e)

        return result


# Global hook manager instance
hooks = HookManager()
