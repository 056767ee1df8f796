"""
Current-action context.

The dispatcher records which action is running in a ContextVar so the
view resolver can infer the default view without stack inspection.
Each asyncio task sees its own value.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class ActionContext:
    """The action currently handling a request."""
    controller_name: str
    action_name: str
    default_view: str


_current_action: ContextVar[Optional[ActionContext]] = ContextVar(
    "routewise_current_action", default=None
)


def current_action() -> Optional[ActionContext]:
    """Return the running action, or None outside a dispatched request."""
    return _current_action.get()


@contextmanager
def action_scope(action: ActionContext) -> Iterator[ActionContext]:
    """Mark ``action`` as running for the duration of the block."""
    token = _current_action.set(action)
    try:
        yield action
    finally:
        _current_action.reset(token)
