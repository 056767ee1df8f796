"""
Transport capability.

The dispatcher only ever talks to these protocols: it creates routers,
adds ``(verb, pattern, handler)`` triples to them and mounts them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable
from pathlib import Path

if TYPE_CHECKING:
    from .request import Request
    from .response import Response


Handler = Callable[["Request", "Response"], Awaitable[None]]

HTTP_VERBS = ("get", "post", "head", "delete", "put", "connect", "trace", "patch")


@runtime_checkable
class Router(Protocol):
    """A group of routes mounted together."""

    def add_route(self, verb: str, pattern: str, handler: Handler) -> object:
        ...


@runtime_checkable
class Transport(Protocol):
    """HTTP layer capability consumed by the dispatcher."""

    def create_router(self) -> Router:
        ...

    def add_route(self, verb: str, pattern: str, handler: Handler) -> object:
        ...

    def mount(self, router: Router, prefix: Optional[str] = None) -> None:
        ...

    def mount_static(self, prefix: str, directory: Union[str, Path]) -> None:
        ...
