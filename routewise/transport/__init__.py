"""
Routewise Transport - HTTP capability plus its ASGI implementation.
"""

from .asgi import ASGITransport, RouteEntry, Router, StaticMount, compile_pattern
from .base import HTTP_VERBS, Handler, Transport
from .request import Request
from .response import Response

__all__ = [
    "ASGITransport",
    "Router",
    "RouteEntry",
    "StaticMount",
    "compile_pattern",
    "Transport",
    "Handler",
    "HTTP_VERBS",
    "Request",
    "Response",
]
