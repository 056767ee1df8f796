"""
ASGI transport - Bridges ASGI HTTP events to routers and handlers.

Matching rules:
- Layers (static mounts, routers, single routes) are tried in the order
  they were added; the first match wins.
- Patterns use ``:name`` placeholders, one path segment each.
- Matching is case-insensitive and tolerates a trailing slash.
- HEAD requests fall back to GET routes with the body suppressed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Tuple, Union

from routewise.faults.domains import BadRequestError

from .base import HTTP_VERBS, Handler
from .request import DEFAULT_MAX_BODY_SIZE, Request
from .response import Response


logger = logging.getLogger("routewise.transport")

ErrorCallback = Callable[[Request, Response, BaseException], Awaitable[None]]

_PLACEHOLDER = re.compile(r"^:(?P<name>[A-Za-z_][A-Za-z0-9_]*)$")


def compile_pattern(pattern: str) -> Tuple[Pattern[str], List[str]]:
    """
    Compile a ``/user/:name`` pattern into a regex and its parameter names.

    Raises:
        ValueError: Malformed or repeated placeholder
    """
    names: List[str] = []
    parts: List[str] = []

    for segment in pattern.strip("/").split("/"):
        if not segment:
            continue
        if segment.startswith(":"):
            m = _PLACEHOLDER.match(segment)
            if m is None:
                raise ValueError(f"Invalid placeholder {segment!r} in pattern {pattern!r}")
            name = m.group("name")
            if name in names:
                raise ValueError(f"Placeholder {name!r} repeated in pattern {pattern!r}")
            names.append(name)
            parts.append(f"(?P<{name}>[^/]+)")
        else:
            parts.append(re.escape(segment))

    body = "/" + "/".join(parts) if parts else ""
    return re.compile(f"^{body}/?$", re.IGNORECASE), names


@dataclass
class RouteEntry:
    """A single ``(verb, pattern, handler)`` registration."""
    verb: str
    pattern: str
    handler: Handler
    regex: Pattern[str] = field(init=False, repr=False)
    param_names: List[str] = field(init=False)

    def __post_init__(self):
        self.verb = self.verb.lower()
        if self.verb not in HTTP_VERBS:
            raise ValueError(f"Unsupported HTTP verb {self.verb!r}")
        self.regex, self.param_names = compile_pattern(self.pattern)

    def match(self, method: str, path: str) -> Optional[Dict[str, str]]:
        method = method.lower()
        if self.verb != method and not (method == "head" and self.verb == "get"):
            return None
        m = self.regex.match(path)
        if m is None:
            return None
        return m.groupdict()


class Router:
    """
    Ordered group of routes.

    Example:
        router = transport.create_router()
        router.get("/health", health_handler)
        transport.mount(router, prefix="/api")
    """

    def __init__(self):
        self.routes: List[RouteEntry] = []

    def add_route(self, verb: str, pattern: str, handler: Handler) -> RouteEntry:
        entry = RouteEntry(verb, pattern, handler)
        self.routes.append(entry)
        return entry

    def route(self, verb: str, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``add_route``."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(verb, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str, handler: Handler) -> RouteEntry:
        return self.add_route("get", pattern, handler)

    def post(self, pattern: str, handler: Handler) -> RouteEntry:
        return self.add_route("post", pattern, handler)

    def put(self, pattern: str, handler: Handler) -> RouteEntry:
        return self.add_route("put", pattern, handler)

    def patch(self, pattern: str, handler: Handler) -> RouteEntry:
        return self.add_route("patch", pattern, handler)

    def delete(self, pattern: str, handler: Handler) -> RouteEntry:
        return self.add_route("delete", pattern, handler)

    def match(self, method: str, path: str) -> Optional[Tuple[RouteEntry, Dict[str, str]]]:
        for entry in self.routes:
            params = entry.match(method, path)
            if params is not None:
                return entry, params
        return None


class StaticMount:
    """Serves files from ``directory`` under URL ``prefix``."""

    def __init__(self, prefix: str, directory: Union[str, Path]):
        self.prefix = _normalize_prefix(prefix)
        self.directory = Path(directory).resolve()

    def __repr__(self) -> str:
        return f"StaticMount({self.prefix!r} -> {self.directory})"

    def lookup(self, path: str) -> Optional[Path]:
        rest = _strip_prefix(self.prefix, path)
        if rest is None:
            return None
        relative = rest.lstrip("/") or "index.html"

        candidate = (self.directory / relative).resolve()
        try:
            candidate.relative_to(self.directory)
        except ValueError:
            return None
        if candidate.is_dir():
            candidate = candidate / "index.html"
        return candidate if candidate.is_file() else None


@dataclass
class _Layer:
    prefix: str
    router: Optional[Router] = None
    static: Optional[StaticMount] = None


class ASGITransport:
    """
    ASGI 3 application implementing the transport capability.

    Args:
        renderer: Template renderer handed to every Response
        error_handler: Callback for exceptions escaping handlers
        max_body_size: Request body limit in bytes
    """

    def __init__(
        self,
        renderer: Optional[Any] = None,
        error_handler: Optional[ErrorCallback] = None,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ):
        self.renderer = renderer
        self.error_handler = error_handler
        self.max_body_size = max_body_size
        self._layers: List[_Layer] = []

    # ------------------------------------------------------------------
    # Capability
    # ------------------------------------------------------------------

    def create_router(self) -> Router:
        return Router()

    def add_route(self, verb: str, pattern: str, handler: Handler) -> RouteEntry:
        router = Router()
        entry = router.add_route(verb, pattern, handler)
        self._layers.append(_Layer(prefix="", router=router))
        return entry

    def mount(self, router: Router, prefix: Optional[str] = None) -> None:
        self._layers.append(_Layer(prefix=_normalize_prefix(prefix), router=router))

    def mount_static(self, prefix: str, directory: Union[str, Path]) -> None:
        mount = StaticMount(prefix, directory)
        self._layers.append(_Layer(prefix=mount.prefix, static=mount))
        logger.info("Static content %s -> %s", mount.prefix or "/", mount.directory)

    def routes(self) -> List[Tuple[str, RouteEntry]]:
        """All mounted routes as ``(prefix, entry)`` in match order."""
        return [
            (layer.prefix, entry)
            for layer in self._layers
            if layer.router is not None
            for entry in layer.router.routes
        ]

    def resolve(self, method: str, path: str) -> Optional[Tuple[Any, Dict[str, str]]]:
        """
        Find what serves ``method path``.

        Returns:
            ``(RouteEntry, params)`` or ``(Path, {})`` for static files, or None
        """
        is_read = method.upper() in ("GET", "HEAD")
        for layer in self._layers:
            if layer.static is not None:
                if is_read:
                    found = layer.static.lookup(path)
                    if found is not None:
                        return found, {}
                continue

            rest = _strip_prefix(layer.prefix, path)
            if rest is None:
                continue
            hit = layer.router.match(method, rest)
            if hit is not None:
                return hit
        return None

    # ------------------------------------------------------------------
    # ASGI
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope_type != "http":
            if scope_type == "websocket":
                await send({"type": "websocket.close", "code": 1000})
            return

        method = scope.get("method", "GET").upper()
        response = Response(renderer=self.renderer)

        try:
            request = await Request.from_asgi(scope, receive, max_body_size=self.max_body_size)
        except BadRequestError as exc:
            request = Request(method, scope.get("path", "/"), scope=scope)
            await self._fail(request, response, exc)
            await response.send_asgi(send, head=method == "HEAD")
            return

        await self.dispatch(request, response)
        await response.send_asgi(send, head=method == "HEAD")

    async def dispatch(self, request: Request, response: Response) -> None:
        """Run the handler matching ``request`` and fill ``response``."""
        resolved = self.resolve(request.method, request.path)
        if resolved is None:
            response.send_status(404)
            return

        target, params = resolved
        if isinstance(target, Path):
            response.send_file(target)
            return

        request.params = params
        try:
            await target.handler(request, response)
        except Exception as exc:
            await self._fail(request, response, exc)

        if not response.committed:
            response.send_status(204)

    async def _fail(self, request: Request, response: Response, error: BaseException) -> None:
        if self.error_handler is not None:
            await self.error_handler(request, response, error)
        else:
            logger.exception("Unhandled error for %s %s", request.method, request.path, exc_info=error)
        if not response.committed:
            response.send_status(getattr(error, "status", 500))

    @staticmethod
    async def _lifespan(receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


def _normalize_prefix(prefix: Optional[str]) -> str:
    if not prefix:
        return ""
    prefix = "/" + prefix.strip("/")
    return "" if prefix == "/" else prefix


def _strip_prefix(prefix: str, path: str) -> Optional[str]:
    """Return the part of ``path`` below ``prefix`` or None if outside it."""
    if not prefix:
        return path
    if path.lower() == prefix.lower():
        return "/"
    if path.lower().startswith(prefix.lower() + "/"):
        return path[len(prefix):]
    return None
