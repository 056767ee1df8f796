"""
Application - Boots and serves a convention-routed web application.

Boot sequence (``run``):
    1. Load configuration
    2. Build transport, container, registry, view resolver and renderer
    3. Emit ``initcontainer`` so listeners can register dependencies
    4. Register view engines as view extensions
    5. Map static content (most specific prefix first)
    6. Discover and register controllers
    7. Swap the new boot in, then emit ``ready``

The application is itself an ASGI 3 callable delegating to the transport
built by the most recent boot.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, Union

from .config import Config
from .controller.base import Controller
from .controller.factory import ControllerFactory
from .controller.registry import ControllerRegistry
from .controller.views import ViewResolver
from .di.core import Container
from .di.loader import ModuleResolver
from .discovery import discover_controllers
from .dispatcher import DEFAULT_VIEW_ROOT, RequestDispatcher
from .faults.handlers import ErrorHandler
from .templates.engine import TemplateRenderer
from .transport.asgi import ASGITransport


logger = logging.getLogger("routewise.application")

EVENTS = ("initcontainer", "config.reloading", "ready")
RELOAD_DEBOUNCE = 1.0
DEFAULT_CONTROLLER_DIRECTORY = "controllers"
DEFAULT_VIEW_EXTENSIONS = [".html"]

Listener = Callable[[Any], Any]


class Application:
    """
    Convention-routed web application.

    Args:
        root_directory: Application root; relative config paths resolve here
        config_file: JSON config file (default ``<root>/routewise.json``)
        resolver: Module resolver for string references in ``app.di``
        transport_factory: Builds the transport (``renderer=``, ``error_handler=``)
        overrides: Config values applied over every other source
        error_handler: Replaces the default ``ErrorHandler``
        env_file: ``.env`` file read while loading config

    Example:
        app = Application("./site")
        app.on("initcontainer", lambda e: e["container"].register(
            "clock", {"module": SystemClock}
        ))
        app.serve()
    """

    def __init__(
        self,
        root_directory: Union[str, Path] = ".",
        config_file: Optional[Union[str, Path]] = None,
        *,
        resolver: Optional[ModuleResolver] = None,
        transport_factory: Callable[..., Any] = ASGITransport,
        overrides: Optional[Mapping[str, Any]] = None,
        error_handler: Optional[Callable[..., Any]] = None,
        env_file: Optional[Union[str, Path]] = ".env",
    ):
        self.root_directory = Path(root_directory).resolve()
        self.config_file = config_file
        self.resolver = resolver
        self.transport_factory = transport_factory
        self.overrides = dict(overrides or {})
        self.env_file = env_file

        self.config: Optional[Config] = None
        self.transport: Any = None
        self.container: Optional[Container] = None
        self.registry = ControllerRegistry()
        self.controller_factory: Optional[ControllerFactory] = None
        self.view_resolver: Optional[ViewResolver] = None
        self.renderer: Optional[TemplateRenderer] = None
        self.dispatcher: Optional[RequestDispatcher] = None

        self._custom_error_handler = error_handler
        self._error_handler: Callable[..., Any] = error_handler or ErrorHandler()
        self._controllers: List[Type[Controller]] = []
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = asyncio.Lock()
        self._serving: Any = None
        self._booted_at: Optional[float] = None

    # ========================================================================
    # Events
    # ========================================================================

    def on(self, event: str, callback: Listener) -> "Application":
        """Subscribe ``callback(payload)`` to ``event``."""
        if event not in EVENTS:
            logger.warning("Listener registered for unknown event %r", event)
        self._listeners.setdefault(event, []).append(callback)
        return self

    async def emit(self, event: str, payload: Any = None) -> None:
        """Call listeners in registration order, awaiting coroutine results."""
        for callback in list(self._listeners.get(event, ())):
            result = callback(payload)
            if inspect.isawaitable(result):
                await result

    # ========================================================================
    # Boot
    # ========================================================================

    def add_controller(self, controller_type: Type[Controller]) -> "Application":
        """Register a controller type in addition to the discovered ones."""
        self._controllers.append(controller_type)
        return self

    def load_config(self) -> Config:
        return Config.load(
            self.config_file,
            root_directory=self.root_directory,
            env_file=self.env_file,
            overrides=self.overrides,
        )

    async def run(self, is_reload: bool = False) -> None:
        """
        Boot (or rebuild) the application.

        Every part of the boot is built aside and swapped in together once
        the boot succeeds; a failed boot leaves the serving state untouched.

        Raises:
            ConfigError: Invalid configuration
            ControllerDefinitionError: Invalid controller
            DIError: Invalid dependency declaration in ``app.di``
        """
        logger.info("%s application in %s", "Reloading" if is_reload else "Starting", self.root_directory)

        config = self.load_config()

        extensions = config.get_value("server.view_extensions", DEFAULT_VIEW_EXTENSIONS)
        view_resolver = ViewResolver(extensions)
        renderer = TemplateRenderer(self._template_roots(config))
        error_handler = self._custom_error_handler or self._create_error_handler(config, renderer)

        registry = ControllerRegistry()
        container = Container(self, config.get_value("app.di", {}) or {}, resolver=self.resolver)
        controller_factory = ControllerFactory(registry, container, config)
        transport = self.transport_factory(renderer=renderer, error_handler=self.handle_error)
        dispatcher = RequestDispatcher(
            self,
            config=config,
            transport=transport,
            registry=registry,
            controller_factory=controller_factory,
        )

        await self.emit("initcontainer", {"container": container, "config": config})

        self._init_view_engines(view_resolver, config)
        self._map_static_content(transport, config)

        directory = config.resolve_path(
            config.get_value("server.controller_directory", DEFAULT_CONTROLLER_DIRECTORY)
        )
        controllers = list(self._controllers) + discover_controllers(directory)
        dispatcher.register_controllers(controllers)
        logger.info("Registered %d controller(s)", len(registry))

        self.config = config
        self.view_resolver = view_resolver
        self.renderer = renderer
        self._error_handler = error_handler
        self.registry = registry
        self.container = container
        self.controller_factory = controller_factory
        self.transport = transport
        self.dispatcher = dispatcher
        self._serving = transport
        self._booted_at = time.monotonic()

        await self.emit("ready", self)

    async def start(self) -> None:
        """Boot once; later calls are no-ops."""
        async with self._lock:
            if self._serving is None:
                await self.run()

    async def reload(self) -> bool:
        """
        Rebuild everything from configuration.

        Concurrent calls share one rebuild, and calls less than a second
        after the previous boot are ignored. Requests keep being served by
        the previous boot until the rebuild is swapped in; its view caches
        are cleared afterwards.

        Returns:
            True when a rebuild happened
        """
        async with self._lock:
            if self._booted_at is not None and time.monotonic() - self._booted_at < RELOAD_DEBOUNCE:
                logger.debug("Reload ignored; last boot under %.1fs ago", RELOAD_DEBOUNCE)
                return False
            await self.emit("config.reloading", self)
            previous = self.registry
            await self.run(is_reload=True)
            previous.clear_view_caches()
            return True

    def _template_roots(self, config: Config) -> List[Path]:
        shared = config.get_value("server.paths.shared_views", []) or []
        if isinstance(shared, str):
            shared = [shared]
        roots = [config.resolve_path(config.get_value("server.paths.view_root", DEFAULT_VIEW_ROOT))]
        roots.extend(config.resolve_path(p) for p in shared)
        return roots

    def _create_error_handler(self, config: Config, renderer: TemplateRenderer) -> ErrorHandler:
        error_view = config.get_value("server.error_view")
        if error_view:
            error_view = str(config.resolve_path(error_view))
        return ErrorHandler(error_view=error_view, renderer=renderer)

    def _init_view_engines(self, view_resolver: ViewResolver, config: Config) -> None:
        engines = config.get_value("server.view_engines", []) or []
        if isinstance(engines, str):
            engines = [engines]
        for engine in engines:
            view_resolver.add_extension(engine, first=True)
        logger.debug("View extensions: %s", ", ".join(view_resolver.extensions))

    def _map_static_content(self, transport: Any, config: Config) -> None:
        mappings = config.get_value("server.paths.static_content", {}) or {}
        for prefix in sort_static_prefixes(mappings):
            transport.mount_static(prefix, config.resolve_path(mappings[prefix]))

    # ========================================================================
    # Requests
    # ========================================================================

    async def handle_error(self, request: Any, response: Any, error: BaseException) -> None:
        """Centralized per-request error handling."""
        await self._error_handler(request, response, error)

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if self._serving is None:
            await self.start()
        await self._serving(scope, receive, send)

    async def _lifespan(self, receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await self.start()
                except Exception as exc:
                    logger.exception("Application failed to start")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def serve(self, host: Optional[str] = None, port: Optional[int] = None, log_level: str = "info") -> None:
        """Run the application under uvicorn until interrupted."""
        import uvicorn

        config = self.config or self.load_config()
        host = host or config.get_value("server.host", "127.0.0.1")
        port = int(port or config.get_value("server.port", 8000))
        logger.info("Serving on http://%s:%d", host, port)
        uvicorn.run(self, host=host, port=port, log_level=log_level)


def sort_static_prefixes(prefixes: Iterable[str]) -> List[str]:
    """Most path segments first, then alphabetical."""
    return sorted(prefixes, key=lambda p: (-len(re.split(r"[/\\]", p)), p))
