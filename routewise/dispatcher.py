"""
Request Dispatcher - Glues synthesized routes to the transport.

For every controller type it:
- synthesizes the route table
- computes the view search path
- registers one handler per route on a fresh router
- mounts the router (under ``path_prefix`` when set)

Each handler builds a new controller, binds arguments from the path
params and then the request body, runs the action and hands any
exception to the application's error handler.
"""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Type

from .controller.base import Controller
from .controller.context import ActionContext, action_scope
from .controller.factory import ControllerFactory
from .controller.metadata import (
    ControllerTypeRegistration,
    RouteDescriptor,
    RouteSynthesizer,
    controller_name_for,
    join_path,
)
from .controller.registry import ControllerRegistry
from .transport.base import Handler

if TYPE_CHECKING:
    from .application import Application
    from .config import Config
    from .transport.request import Request
    from .transport.response import Response


logger = logging.getLogger("routewise.dispatcher")

DEFAULT_VIEW_ROOT = "views"


class RequestDispatcher:
    """
    Registers controllers with one boot's transport.

    Handlers keep the factory of the boot that created them, so requests
    still served by an older transport never see a half-built rebuild.

    Args:
        application: Owning application (``handle_error``, passed to controllers)
        config: Configuration of this boot
        transport: Transport the routes are registered on
        registry: Registry receiving the synthesized registrations
        controller_factory: Factory building controllers for this boot
    """

    def __init__(
        self,
        application: "Application",
        *,
        config: "Config",
        transport: Any,
        registry: ControllerRegistry,
        controller_factory: ControllerFactory,
    ):
        self.application = application
        self.config = config
        self.transport = transport
        self.registry = registry
        self.controller_factory = controller_factory
        self.synthesizer = RouteSynthesizer()

    # ========================================================================
    # Registration
    # ========================================================================

    def register_controllers(self, controller_types: Iterable[Type[Controller]]) -> List[ControllerTypeRegistration]:
        """Register every type, then the trailing ``GET /`` -> 404 fallback."""
        registrations = [self.register_controller(t) for t in controller_types]
        self.transport.add_route("get", "/", self._not_found)
        return registrations

    def register_controller(self, controller_type: Type[Controller]) -> ControllerTypeRegistration:
        """
        Raises:
            ControllerDefinitionError: Invalid type or duplicate name
        """
        transport = self.transport

        search_path = self.view_search_path(controller_name_for(controller_type))
        registration = self.synthesizer.synthesize(controller_type, search_path)
        self.registry.add(registration)

        router = transport.create_router()
        if registration.custom_routes:
            controller_type.register_routes(transport, router)
            logger.info("%s registers its own routes", controller_type.__qualname__)
        else:
            for route in registration.routes:
                router.add_route(route.verb, route.path_pattern, self.create_handler(registration, route))
                logger.info(
                    "%-6s %s -> %s.%s",
                    route.verb.upper(),
                    join_path(registration.path_prefix or "", route.path_pattern),
                    controller_type.__qualname__,
                    route.action_name,
                )

        transport.mount(router, prefix=registration.path_prefix)
        return registration

    def view_search_path(self, controller_name: str) -> List[str]:
        """``<root>/<view_root>/<controller>`` followed by the shared view roots."""
        config = self.config
        view_root = config.get_value("server.paths.view_root", DEFAULT_VIEW_ROOT)
        shared = config.get_value("server.paths.shared_views", []) or []
        if isinstance(shared, str):
            shared = [shared]

        paths = [config.resolve_path(Path(view_root) / controller_name)]
        paths.extend(config.resolve_path(p) for p in shared)
        return [str(p) for p in paths]

    # ========================================================================
    # Handlers
    # ========================================================================

    def create_handler(self, registration: ControllerTypeRegistration, route: RouteDescriptor) -> Handler:
        action = ActionContext(registration.controller_name, route.action_name, route.default_view)

        async def handler(request: "Request", response: "Response") -> None:
            with action_scope(action):
                try:
                    controller = await self.controller_factory.create(
                        self.application, registration.controller_name, request, response
                    )
                    kwargs = self.bind_arguments(route, request)
                    result = getattr(controller, route.action_name)(**kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as exc:
                    await self.application.handle_error(request, response, exc)

        handler.__name__ = f"{registration.controller_name}.{route.action_name}"
        handler.__qualname__ = handler.__name__
        return handler

    @staticmethod
    def bind_arguments(route: RouteDescriptor, request: "Request") -> Dict[str, Any]:
        """
        Map action parameters to request values.

        Path params win over body fields; names found in neither are left
        out so the action's defaults apply.
        """
        params = request.params or {}
        body = request.body if isinstance(request.body, dict) else {}
        kwargs: Dict[str, Any] = {}
        for name in route.parameter_names:
            if name in params:
                kwargs[name] = params[name]
            elif name in body:
                kwargs[name] = body[name]
        return kwargs

    @staticmethod
    async def _not_found(request: "Request", response: "Response") -> None:
        response.send_status(404)
