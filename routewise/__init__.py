"""
Routewise - Convention-routed async web controllers.

Controllers declare routes through their method names, dependencies
through their constructor parameters, and views through a per-controller
search path:

    from routewise import Application, Controller

    class UserController(Controller):
        def __init__(self, settings, users):
            super().__init__(settings)
            self.users = users

        async def get_user(self, name):         # GET /user/:name
            await self.render_async({"user": await self.users.find(name)})

    app = Application(".")
    app.add_controller(UserController)
    app.serve()
"""

__version__ = "0.1.0"

from .application import Application
from .config import Config
from .controller import (
    ActionContext,
    Controller,
    ControllerFactory,
    ControllerRegistry,
    ControllerSettings,
    ControllerTypeRegistration,
    RouteDescriptor,
    RouteSynthesizer,
    ViewLookup,
    ViewResolver,
    current_action,
    url_path,
)
from .di import BuilderArgs, Container, Lifespan
from .dispatcher import RequestDispatcher
from .discovery import discover_controllers
from .faults import ErrorHandler, Fault
from .transport import ASGITransport, Request, Response

__all__ = [
    "__version__",
    "Application",
    "Config",
    "Controller",
    "ControllerSettings",
    "ControllerFactory",
    "ControllerRegistry",
    "ControllerTypeRegistration",
    "RouteDescriptor",
    "RouteSynthesizer",
    "ViewLookup",
    "ViewResolver",
    "ActionContext",
    "current_action",
    "url_path",
    "BuilderArgs",
    "Container",
    "Lifespan",
    "RequestDispatcher",
    "discover_controllers",
    "ErrorHandler",
    "Fault",
    "ASGITransport",
    "Request",
    "Response",
]
