"""
Routewise Controller System

Convention-routed, per-request controllers.

Key Features:
- Routes synthesized from method names (``get_users``, ``postUser``...)
- Constructor dependencies resolved by parameter name
- Per-type view lookup cache
- ``register_routes`` and ``@url_path`` escape hatches

Example:
    from routewise.controller import Controller, url_path

    class UserController(Controller):
        def __init__(self, settings, users):
            super().__init__(settings)
            self.users = users

        async def get_user(self, name):
            await self.render_async({"user": await self.users.find(name)})

        @url_path("/users/:name/avatar")
        async def get_avatar(self, name):
            self.response.send_file(await self.users.avatar(name))
"""

from .base import Controller, ControllerSettings
from .context import ActionContext, action_scope, current_action
from .decorators import url_path
from .factory import ControllerFactory
from .metadata import (
    ControllerTypeRegistration,
    RouteDescriptor,
    RouteSynthesizer,
    controller_name_for,
    describe_routes,
    parse_action_name,
)
from .registry import ControllerRegistry
from .views import ViewLookup, ViewResolver

__all__ = [
    # Base
    "Controller",
    "ControllerSettings",
    "url_path",
    # Metadata
    "RouteDescriptor",
    "ControllerTypeRegistration",
    "RouteSynthesizer",
    "parse_action_name",
    "controller_name_for",
    "describe_routes",
    # Runtime
    "ControllerRegistry",
    "ControllerFactory",
    "ActionContext",
    "action_scope",
    "current_action",
    "ViewLookup",
    "ViewResolver",
]
