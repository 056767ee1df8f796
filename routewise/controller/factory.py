"""
Controller Factory

Builds a fresh controller instance for every matched request, resolving
constructor dependencies through the DI container.
"""

import logging
from typing import Any, Optional

from routewise.config import Config
from routewise.di.core import Container

from .base import Controller, ControllerSettings
from .registry import ControllerRegistry


logger = logging.getLogger("routewise.controller")


class ControllerFactory:
    """
    Factory for per-request controller instances.

    Instances are never pooled; singleton-ness belongs to dependencies,
    not to controllers. When ``config`` is given it is handed to every
    controller instead of the application's current config.
    """

    def __init__(
        self,
        registry: ControllerRegistry,
        container: Container,
        config: Optional[Config] = None,
    ):
        self.registry = registry
        self.container = container
        self.config = config

    async def create(
        self,
        application: Any,
        controller_name: str,
        request: Any,
        response: Any,
    ) -> Controller:
        """
        Create a controller instance.

        Raises:
            ControllerNotFoundError: Name not registered
            UnknownDependencyError: A constructor dependency is not registered
            ConstructionError: A dependency failed to build
        """
        registration = self.registry.get(controller_name)
        names = registration.constructor_dependency_names
        dependencies = await self.container.resolve_many(names)

        settings = ControllerSettings(
            application=application,
            config=self.config if self.config is not None else getattr(application, "config", None),
            controller_name=registration.controller_name,
            controller_type=registration.controller_type,
            request=request,
            response=response,
            view_search_path=registration.view_search_path,
            view_lookup_cache=registration.view_lookup_cache,
            dependencies=dict(zip(names, dependencies)),
        )
        logger.debug("Creating controller %s", controller_name)
        return registration.controller_type(settings, *dependencies)
