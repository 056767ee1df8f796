"""
Controller registry - name -> ControllerTypeRegistration.
"""

import logging
from typing import Dict, Iterator, List

from routewise.faults.domains import ControllerDefinitionError, ControllerNotFoundError

from .metadata import ControllerTypeRegistration


logger = logging.getLogger("routewise.controller")


class ControllerRegistry:
    """Registered controller types, keyed by controller name."""

    def __init__(self):
        self._registrations: Dict[str, ControllerTypeRegistration] = {}

    def add(self, registration: ControllerTypeRegistration) -> ControllerTypeRegistration:
        """
        Raises:
            ControllerDefinitionError: Name already registered
        """
        name = registration.controller_name
        existing = self._registrations.get(name)
        if existing is not None:
            raise ControllerDefinitionError(
                registration.controller_type,
                f"controller name {name!r} already used by {existing.controller_type.__qualname__}",
            )
        self._registrations[name] = registration
        return registration

    def get(self, controller_name: str) -> ControllerTypeRegistration:
        try:
            return self._registrations[controller_name]
        except KeyError:
            raise ControllerNotFoundError(controller_name, self._registrations.keys()) from None

    def __contains__(self, controller_name: object) -> bool:
        return controller_name in self._registrations

    def __iter__(self) -> Iterator[ControllerTypeRegistration]:
        return iter(list(self._registrations.values()))

    def __len__(self) -> int:
        return len(self._registrations)

    def names(self) -> List[str]:
        return list(self._registrations)

    def clear_view_caches(self) -> None:
        for registration in self._registrations.values():
            registration.view_lookup_cache.clear()

    def reset(self) -> None:
        """Clear every view cache and forget all registrations."""
        self.clear_view_caches()
        self._registrations.clear()
        logger.debug("Controller registry reset")
