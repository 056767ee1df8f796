"""
Routewise Faults - Domain-specific fault types.

Provides concrete fault classes for:
- CONFIG faults
- ROUTING faults
- VIEW faults
- TRANSPORT faults

DI faults live beside the container in ``routewise.di.errors``.
"""

from typing import Any, Iterable, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigError(Fault):
    """Configuration file is unreadable or invalid."""

    domain = FaultDomain.CONFIG

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(
            code="CONFIG_INVALID",
            message=message,
            metadata={"path": path},
        )
        self.path = path


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for controller routing faults."""

    domain = FaultDomain.ROUTING


class ControllerNotFoundError(RoutingFault):
    """
    No registration exists for a controller name.

    Indicates a mismatch between synthesized routes and the registry;
    a correctly booted application never raises it.
    """

    def __init__(self, controller_name: str, known: Optional[Iterable[str]] = None):
        known = sorted(known or [])
        super().__init__(
            code="CONTROLLER_NOT_FOUND",
            message=f"Controller type not found: {controller_name}",
            metadata={"controller": controller_name, "known": known},
        )
        self.controller_name = controller_name


class ControllerDefinitionError(RoutingFault):
    """A controller type cannot be registered (fatal at boot)."""

    def __init__(self, controller: Any, reason: str):
        name = getattr(controller, "__qualname__", repr(controller))
        super().__init__(
            code="CONTROLLER_INVALID",
            message=f"Invalid controller {name}: {reason}",
            severity=Severity.FATAL,
            metadata={"controller": name, "reason": reason},
        )
        self.reason = reason


# ============================================================================
# VIEW Faults
# ============================================================================

class ViewNotFoundError(Fault):
    """
    No file matched a view lookup.

    ``attempted_views`` holds every candidate path that was probed,
    in the order it was probed.
    """

    domain = FaultDomain.VIEW

    def __init__(self, message: str, views: Iterable[str]):
        attempted = list(views)
        super().__init__(
            code="VIEW_NOT_FOUND",
            message=message,
            metadata={"attempted_views": attempted},
        )
        self.attempted_views = attempted


# ============================================================================
# TRANSPORT Faults
# ============================================================================

class BadRequestError(Fault):
    """Malformed request (400)."""

    domain = FaultDomain.TRANSPORT
    status = 400
    public = True

    def __init__(self, message: str = "Bad request", **metadata: Any):
        super().__init__(code="BAD_REQUEST", message=message, metadata=metadata)


class ResponseAlreadySentError(Fault):
    """A response was written twice."""

    domain = FaultDomain.TRANSPORT
    status = 500

    def __init__(self, attempted: str):
        super().__init__(
            code="RESPONSE_ALREADY_SENT",
            message=f"Response already committed; cannot {attempted}",
            severity=Severity.ERROR,
            metadata={"attempted": attempted},
        )
