"""
Routewise Faults - Structured error taxonomy and centralized handling.

Errors are typed faults with a stable code, a domain, a severity and an
HTTP status. Registration-time faults abort boot; per-request faults are
routed to a single ``ErrorHandler``.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)
from .domains import (
    ConfigError,
    RoutingFault,
    ControllerNotFoundError,
    ControllerDefinitionError,
    ViewNotFoundError,
    BadRequestError,
    ResponseAlreadySentError,
)
from .handlers import ErrorHandler

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigError",
    "RoutingFault",
    "ControllerNotFoundError",
    "ControllerDefinitionError",
    "ViewNotFoundError",
    "BadRequestError",
    "ResponseAlreadySentError",
    "ErrorHandler",
]
