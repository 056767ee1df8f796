"""
Routewise Faults - Core types.

Every error Routewise raises on purpose is a ``Fault``: it names a stable
code, the domain it came from and the HTTP status the error handler
answers with. Whether its message may reach the client is decided by
``public``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How loudly the error handler logs a fault."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"     # aborts boot


class FaultDomain(Enum):
    """
    Area a fault belongs to.

    Each domain carries the severity and status used when a fault does
    not set its own.
    """

    CONFIG = ("config", Severity.FATAL, 500)
    DI = ("di", Severity.ERROR, 500)
    ROUTING = ("routing", Severity.ERROR, 500)
    VIEW = ("view", Severity.ERROR, 500)
    TRANSPORT = ("transport", Severity.WARN, 400)
    FLOW = ("flow", Severity.ERROR, 500)

    def __new__(cls, value: str, severity: Severity, status: int):
        member = object.__new__(cls)
        member._value_ = value
        member.default_severity = severity
        member.default_status = status
        return member

    def __str__(self) -> str:
        return self.value


class Fault(Exception):
    """
    Structured error.

    ``code``, ``message``, ``domain``, ``severity``, ``status`` and
    ``public`` may be given as class attributes on subclasses; explicit
    arguments win.

    Example:
        class OutOfStock(Fault):
            code = "OUT_OF_STOCK"
            message = "Item is out of stock"
            domain = FaultDomain.FLOW
            status = 409
            public = True
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None
    severity: Optional[Severity] = None
    status: Optional[int] = None
    public: bool = False

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        status: Optional[int] = None,
        public: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        code = code or self.code
        message = message or self.message
        domain = domain or self.domain
        if not (code and message and domain):
            raise TypeError(f"{type(self).__name__} needs a code, a message and a domain")

        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain
        self.severity = severity or self.severity or domain.default_severity
        self.status = status or self.status or domain.default_status
        if public is not None:
            self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "status": self.status,
            "public": self.public,
            "metadata": self.metadata,
        }
