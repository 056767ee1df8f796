"""
DI-specific error types with rich diagnostics.
"""

from typing import Any, Iterable, Optional

from routewise.faults.core import Fault, FaultDomain, Severity


class DIError(Fault):
    """Base exception for DI errors."""

    domain = FaultDomain.DI


class DuplicateKeyError(DIError):
    """A dependency with this name is already registered."""

    def __init__(self, key: str):
        msg = (
            f"There is already a component named '{key}'"
            f"\n\nSuggested fixes:"
            f"\n  - Pick a different name"
            f"\n  - Pass overwrite=True to replace the existing entry"
        )
        super().__init__(
            code="DI_DUPLICATE_KEY",
            message=msg,
            severity=Severity.FATAL,
            metadata={"key": key},
        )
        self.key = key


class InvalidSpecError(DIError):
    """A dependency declaration is malformed."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            code="DI_INVALID_SPEC",
            message=f"Invalid dependency '{key}': {reason}",
            severity=Severity.FATAL,
            metadata={"key": key, "reason": reason},
        )
        self.key = key
        self.reason = reason


class UnknownDependencyError(DIError):
    """No dependency registered under the requested name."""

    def __init__(
        self,
        key: str,
        candidates: Optional[Iterable[str]] = None,
        requested_by: Optional[str] = None,
    ):
        self.key = key
        self.candidates = sorted(candidates or [])
        self.requested_by = requested_by

        msg = f"No dependency registered for '{key}'"
        if requested_by:
            msg += f"\nRequested by: {requested_by}"
        if self.candidates:
            msg += "\n\nRegistered names:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        super().__init__(
            code="DI_UNKNOWN_DEPENDENCY",
            message=msg,
            metadata={"key": key, "candidates": self.candidates},
        )


class ConstructionError(DIError):
    """
    Building a dependency failed.

    Always raised ``from`` the original exception so the cause is kept.
    """

    def __init__(self, key: str, cause: Optional[BaseException] = None, reason: Optional[str] = None):
        detail = reason or (f"{type(cause).__name__}: {cause}" if cause else "unknown failure")
        super().__init__(
            code="DI_CONSTRUCTION_FAILED",
            message=f"Failed to create dependency '{key}': {detail}",
            metadata={"key": key},
        )
        self.key = key
        self.cause: Any = cause
