"""
Routewise Faults - Centralized error handler.

Every exception raised by a controller action ends up here. The handler
logs it, picks a status code and writes a response that never exposes
a stack trace to the client.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from .core import Fault, Severity
from .domains import ViewNotFoundError

if TYPE_CHECKING:
    from routewise.transport.request import Request
    from routewise.transport.response import Response


logger = logging.getLogger("routewise.faults")

_GENERIC_MESSAGE = "Internal Server Error"


class ErrorHandler:
    """
    Default error handler.

    Resolution:
    1. Log (exception-level for non-faults and ERROR/FATAL faults)
    2. Skip if the response was already committed
    3. Render ``error_view`` if configured and found on disk
    4. Otherwise answer JSON or plain text depending on ``Accept``

    Args:
        error_view: Path of an error template (rendered with ``{"error": ...}``)
        renderer: Template renderer used for ``error_view``
    """

    def __init__(self, error_view: Optional[str] = None, renderer: Optional[Any] = None):
        self.error_view = error_view
        self.renderer = renderer

    async def __call__(self, request: "Request", response: "Response", error: BaseException) -> None:
        try:
            await self.handle(request, response, error)
        except Exception:
            logger.exception("Error handler failed while handling %r", error)
            if not response.committed:
                response.send_status(500)

    async def handle(self, request: "Request", response: "Response", error: BaseException) -> None:
        self.log(request, error)

        if response.committed:
            return

        status, code, message = self.describe(error)

        if self.error_view and self.renderer is not None:
            try:
                body = await self.renderer.render(
                    self.error_view,
                    {"error": {"status": status, "code": code, "message": message}},
                )
            except ViewNotFoundError:
                logger.warning("Error view %s not found, falling back", self.error_view)
            else:
                response.send(body, status=status, media_type="text/html; charset=utf-8")
                return

        if request.accepts_json():
            response.json({"error": {"code": code, "message": message}}, status=status)
        else:
            response.send(message, status=status)

    @staticmethod
    def describe(error: BaseException) -> tuple[int, str, str]:
        """Map an exception to ``(status, code, client-safe message)``."""
        if isinstance(error, Fault):
            message = error.message if error.public else _GENERIC_MESSAGE
            return error.status, error.code, message
        return 500, "INTERNAL_ERROR", _GENERIC_MESSAGE

    @staticmethod
    def log(request: "Request", error: BaseException) -> None:
        where = f"{request.method} {request.path}"
        if isinstance(error, Fault) and error.severity in (Severity.INFO, Severity.WARN):
            logger.warning("%s failed: %s", where, error)
        else:
            logger.exception("%s failed: %s", where, error, exc_info=error)
