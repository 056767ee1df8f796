"""
Response - Imperative HTTP response used by controller actions.

Actions write to the response (``send_file``, ``render``, ``json``,
``send_status``); the transport emits it over ASGI once the action
returns. A response can be written only once.
"""

from __future__ import annotations

import asyncio
import json as stdlib_json
import mimetypes
from http import HTTPStatus
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from routewise.faults.domains import ResponseAlreadySentError


PathLike = Union[str, Path]

CHUNK_SIZE = 64 * 1024


def _json_default_serializer(o: Any) -> Any:
    if isinstance(o, (set, frozenset)):
        return list(o)
    if isinstance(o, Path):
        return str(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


class Response:
    """
    Outgoing HTTP response.

    Args:
        renderer: Template renderer used by ``render`` (async ``render(path, model)``)
    """

    def __init__(self, renderer: Optional[Any] = None):
        self.renderer = renderer
        self.status: int = 200
        self.headers: Dict[str, str] = {}
        self.committed: bool = False
        self._body: bytes = b""
        self._file: Optional[Path] = None

    def __repr__(self) -> str:
        state = "committed" if self.committed else "pending"
        return f"Response({self.status}, {state})"

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def file(self) -> Optional[Path]:
        return self._file

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    # ========================================================================
    # Writers
    # ========================================================================

    def send(
        self,
        content: Union[str, bytes],
        status: int = 200,
        media_type: Optional[str] = None,
    ) -> None:
        """Write a raw body."""
        self._commit("send")
        if isinstance(content, str):
            content = content.encode("utf-8")
            media_type = media_type or "text/plain; charset=utf-8"
        self.status = status
        self._body = content
        self.headers.setdefault("content-type", media_type or "application/octet-stream")

    def json(self, payload: Any, status: int = 200) -> None:
        """Write a JSON body."""
        self._commit("json")
        self.status = status
        self._body = stdlib_json.dumps(payload, default=_json_default_serializer).encode("utf-8")
        self.headers["content-type"] = "application/json; charset=utf-8"

    def send_status(self, code: int) -> None:
        """Write a status code with its reason phrase as body."""
        self._commit("send_status")
        self.status = code
        try:
            phrase = HTTPStatus(code).phrase
        except ValueError:
            phrase = str(code)
        self._body = phrase.encode("utf-8")
        self.headers["content-type"] = "text/plain; charset=utf-8"

    def send_file(self, path: PathLike, media_type: Optional[str] = None) -> None:
        """
        Stream a file verbatim.

        Raises:
            FileNotFoundError: Path is not an existing file
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        self._commit("send_file")

        if media_type is None:
            media_type, _ = mimetypes.guess_type(str(path))
        self.status = 200
        self._file = path
        self.headers["content-type"] = media_type or "application/octet-stream"
        self.headers["content-length"] = str(path.stat().st_size)

    async def render(self, template: PathLike, model: Optional[Mapping[str, Any]] = None) -> None:
        """Render a template file through the renderer and write it as HTML."""
        if self.renderer is None:
            raise RuntimeError("No template renderer configured for this response")
        if self.committed:
            raise ResponseAlreadySentError("render")
        html = await self.renderer.render(template, dict(model or {}))
        self.send(html, media_type="text/html; charset=utf-8")

    def _commit(self, attempted: str) -> None:
        if self.committed:
            raise ResponseAlreadySentError(attempted)
        self.committed = True

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]], *, head: bool = False) -> None:
        """Emit the response as ASGI ``http.response.*`` messages."""
        if self._file is None and "content-length" not in self.headers:
            self.headers["content-length"] = str(len(self._body))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })

        if head:
            await send({"type": "http.response.body", "body": b"", "more_body": False})
            return

        if self._file is None:
            await send({"type": "http.response.body", "body": self._body, "more_body": False})
            return

        with open(self._file, "rb") as fp:
            while True:
                chunk = await asyncio.to_thread(fp.read, CHUNK_SIZE)
                if not chunk:
                    break
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        await send({"type": "http.response.body", "body": b"", "more_body": False})

    def _prepare_headers(self) -> List[tuple]:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers.items()
        ]
