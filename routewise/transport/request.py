"""
Request - ASGI request wrapper.

Carries what the dispatcher consumes: verb, path, captured path
parameters and the parsed body mapping.
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl

from routewise.faults.domains import BadRequestError


DEFAULT_MAX_BODY_SIZE = 1024 * 1024


class Request:
    """
    Incoming HTTP request.

    Attributes:
        method: Upper-case HTTP verb
        path: Request path (URL-decoded)
        params: Values captured by the matched path pattern
        query: Query string values (last value wins)
        headers: Lower-cased header names
        body: Parsed body mapping (JSON object or form fields)
        state: Per-request scratch space
    """

    __slots__ = ("method", "path", "params", "query", "headers", "body", "state", "scope")

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        *,
        params: Optional[Dict[str, str]] = None,
        query: Optional[Dict[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
        scope: Optional[dict] = None,
    ):
        self.method = method.upper()
        self.path = path
        self.params: Dict[str, str] = dict(params or {})
        self.query: Dict[str, str] = dict(query or {})
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.body: Dict[str, Any] = dict(body or {})
        self.state: Dict[str, Any] = {}
        self.scope = scope

    def __repr__(self) -> str:
        return f"Request({self.method} {self.path})"

    @classmethod
    async def from_asgi(
        cls,
        scope: dict,
        receive: Callable[[], Awaitable[dict]],
        *,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> "Request":
        """
        Build a request from an ASGI HTTP scope, reading the whole body.

        Raises:
            BadRequestError: Body too large or malformed
        """
        headers: Dict[str, str] = {}
        for name, value in scope.get("headers", []):
            headers[name.decode("latin-1").lower()] = value.decode("latin-1")

        raw_query = scope.get("query_string", b"")
        query = dict(parse_qsl(raw_query.decode("latin-1"), keep_blank_values=True))

        chunks: List[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > max_body_size:
                raise BadRequestError("Request body too large", limit=max_body_size)
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = cls.parse_body(b"".join(chunks), headers.get("content-type", ""))

        return cls(
            scope.get("method", "GET"),
            scope.get("path", "/"),
            query=query,
            headers=headers,
            body=body,
            scope=scope,
        )

    @staticmethod
    def parse_body(raw: bytes, content_type: str) -> Dict[str, Any]:
        """Parse JSON objects and urlencoded forms; anything else is empty."""
        if not raw:
            return {}

        media_type = content_type.split(";")[0].strip().lower()

        if media_type == "application/json" or media_type.endswith("+json"):
            try:
                data = stdlib_json.loads(raw)
            except (ValueError, UnicodeDecodeError) as exc:
                raise BadRequestError(f"Malformed JSON body: {exc}") from exc
            if not isinstance(data, dict):
                raise BadRequestError("JSON body must be an object")
            return data

        if media_type == "application/x-www-form-urlencoded":
            return dict(parse_qsl(raw.decode("utf-8", "replace"), keep_blank_values=True))

        return {}

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def accepts_json(self) -> bool:
        """True when the client prefers JSON over HTML."""
        accept = self.headers.get("accept", "")
        if "application/json" in accept:
            return "text/html" not in accept or accept.index("application/json") < accept.index("text/html")
        return self.headers.get("content-type", "").startswith("application/json")
