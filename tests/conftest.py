"""
Shared test fixtures and helpers for the Routewise test suite.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from routewise.config import Config
from routewise.controller.metadata import ControllerTypeRegistration
from routewise.controller.base import Controller


# ============================================================================
# ASGI Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append(
            (name.encode("latin-1") if isinstance(name, str) else name,
             value.encode("latin-1") if isinstance(value, str) else value)
        )
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or a chunk list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


class CapturedResponse:
    """ASGI response collected from ``send`` events."""

    def __init__(self, messages: List[dict]):
        self.messages = messages
        start = next(m for m in messages if m["type"] == "http.response.start")
        self.status: int = start["status"]
        self.headers: Dict[str, str] = {
            k.decode("latin-1"): v.decode("latin-1") for k, v in start["headers"]
        }
        self.body: bytes = b"".join(
            m.get("body", b"") for m in messages if m["type"] == "http.response.body"
        )

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body)


async def call_app(
    app,
    method: str = "GET",
    path: str = "/",
    *,
    body: Any = b"",
    headers: Optional[List[tuple]] = None,
    query_string: str = "",
) -> CapturedResponse:
    """Run one HTTP request through an ASGI app and collect the response."""
    headers = list(headers or [])
    if isinstance(body, dict):
        body = json.dumps(body).encode("utf-8")
        headers.append(("content-type", "application/json"))

    messages: List[dict] = []

    async def send(message):
        messages.append(message)

    scope = make_scope(method, path, query_string=query_string, headers=headers)
    await app(scope, make_receive(body), send)
    return CapturedResponse(messages)


# ============================================================================
# Fixtures
# ============================================================================


class StubApplication:
    """Just enough application for controllers created outside a boot."""

    def __init__(self, config: Optional[Config] = None, view_resolver=None):
        self.config = config or Config()
        self.view_resolver = view_resolver


@pytest.fixture
def stub_app():
    return StubApplication()


@pytest.fixture
def view_tree(tmp_path):
    """
    A view directory::

        views/home/index.html
        views/home/about.jinja
        views/home/about.html
        shared/layout.jinja
        shared/error.jinja
    """
    home = tmp_path / "views" / "home"
    home.mkdir(parents=True)
    (home / "index.html").write_text("<h1>home</h1>")
    (home / "about.jinja").write_text("<p>About {{ name }}</p>")
    (home / "about.html").write_text("<p>static about</p>")
    shared = tmp_path / "shared"
    shared.mkdir()
    (shared / "layout.jinja").write_text("<main>{% block body %}{% endblock %}</main>")
    (shared / "error.jinja").write_text("<h1>{{ error.status }} {{ error.code }}</h1>")
    return tmp_path


def make_registration(search_path: List[str], name: str = "home") -> ControllerTypeRegistration:
    return ControllerTypeRegistration(
        controller_name=name,
        controller_type=Controller,
        view_search_path=search_path,
    )
