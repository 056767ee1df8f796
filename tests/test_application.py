"""
Application boot, events, reload, discovery and CLI (routewise.application)
"""

import asyncio
import json
import textwrap

import pytest
from click.testing import CliRunner

from routewise import Application, Controller
from routewise.application import sort_static_prefixes
from routewise.cli import cli
from routewise.discovery import controller_files, discover_controllers
from routewise.faults import ConfigError, ControllerDefinitionError

from tests.conftest import call_app


CONTROLLER_SOURCE = textwrap.dedent("""
    from routewise import Controller


    class HomeController(Controller):
        def __init__(self, settings, clock):
            super().__init__(settings)
            self.clock = clock

        async def get(self):
            await self.render_async()

        async def get_time(self):
            self.response.json({"now": self.clock.now()})
""")

SERVICES_SOURCE = textwrap.dedent("""
    class Clock:
        def __init__(self, owner):
            self.owner = owner

        def now(self):
            return "12:00"
""")


@pytest.fixture
def site(tmp_path):
    """A complete application root with config, controllers, views and assets."""
    (tmp_path / "controllers" / "api").mkdir(parents=True)
    (tmp_path / "controllers" / "homeController.py").write_text(CONTROLLER_SOURCE)
    (tmp_path / "controllers" / "helpers.py").write_text("raise RuntimeError('never imported')\n")
    (tmp_path / "controllers" / "api" / "StatusController.py").write_text(textwrap.dedent("""
        from routewise import Controller


        class StatusController(Controller):
            path_prefix = "/api"

            def get_status(self):
                self.response.json({"ok": True})
    """))
    (tmp_path / "services.py").write_text(SERVICES_SOURCE)

    (tmp_path / "views" / "home").mkdir(parents=True)
    (tmp_path / "views" / "home" / "index.html").write_text("<h1>welcome</h1>")
    (tmp_path / "shared").mkdir()
    (tmp_path / "shared" / "error.jinja").write_text("<h1>{{ error.status }} {{ error.code }}</h1>")
    (tmp_path / "public" / "img").mkdir(parents=True)
    (tmp_path / "public" / "app.css").write_text("body{}")
    (tmp_path / "public" / "img" / "logo.svg").write_text("<svg/>")

    (tmp_path / "routewise.json").write_text(json.dumps({
        "server": {
            "port": 8123,
            "paths": {
                "shared_views": ["shared"],
                "static_content": {"/assets": "public"},
            },
        },
        "app": {
            "di": {
                "clock": {"module": "./services.py:Clock", "lifespan": "Singleton"},
            },
        },
    }))
    return tmp_path


# ============================================================================
# Boot
# ============================================================================

class TestBoot:

    @pytest.mark.asyncio
    async def test_discovered_controllers_served(self, site):
        app = Application(site)
        await app.run()

        assert sorted(app.registry.names()) == ["home", "status"]
        assert (await call_app(app, "GET", "/")).text == "<h1>welcome</h1>"
        assert (await call_app(app, "GET", "/time")).json() == {"now": "12:00"}
        assert (await call_app(app, "GET", "/api/status")).json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_static_content(self, site):
        app = Application(site)
        await app.run()
        result = await call_app(app, "GET", "/assets/app.css")
        assert result.status == 200
        assert result.text == "body{}"
        assert result.headers["content-type"] == "text/css"

    @pytest.mark.asyncio
    async def test_view_search_path(self, site):
        app = Application(site)
        await app.run()
        assert app.registry.get("home").view_search_path == [
            str((site / "views" / "home").resolve()),
            str((site / "shared").resolve()),
        ]

    @pytest.mark.asyncio
    async def test_lazy_start_on_first_request(self, site):
        app = Application(site)
        assert (await call_app(app, "GET", "/api/status")).status == 200
        assert app.config.get_value("server.port") == 8123

    @pytest.mark.asyncio
    async def test_lifespan_startup(self, site):
        app = Application(site)
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message["type"])

        await app({"type": "lifespan"}, receive, send)
        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert "home" in app.registry

    @pytest.mark.asyncio
    async def test_lifespan_startup_failure(self, tmp_path):
        (tmp_path / "routewise.json").write_text("{broken")
        app = Application(tmp_path)
        sent = []

        async def receive():
            return {"type": "lifespan.startup"}

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent[0]["type"] == "lifespan.startup.failed"

    @pytest.mark.asyncio
    async def test_invalid_config_aborts_run(self, tmp_path):
        (tmp_path / "routewise.json").write_text("[1, 2]")
        with pytest.raises(ConfigError):
            await Application(tmp_path).run()

    @pytest.mark.asyncio
    async def test_invalid_controller_aborts_run(self, tmp_path):
        class NotAController:
            pass

        app = Application(tmp_path)
        app.add_controller(NotAController)
        with pytest.raises(ControllerDefinitionError):
            await app.run()

    @pytest.mark.asyncio
    async def test_view_engines_prepended(self, tmp_path):
        app = Application(tmp_path, overrides={"server": {"view_engines": ["jinja", "j2"]}})
        await app.run()
        assert app.view_resolver.extensions == [".j2", ".jinja", ".html"]


# ============================================================================
# Events
# ============================================================================

class TestEvents:

    @pytest.mark.asyncio
    async def test_event_order_and_payloads(self, tmp_path):
        seen = []
        app = Application(tmp_path)

        async def on_init(event):
            seen.append(("initcontainer", event["container"], event["config"]))

        app.on("initcontainer", on_init).on("ready", lambda a: seen.append(("ready", a)))
        await app.run()
        assert seen == [("initcontainer", app.container, app.config), ("ready", app)]

    @pytest.mark.asyncio
    async def test_initcontainer_runs_before_swap(self, tmp_path):
        seen = []
        app = Application(tmp_path)
        app.on("initcontainer", lambda e: seen.append(app.container is None))
        await app.run()
        assert seen == [True]
        assert app.container is not None

    @pytest.mark.asyncio
    async def test_listeners_called_in_registration_order(self, tmp_path):
        order = []
        app = Application(tmp_path)
        app.on("ready", lambda a: order.append(1))
        app.on("ready", lambda a: order.append(2))
        await app.emit("ready", app)
        assert order == [1, 2]


# ============================================================================
# Reload
# ============================================================================

class TestReload:

    @pytest.mark.asyncio
    async def test_reload_debounced(self, site):
        app = Application(site)
        await app.run()
        assert await app.reload() is False

    @pytest.mark.asyncio
    async def test_reload_rebuilds_and_clears_view_caches(self, site):
        events = []
        app = Application(site)
        app.on("config.reloading", lambda a: events.append("reloading"))
        await app.run()

        await call_app(app, "GET", "/")
        old = app.registry.get("home")
        assert old.view_lookup_cache

        app._booted_at -= 5
        assert await app.reload() is True
        assert events == ["reloading"]
        assert old.view_lookup_cache == {}
        assert app.registry.get("home") is not old
        assert (await call_app(app, "GET", "/")).status == 200

    @pytest.mark.asyncio
    async def test_reload_picks_up_config_changes(self, site):
        app = Application(site)
        await app.run()

        config = json.loads((site / "routewise.json").read_text())
        config["server"]["port"] = 9000
        (site / "routewise.json").write_text(json.dumps(config))

        app._booted_at -= 5
        await app.reload()
        assert app.config.get_value("server.port") == 9000

    @pytest.mark.asyncio
    async def test_requests_served_during_reload(self, site):
        app = Application(site)
        await app.run()
        old_registry = app.registry

        entered, release = asyncio.Event(), asyncio.Event()

        async def hold(event):
            entered.set()
            await release.wait()

        app.on("initcontainer", hold)
        app._booted_at -= 5
        reload = asyncio.create_task(app.reload())
        await entered.wait()

        result = await call_app(app, "GET", "/time")
        assert result.status == 200
        assert result.json() == {"now": "12:00"}
        assert app.registry is old_registry
        assert "home" in old_registry

        release.set()
        assert await reload is True
        assert app.registry is not old_registry
        assert (await call_app(app, "GET", "/time")).status == 200

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_serving(self, site):
        app = Application(site)
        await app.run()
        transport, registry = app.transport, app.registry

        class NotAController:
            pass

        app.add_controller(NotAController)
        app._booted_at -= 5
        with pytest.raises(ControllerDefinitionError):
            await app.reload()

        assert app.transport is transport
        assert app.registry is registry
        result = await call_app(app, "GET", "/time")
        assert result.status == 200
        assert result.json() == {"now": "12:00"}


# ============================================================================
# Error handling
# ============================================================================

class TestErrorView:

    @pytest.mark.asyncio
    async def test_configured_error_view_rendered(self, tmp_path):
        (tmp_path / "shared").mkdir()
        (tmp_path / "shared" / "error.jinja").write_text("<h1>{{ error.status }} {{ error.code }}</h1>")

        class BrokenController(Controller):
            def get(self):
                raise ValueError("internal detail")

        app = Application(tmp_path, overrides={"server": {"error_view": "shared/error.jinja"}})
        app.add_controller(BrokenController)
        await app.run()

        result = await call_app(app, "GET", "/")
        assert result.status == 500
        assert result.text == "<h1>500 INTERNAL_ERROR</h1>"

    @pytest.mark.asyncio
    async def test_custom_error_handler(self, tmp_path):
        calls = []

        async def handler(request, response, error):
            calls.append(type(error).__name__)
            response.send("custom", status=503)

        class BrokenController(Controller):
            def get(self):
                raise KeyError("x")

        app = Application(tmp_path, error_handler=handler)
        app.add_controller(BrokenController)
        await app.run()

        result = await call_app(app, "GET", "/")
        assert result.status == 503
        assert calls == ["KeyError"]


# ============================================================================
# Discovery
# ============================================================================

class TestDiscovery:

    def test_controller_files_sorted_and_filtered(self, site):
        files = controller_files(site / "controllers")
        assert [f.name for f in files] == ["StatusController.py", "homeController.py"]

    def test_discover_returns_controller_subclasses(self, site):
        found = discover_controllers(site / "controllers")
        assert [c.__name__ for c in found] == ["StatusController", "HomeController"]
        assert all(issubclass(c, Controller) for c in found)

    def test_missing_directory(self, tmp_path):
        assert discover_controllers(tmp_path / "nope") == []

    def test_import_errors_propagate(self, tmp_path):
        (tmp_path / "badController.py").write_text("import does_not_exist_anywhere\n")
        with pytest.raises(ImportError):
            discover_controllers(tmp_path)


def test_static_prefixes_most_specific_first():
    assert sort_static_prefixes(["/", "/assets", "/assets/img", "/b"]) == [
        "/assets/img", "/", "/assets", "/b",
    ]


# ============================================================================
# CLI
# ============================================================================

class TestCLI:

    def test_routes(self, site):
        result = CliRunner().invoke(cli, ["routes", "--root", str(site)])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert any(line.startswith("GET") and "/api/status" in line and "status.get_status" in line for line in lines)
        assert any("/time" in line and "home.get_time" in line for line in lines)

    def test_routes_with_bad_config(self, tmp_path):
        result = CliRunner().invoke(cli, ["routes", "--root", str(tmp_path), "--config", "missing.json"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "routes" in result.output
        assert "run" in result.output
