"""
Convention route synthesis (routewise.controller.metadata)
"""

import pytest

from routewise.controller import Controller, RouteSynthesizer, url_path
from routewise.controller.metadata import (
    build_path_pattern,
    controller_name_for,
    describe_routes,
    parse_action_name,
)
from routewise.faults import ControllerDefinitionError


class UserController(Controller):
    def __init__(self, settings, users, mailer):
        super().__init__(settings)
        self.users = users
        self.mailer = mailer

    def get(self):
        pass

    async def get_user(self, name):
        pass

    async def getUsers(self):
        pass

    async def post_user(self, name, age):
        pass

    async def delete_user(self, name, *args, **kwargs):
        pass

    async def get_search(self, term, page=1):
        pass

    def helper(self):
        pass

    def getaway(self):
        pass

    def _get_private(self):
        pass

    @staticmethod
    def get_static():
        pass


def routes_by_action(registration):
    return {r.action_name: r for r in registration.routes}


# ============================================================================
# Name parsing
# ============================================================================

class TestParseActionName:

    @pytest.mark.parametrize("name,expected", [
        ("get", ("get", "")),
        ("get_user", ("get", "user")),
        ("getUser", ("get", "user")),
        ("postUserProfile", ("post", "userProfile")),
        ("delete_user_account", ("delete", "user_account")),
        ("patch", ("patch", "")),
        ("head_status", ("head", "status")),
    ])
    def test_routable(self, name, expected):
        assert parse_action_name(name) == expected

    @pytest.mark.parametrize("name", ["getaway", "patches", "helper", "_get_x", "Get_user", "get_"])
    def test_non_routable(self, name):
        assert parse_action_name(name) is None


class TestControllerName:

    def test_suffix_stripped_and_lowercased(self):
        assert controller_name_for(UserController) == "user"

    def test_without_suffix(self):
        class Admin(Controller):
            pass
        assert controller_name_for(Admin) == "admin"

    def test_explicit_name(self):
        class Thing(Controller):
            controller_name = "widgets"
        assert controller_name_for(Thing) == "widgets"


# ============================================================================
# Synthesis
# ============================================================================

class TestSynthesis:

    def test_constructor_dependencies(self):
        registration = RouteSynthesizer().synthesize(UserController)
        assert registration.constructor_dependency_names == ["users", "mailer"]

    def test_base_constructor_has_no_dependencies(self):
        class PlainController(Controller):
            def get(self):
                pass
        assert RouteSynthesizer().synthesize(PlainController).constructor_dependency_names == []

    def test_inherited_constructor_dependencies(self):
        class ChildController(UserController):
            pass
        registration = RouteSynthesizer().synthesize(ChildController)
        assert registration.constructor_dependency_names == ["users", "mailer"]

    def test_constructor_without_settings_rejected(self):
        class BadController(Controller):
            def __init__(self):
                pass
        with pytest.raises(ControllerDefinitionError):
            RouteSynthesizer().synthesize(BadController)

    def test_patterns(self):
        routes = routes_by_action(RouteSynthesizer().synthesize(UserController))
        assert routes["get"].path_pattern == "/"
        assert routes["get_user"].path_pattern == "/user/:name"
        assert routes["getUsers"].path_pattern == "/users"
        assert routes["post_user"].path_pattern == "/user/:name/:age"
        assert routes["delete_user"].path_pattern == "/user/:name"
        assert routes["get_search"].path_pattern == "/search/:term/:page"

    def test_non_routable_members_skipped(self):
        routes = routes_by_action(RouteSynthesizer().synthesize(UserController))
        for name in ("helper", "getaway", "_get_private", "get_static", "__init__"):
            assert name not in routes

    def test_default_views(self):
        routes = routes_by_action(RouteSynthesizer().synthesize(UserController))
        assert routes["get"].default_view == "index"
        assert routes["getUsers"].default_view == "users"
        assert routes["post_user"].default_view == "user"

    def test_ranking_and_order(self):
        registration = RouteSynthesizer().synthesize(UserController)
        rankings = [r.ranking for r in registration.routes]
        assert rankings == sorted(rankings)
        assert [r.action_name for r in registration.routes] == [
            "get", "getUsers", "delete_user", "get_user", "get_search", "post_user",
        ]

    def test_placeholders_match_parameters(self):
        for route in RouteSynthesizer().synthesize(UserController).routes:
            assert len(route.placeholders) == len(route.parameter_names)
            assert route.ranking == len(route.parameter_names)

    def test_verbs(self):
        routes = routes_by_action(RouteSynthesizer().synthesize(UserController))
        assert routes["post_user"].verb == "post"
        assert routes["delete_user"].verb == "delete"

    def test_base_members_excluded(self):
        class ChildController(UserController):
            async def get_extra(self):
                pass
        routes = RouteSynthesizer().synthesize(ChildController).routes
        assert [r.action_name for r in routes] == ["get_extra"]

    def test_bare_verb_with_parameter(self):
        class ItemController(Controller):
            def get(self, id):
                pass
        route = RouteSynthesizer().synthesize(ItemController).routes[0]
        assert route.path_pattern == "/:id"
        assert route.default_view == "index"

    def test_view_search_path_recorded(self):
        registration = RouteSynthesizer().synthesize(UserController, ["/v/user", "/v/shared"])
        assert registration.view_search_path == ["/v/user", "/v/shared"]
        assert registration.view_lookup_cache == {}

    def test_path_prefix_recorded(self):
        class ApiController(Controller):
            path_prefix = "/api"

            def get_status(self):
                pass

        registration = RouteSynthesizer().synthesize(ApiController)
        assert registration.path_prefix == "/api"
        assert describe_routes(registration)[0]["path"] == "/api/status"


# ============================================================================
# Escape hatches
# ============================================================================

class TestEscapeHatches:

    def test_register_routes_skips_convention(self):
        class CustomController(Controller):
            def __init__(self, settings, clock):
                super().__init__(settings)

            @classmethod
            def register_routes(cls, transport, router):
                pass

            def get_ignored(self):
                pass

        registration = RouteSynthesizer().synthesize(CustomController)
        assert registration.custom_routes is True
        assert registration.routes == []
        assert registration.constructor_dependency_names == ["clock"]

    def test_url_path_used_verbatim(self):
        class ProfileController(Controller):
            @url_path("/people/:name/profile")
            async def get_profile(self, name, fields):
                pass

        route = RouteSynthesizer().synthesize(ProfileController).routes[0]
        assert route.path_pattern == "/people/:name/profile"
        assert route.parameter_names == ("name", "fields")
        assert route.ranking == 2
        assert route.verb == "get"

    def test_url_path_must_be_absolute(self):
        with pytest.raises(ValueError):
            url_path("relative/:id")


# ============================================================================
# Definition errors
# ============================================================================

class TestDefinitionErrors:

    def test_not_a_class(self):
        with pytest.raises(ControllerDefinitionError):
            RouteSynthesizer().synthesize(lambda: None)

    def test_not_a_controller(self):
        class Plain:
            def get(self):
                pass
        with pytest.raises(ControllerDefinitionError):
            RouteSynthesizer().synthesize(Plain)

    def test_positional_only_action_parameters(self):
        class ItemController(Controller):
            def get_item(self, item_id, /):
                pass

        with pytest.raises(ControllerDefinitionError) as exc_info:
            RouteSynthesizer().synthesize(ItemController)
        assert "item_id" in exc_info.value.reason

    def test_positional_only_self_is_fine(self):
        class ItemController(Controller):
            def get_item(self, /, item_id):
                pass

        route = RouteSynthesizer().synthesize(ItemController).get_route("get_item")
        assert route.path_pattern == "/item/:item_id"


def test_build_path_pattern_drops_empty_segments():
    assert build_path_pattern("", []) == "/"
    assert build_path_pattern("", ["id"]) == "/:id"
    assert build_path_pattern("user", ["a", "b"]) == "/user/:a/:b"
