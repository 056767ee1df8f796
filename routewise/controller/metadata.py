"""
Controller Metadata - Convention-based route synthesis.

Derives a route table from a Controller class by reading its own method
names and signatures:

    get                 -> GET  /
    get_users           -> GET  /users
    getUser(name)       -> GET  /user/:name
    post_user(name, age)-> POST /user/:name/:age

Routes are ordered by ranking (parameter count) and then by action name,
so routes with fewer placeholders are registered, and matched, first.
"""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from routewise.faults.domains import ControllerDefinitionError
from routewise.transport.base import HTTP_VERBS

from .base import Controller
from .decorators import get_url_path


logger = logging.getLogger("routewise.controller")

_ACTION_NAME = re.compile(
    r"^(?P<verb>" + "|".join(HTTP_VERBS) + r")"
    r"(?:_(?P<snake>[A-Za-z0-9][A-Za-z0-9_]*)|(?P<camel>[A-Z0-9][A-Za-z0-9_]*))?$"
)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_NAMED = _POSITIONAL + (inspect.Parameter.KEYWORD_ONLY,)

DEFAULT_VIEW = "index"


@dataclass(frozen=True)
class RouteDescriptor:
    """
    A synthesized route.

    Attributes:
        verb: Lower-case HTTP verb
        action_name: Method name on the controller
        path_pattern: URL pattern with ``:name`` placeholders
        parameter_names: Action parameters, in declaration order
        ranking: Parameter count (lower registers first)
        default_view: View used when the action renders without a name
    """
    verb: str
    action_name: str
    path_pattern: str
    parameter_names: Tuple[str, ...] = ()
    ranking: int = 0
    default_view: str = DEFAULT_VIEW

    @property
    def placeholders(self) -> List[str]:
        return [s[1:] for s in self.path_pattern.split("/") if s.startswith(":")]

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.ranking, self.action_name)


@dataclass
class ControllerTypeRegistration:
    """
    Everything needed to route to and build a controller type.

    ``view_lookup_cache`` only grows until the owning registry is reset.
    """
    controller_name: str
    controller_type: Type[Controller]
    routes: List[RouteDescriptor] = field(default_factory=list)
    constructor_dependency_names: List[str] = field(default_factory=list)
    view_search_path: List[str] = field(default_factory=list)
    view_lookup_cache: Dict[str, Any] = field(default_factory=dict)
    path_prefix: Optional[str] = None
    custom_routes: bool = False

    def get_route(self, action_name: str) -> Optional[RouteDescriptor]:
        for route in self.routes:
            if route.action_name == action_name:
                return route
        return None


def parse_action_name(name: str) -> Optional[Tuple[str, str]]:
    """
    Split a method name into ``(verb, path segment)``.

    Returns None for non-routable names. The segment is empty for a bare
    verb; camel-case remainders get their first letter lowered.
    """
    m = _ACTION_NAME.match(name)
    if m is None:
        return None
    verb = m.group("verb")
    if m.group("snake"):
        return verb, m.group("snake")
    camel = m.group("camel")
    if camel:
        return verb, camel[0].lower() + camel[1:]
    return verb, ""


def controller_name_for(controller_type: type) -> str:
    """``AdminController`` -> ``admin``; a ``controller_name`` attribute wins."""
    explicit = getattr(controller_type, "controller_name", None)
    if isinstance(explicit, str) and explicit:
        return explicit
    name = controller_type.__name__
    if name.endswith("Controller") and name != "Controller":
        name = name[: -len("Controller")]
    return name.lower()


def parameter_names(func: Callable[..., Any], skip: int = 1) -> List[str]:
    """
    Formal parameter names of ``func`` in declaration order.

    Defaults are dropped, variadics ignored, and the first ``skip``
    parameters (``self``) left out.
    """
    params = [
        p for p in inspect.signature(func).parameters.values()
        if p.kind in _NAMED
    ]
    return [p.name for p in params[skip:]]


def constructor_dependency_names(controller_type: Type[Controller]) -> List[str]:
    """
    Names of constructor parameters after ``self`` and the settings argument.

    Raises:
        ControllerDefinitionError: Constructor cannot receive settings
    """
    init = controller_type.__init__
    if init is Controller.__init__:
        return []

    params = list(inspect.signature(init).parameters.values())
    positional = [p for p in params if p.kind in _POSITIONAL]
    if len(positional) < 2:
        raise ControllerDefinitionError(
            controller_type, "constructor must accept a settings argument first"
        )

    for p in params:
        if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty:
            raise ControllerDefinitionError(
                controller_type,
                f"keyword-only constructor parameter {p.name!r} cannot be injected",
            )

    return [p.name for p in positional[2:]]


def build_path_pattern(segment: str, parameters: Iterable[str]) -> str:
    """``("user", ["name"])`` -> ``/user/:name``; empty parts are dropped."""
    parts = [segment] if segment else []
    parts.extend(f":{p}" for p in parameters)
    return "/" + "/".join(parts)


def join_path(prefix: str, pattern: str) -> str:
    """Prefix a route pattern: ``("/admin", "/")`` -> ``/admin``."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return pattern
    return prefix if pattern == "/" else prefix + pattern


class RouteSynthesizer:
    """
    Builds ``ControllerTypeRegistration`` objects from controller classes.

    Only the class's own methods are scanned. A class that defines
    ``register_routes(transport, router)`` opts out of convention
    routing entirely.
    """

    def synthesize(
        self,
        controller_type: Type[Controller],
        view_search_path: Iterable[str] = (),
    ) -> ControllerTypeRegistration:
        """
        Raises:
            ControllerDefinitionError: Not a Controller subclass, or bad constructor
        """
        if not inspect.isclass(controller_type) or not issubclass(controller_type, Controller):
            raise ControllerDefinitionError(controller_type, "not a Controller subclass")

        registration = ControllerTypeRegistration(
            controller_name=controller_name_for(controller_type),
            controller_type=controller_type,
            constructor_dependency_names=constructor_dependency_names(controller_type),
            view_search_path=[str(p) for p in view_search_path],
            path_prefix=getattr(controller_type, "path_prefix", None) or None,
        )

        if callable(getattr(controller_type, "register_routes", None)):
            registration.custom_routes = True
            return registration

        registration.routes = self.scan_routes(controller_type)
        return registration

    def scan_routes(self, controller_type: type) -> List[RouteDescriptor]:
        """Synthesize and sort the convention routes of ``controller_type``."""
        routes: List[RouteDescriptor] = []
        seen: Dict[Tuple[str, str], str] = {}

        for name, member in vars(controller_type).items():
            if not inspect.isfunction(member):
                continue
            parsed = parse_action_name(name)
            if parsed is None:
                continue

            verb, segment = parsed
            positional_only = [
                p.name for p in list(inspect.signature(member).parameters.values())[1:]
                if p.kind is inspect.Parameter.POSITIONAL_ONLY
            ]
            if positional_only:
                raise ControllerDefinitionError(
                    controller_type,
                    f"action {name!r} has positional-only parameters {positional_only}; "
                    "action arguments are bound by name",
                )
            params = parameter_names(member)
            pattern = get_url_path(member) or build_path_pattern(segment, params)

            route = RouteDescriptor(
                verb=verb,
                action_name=name,
                path_pattern=pattern,
                parameter_names=tuple(params),
                ranking=len(params),
                default_view=segment or DEFAULT_VIEW,
            )

            key = (verb, pattern.lower())
            if key in seen:
                logger.warning(
                    "%s.%s shadows %s on %s %s",
                    controller_type.__name__, name, seen[key], verb.upper(), pattern,
                )
            else:
                seen[key] = name
            routes.append(route)

        routes.sort(key=lambda r: r.sort_key)
        return routes


def describe_routes(registration: ControllerTypeRegistration) -> List[Dict[str, Any]]:
    """Flatten a registration into printable rows."""
    prefix = (registration.path_prefix or "").rstrip("/")
    return [
        {
            "controller": registration.controller_name,
            "verb": route.verb.upper(),
            "path": join_path(prefix, route.path_pattern),
            "action": route.action_name,
            "ranking": route.ranking,
            "view": route.default_view,
        }
        for route in registration.routes
    ]
