"""
Controller Base Class

Provides the base Controller class and the ControllerSettings handed to
every controller constructor.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING, Union

if TYPE_CHECKING:
    from routewise.config import Config
    from routewise.transport.request import Request
    from routewise.transport.response import Response
    from .views import ViewLookup


@dataclass
class ControllerSettings:
    """
    Per-request construction context for a controller.

    Attributes:
        application: The owning application
        config: Application configuration
        controller_name: Registered controller name
        controller_type: Controller class being built
        request: The HTTP request
        response: The HTTP response
        view_search_path: Directories searched for views, in priority order
        view_lookup_cache: Shared per-type view lookup cache
        dependencies: Resolved constructor dependencies by name
    """

    application: Any
    config: Optional["Config"]
    controller_name: str
    controller_type: type
    request: "Request"
    response: "Response"
    view_search_path: List[str] = field(default_factory=list)
    view_lookup_cache: Dict[str, Any] = field(default_factory=dict)
    dependencies: Dict[str, Any] = field(default_factory=dict)


class Controller:
    """
    Base Controller class.

    Controllers are built once per matched request. Routes come from
    method names (``get_users``, ``postUser``...), dependencies from the
    constructor parameters after ``settings``.

    Class Attributes:
        path_prefix: URL prefix the controller's router is mounted under
        controller_name: Overrides the name derived from the class name

    Example:
        class UserController(Controller):
            path_prefix = "/api"

            def __init__(self, settings, users):
                super().__init__(settings)
                self.users = users

            async def get_user(self, name):
                self.response.json(await self.users.find(name))
    """

    path_prefix: Optional[str] = None

    def __init__(self, settings: ControllerSettings):
        self.settings = settings

    @property
    def application(self) -> Any:
        return self.settings.application

    @property
    def config(self) -> Optional["Config"]:
        return self.settings.config

    @property
    def request(self) -> "Request":
        return self.settings.request

    @property
    def response(self) -> "Response":
        return self.settings.response

    @property
    def view_lookup_cache(self) -> Dict[str, Any]:
        return self.settings.view_lookup_cache

    @property
    def view_search_path(self) -> List[str]:
        return self.settings.view_search_path

    @property
    def view_extensions(self) -> List[str]:
        return list(self.application.view_resolver.extensions)

    # ========================================================================
    # Views
    # ========================================================================

    def locate_view_file(
        self,
        view_name: Optional[str] = None,
        extension: Optional[str] = None,
        throw_if_missing: bool = True,
    ) -> "ViewLookup":
        """Find the file for ``view_name`` (default: the running action's view)."""
        return self.application.view_resolver.locate(
            self,
            view_name,
            extension=extension,
            throw_if_missing=throw_if_missing,
        )

    async def render_async(
        self,
        view: Union[str, Mapping[str, Any], None] = None,
        model: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Render a view into the response.

        ``.html`` files are sent verbatim; anything else goes through the
        template renderer with ``model`` as context. A mapping passed as
        the first argument is taken as the model for the default view.
        """
        if isinstance(view, Mapping):
            view, model = None, view

        lookup = self.locate_view_file(view)
        if lookup.file.lower().endswith(".html"):
            self.response.send_file(lookup.file)
        else:
            await self.response.render(lookup.file, model or {})

    async def render_html(self, view: Optional[str] = None) -> None:
        """Send the ``.html`` file for ``view`` verbatim."""
        lookup = self.locate_view_file(view, extension=".html")
        self.response.send_file(lookup.file)
