"""
Controller Method Decorators

Attach routing metadata to action methods without import-time side
effects. Convention routing reads the metadata when synthesizing.
"""

from typing import Any, Callable, TypeVar


F = TypeVar("F", bound=Callable[..., Any])

URL_PATH_ATTR = "__url_path__"


def url_path(path: str) -> Callable[[F], F]:
    """
    Override the convention-derived URL pattern of an action.

    The action keeps its verb (from its name) and parameter binding;
    placeholders missing from ``path`` are bound from the request body.

    Example:
        class UserController(Controller):
            @url_path("/users/:name/profile")
            async def get_profile(self, name):
                ...
    """
    if not isinstance(path, str) or not path.startswith("/"):
        raise ValueError(f"url_path must be an absolute path, got {path!r}")

    def decorator(func: F) -> F:
        setattr(func, URL_PATH_ATTR, path)
        return func

    return decorator


def get_url_path(func: Callable[..., Any]):
    """Return the explicit URL path of ``func`` or None."""
    return getattr(func, URL_PATH_ATTR, None)
