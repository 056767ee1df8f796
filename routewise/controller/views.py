"""
View resolution - maps a view name to a file on a controller's search path.

Candidates are probed in directory-priority order, each directory trying
every configured extension. Lookups are cached per controller type:
hits always, misses only when the caller asked not to raise.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from routewise.faults.domains import ViewNotFoundError

from .context import current_action
from .metadata import DEFAULT_VIEW


logger = logging.getLogger("routewise.controller")

DEFAULT_EXTENSIONS = (".html",)


@dataclass(frozen=True)
class ViewLookup:
    """Outcome of a view lookup; ``file`` is None for a cached miss."""
    file: Optional[str]
    candidates: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return self.file is not None


def normalize_extension(extension: str) -> str:
    extension = extension.strip()
    return extension if extension.startswith(".") else "." + extension


class ViewResolver:
    """
    Locates view files for controllers.

    Args:
        extensions: Extensions tried for extension-less view names, in order

    The ``controller`` passed to ``locate`` only needs ``view_search_path``
    and ``view_lookup_cache`` attributes.
    """

    def __init__(self, extensions: Optional[Iterable[str]] = None):
        self.extensions: List[str] = []
        for ext in extensions or DEFAULT_EXTENSIONS:
            self.add_extension(ext)

    def add_extension(self, extension: str, *, first: bool = False) -> None:
        ext = normalize_extension(extension)
        if ext in self.extensions:
            self.extensions.remove(ext)
        if first:
            self.extensions.insert(0, ext)
        else:
            self.extensions.append(ext)

    def locate(
        self,
        controller: Any,
        view_name: Optional[str] = None,
        extension: Optional[str] = None,
        throw_if_missing: bool = True,
    ) -> ViewLookup:
        """
        Find the file for ``view_name``.

        Raises:
            ViewNotFoundError: No candidate exists and ``throw_if_missing`` is set
        """
        if not view_name:
            action = current_action()
            view_name = action.default_view if action is not None else DEFAULT_VIEW

        cache = controller.view_lookup_cache
        cache_key = view_name + extension if extension else view_name

        cached = cache.get(cache_key)
        if cached is not None:
            if cached.file is None and throw_if_missing:
                raise ViewNotFoundError(f"View {view_name!r} not found", cached.candidates)
            return cached

        candidates = self.candidates(controller.view_search_path, view_name, extension)
        for candidate in candidates:
            if os.path.isfile(candidate):
                lookup = ViewLookup(candidate, candidates)
                cache[cache_key] = lookup
                logger.debug("View %s -> %s", cache_key, candidate)
                return lookup

        if throw_if_missing:
            raise ViewNotFoundError(f"View {view_name!r} not found", candidates)

        lookup = ViewLookup(None, candidates)
        cache[cache_key] = lookup
        return lookup

    def candidates(
        self,
        search_path: Iterable[str],
        view_name: str,
        extension: Optional[str] = None,
    ) -> Tuple[str, ...]:
        """Every path probed for ``view_name``, in probe order."""
        stem, own_ext = os.path.splitext(view_name)

        if extension:
            ext = normalize_extension(extension)
            if own_ext.lower() != ext.lower():
                stem = view_name
            extensions = [ext]
        elif own_ext:
            extensions = [own_ext]
        else:
            extensions = self.extensions

        return tuple(
            str(Path(directory) / (stem + ext))
            for directory in search_path
            for ext in extensions
        )
