"""
Template Engine - Async Jinja2 rendering for resolved view files.

The view resolver hands over absolute file paths. Files that live under
one of the renderer's search roots are loaded by their root-relative name
so ``{% extends %}`` and ``{% include %}`` resolve against the same roots.
Such files load through an environment that searches their own root
first, so a same-named file in another root never shadows them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape

from routewise.faults.domains import ViewNotFoundError


logger = logging.getLogger("routewise.templates")

PathLike = Union[str, Path]


class TemplateRenderer:
    """
    Async-capable Jinja2 renderer.

    Args:
        search_paths: Template root directories, in priority order
        globals: Extra globals available to every template

    Example:
        renderer = TemplateRenderer(["/srv/app/views"])
        html = await renderer.render("/srv/app/views/home/index.jinja", {"title": "Hi"})
    """

    def __init__(
        self,
        search_paths: Optional[Iterable[PathLike]] = None,
        *,
        globals: Optional[Mapping[str, Any]] = None,
    ):
        self.search_paths: List[Path] = [Path(p).resolve() for p in (search_paths or [])]
        self._globals = dict(globals or {})
        self.env = self._create_environment(self.search_paths)
        self._root_envs: Dict[Path, Environment] = {}
        self._fallback_envs: Dict[Path, Environment] = {}

    def _create_environment(self, roots: List[Path]) -> Environment:
        env = Environment(
            loader=FileSystemLoader([str(p) for p in roots]),
            autoescape=select_autoescape(
                enabled_extensions=["html", "htm", "xml", "jinja", "j2"],
                default_for_string=True,
            ),
            enable_async=True,
        )
        env.globals.update(self._globals)
        return env

    def _environment_for(self, root: Path) -> Environment:
        """Environment searching ``root`` first, then the remaining roots."""
        env = self._root_envs.get(root)
        if env is None:
            roots = [root] + [p for p in self.search_paths if p != root]
            env = self._root_envs[root] = self._create_environment(roots)
        return env

    def add_search_path(self, path: PathLike) -> None:
        resolved = Path(path).resolve()
        if resolved not in self.search_paths:
            self.search_paths.append(resolved)
            self.env = self._create_environment(self.search_paths)
            self._root_envs.clear()

    def get_template(self, template: PathLike) -> Template:
        """
        Load a template by absolute path or search-root-relative name.

        Raises:
            ViewNotFoundError: No such template
        """
        path = Path(template)
        try:
            if not path.is_absolute():
                return self.env.get_template(path.as_posix())

            resolved = path.resolve()
            if not resolved.is_file():
                raise ViewNotFoundError(f"Template not found: {resolved}", [str(resolved)])

            for root in self.search_paths:
                try:
                    relative = resolved.relative_to(root)
                except ValueError:
                    continue
                return self._environment_for(root).get_template(relative.as_posix())

            env = self._fallback_envs.get(resolved.parent)
            if env is None:
                env = self._fallback_envs[resolved.parent] = self._create_environment([resolved.parent])
            return env.get_template(resolved.name)
        except TemplateNotFound as exc:
            raise ViewNotFoundError(f"Template not found: {template}", [str(template)]) from exc

    async def render(self, template: PathLike, model: Optional[Mapping[str, Any]] = None) -> str:
        """Render ``template`` with ``model`` as context."""
        compiled = self.get_template(template)
        logger.debug("Rendering %s", compiled.filename)
        return await compiled.render_async(**dict(model or {}))
