"""
Controller discovery - imports controller modules from a directory.

Every ``*.py`` file whose name contains ``Controller`` or ``controller``
is executed in an isolated module namespace; the Controller subclasses it
defines are returned in sorted path order. Import errors propagate.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import List, Type, Union

from .controller.base import Controller


logger = logging.getLogger("routewise.application")


def _is_controller_file(path: Path) -> bool:
    return path.is_file() and "controller" in path.stem.lower()


def controller_files(directory: Union[str, Path]) -> List[Path]:
    """Controller module files below ``directory``, sorted by path."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*.py") if _is_controller_file(p))


def load_module(path: Path) -> ModuleType:
    """
    Execute ``path`` as a fresh module.

    Raises:
        ImportError: File cannot be loaded
    """
    resolved = path.resolve()
    digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:12]
    module_name = f"_routewise_controllers_{resolved.stem}_{digest}"

    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load controller module from {resolved}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def discover_controllers(directory: Union[str, Path]) -> List[Type[Controller]]:
    """Import controller modules under ``directory`` and collect their classes."""
    found: List[Type[Controller]] = []
    for path in controller_files(directory):
        module = load_module(path)
        for obj in list(vars(module).values()):
            if (
                inspect.isclass(obj)
                and issubclass(obj, Controller)
                and obj is not Controller
                and obj.__module__ == module.__name__
            ):
                found.append(obj)
        logger.debug("Loaded controller module %s", path)
    return found
