"""
Module resolution for dependency sources.

The container never imports modules itself; it asks a ``ModuleResolver``
to turn a reference into a value. Tests inject fakes, the application
uses ``ImportResolver``.

Reference formats understood by ImportResolver:
    "package.module"              -> the module object
    "package.module:Attr"         -> attribute of the module
    "package.module:Outer.Inner"  -> nested attribute
    "./services/vault.py"         -> module loaded from a file (root-relative)
    "./services/vault.py:Client"  -> attribute of that file module
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ModuleResolver(Protocol):
    """Capability: resolve a module reference to a constructible or callable."""

    def resolve(self, ref: str) -> Any:
        ...


class ImportResolver:
    """
    Resolves references with importlib.

    Args:
        root_directory: Base directory for file-path references
    """

    def __init__(self, root_directory: Union[str, Path] = "."):
        self.root_directory = Path(root_directory).resolve()
        self._file_modules: Dict[Path, Any] = {}

    def resolve(self, ref: str) -> Any:
        target, _, attr_path = self._split(ref)

        if self._is_file_ref(target):
            module = self._load_file(target)
        else:
            module = importlib.import_module(target)

        value = module
        if attr_path:
            for part in attr_path.split("."):
                value = getattr(value, part)
        return value

    @staticmethod
    def _split(ref: str) -> tuple[str, str, str]:
        # Windows drive letters ("C:\\...") are not attribute separators
        if len(ref) > 2 and ref[1] == ":" and ref[2] in "\\/":
            head, sep, tail = ref[2:].rpartition(":")
            if not sep:
                return ref, "", ""
            return ref[:2] + head, sep, tail
        head, sep, tail = ref.rpartition(":")
        if not sep:
            return ref, "", ""
        return head, sep, tail

    @staticmethod
    def _is_file_ref(target: str) -> bool:
        return target.endswith(".py") or target.startswith((".", "/", "\\"))

    def _load_file(self, target: str) -> Any:
        path = Path(target)
        if not path.is_absolute():
            path = self.root_directory / path
        path = path.resolve()

        cached = self._file_modules.get(path)
        if cached is not None:
            return cached

        if not path.is_file():
            raise ModuleNotFoundError(f"No module file at {path}")

        digest = hashlib.sha1(str(path).encode()).hexdigest()[:10]
        module_name = f"routewise_dynamic_{path.stem}_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load module from {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        self._file_modules[path] = module
        return module


def resolve_reference(resolver: Optional[ModuleResolver], value: Any) -> Any:
    """Resolve ``value`` through ``resolver`` if it is a string reference."""
    if isinstance(value, str):
        if resolver is None:
            raise LookupError(f"No module resolver available for {value!r}")
        return resolver.resolve(value)
    return value
