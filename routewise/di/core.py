"""
Core DI types and the dependency container.

A container owns a table of named ``DependencyEntry`` objects. Each entry
knows how to build its component (a class-shaped module export or a
builder function), how long the component lives, and an optional
``configure`` hook that may wrap the freshly built instance.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
)

from .errors import (
    ConstructionError,
    DuplicateKeyError,
    InvalidSpecError,
    UnknownDependencyError,
)
from .loader import ImportResolver, ModuleResolver, resolve_reference
from .scopes import Lifespan


logger = logging.getLogger("routewise.di")


@dataclass(frozen=True)
class BuilderArgs:
    """
    Arguments handed to a builder function.

    Attributes:
        module: Resolved module export (if the entry declared one)
        type_name: Optional type name hint
        args: Positional arguments; the owning application comes first
    """
    module: Any = None
    type_name: Optional[str] = None
    args: Tuple[Any, ...] = ()


@dataclass
class DependencyEntry:
    """
    A registered dependency.

    Exactly one construction source must exist: ``module_exports``
    (resolved from a module reference) or ``builder``.
    """
    key: str
    lifespan: Lifespan = Lifespan.LIFETIME
    module_ref: Optional[str] = None
    module_exports: Any = None
    builder: Optional[Callable[[BuilderArgs], Any]] = None
    configure: Optional[Callable[..., Any]] = None
    instance: Any = field(default=None, repr=False)
    has_instance: bool = field(default=False, repr=False)

    @classmethod
    def from_spec(
        cls,
        key: str,
        spec: Mapping[str, Any],
        resolver: Optional[ModuleResolver] = None,
    ) -> "DependencyEntry":
        """
        Build an entry from a declaration mapping.

        Keys: ``module``, ``builder``, ``lifespan``, ``configure``.

        Raises:
            InvalidSpecError: No source, bad lifespan, unresolvable reference
        """
        if not isinstance(spec, Mapping):
            raise InvalidSpecError(key, f"expected a mapping, got {type(spec).__name__}")

        module = spec.get("module")
        builder = spec.get("builder")
        configure = spec.get("configure")

        if module is None and builder is None:
            raise InvalidSpecError(key, "neither 'module' nor 'builder' was supplied")

        try:
            lifespan = Lifespan.parse(spec.get("lifespan"))
        except ValueError as exc:
            raise InvalidSpecError(key, str(exc)) from exc

        try:
            module_exports = resolve_reference(resolver, module)
            builder = resolve_reference(resolver, builder)
            configure = resolve_reference(resolver, configure)
        except (ImportError, AttributeError, LookupError) as exc:
            raise InvalidSpecError(key, f"cannot resolve reference: {exc}") from exc

        if builder is not None and not callable(builder):
            raise InvalidSpecError(key, "'builder' is not callable")
        if configure is not None and not callable(configure):
            raise InvalidSpecError(key, "'configure' is not callable")

        return cls(
            key=key,
            lifespan=lifespan,
            module_ref=module if isinstance(module, str) else None,
            module_exports=module_exports,
            builder=builder,
            configure=configure,
        )

    @property
    def constructible(self) -> bool:
        """True if the module export is class-shaped."""
        return inspect.isclass(self.module_exports)

    async def create_instance(self, args: Tuple[Any, ...] = (), type_name: Optional[str] = None) -> Any:
        """
        Build a new instance of the component.

        Class exports are instantiated with ``args``; otherwise the builder
        is called with ``BuilderArgs``. The configure hook runs last and its
        non-None return value replaces the instance.

        Raises:
            ConstructionError: Building or configuring failed
        """
        try:
            if self.constructible:
                result = self.module_exports(*args)
            elif self.builder is not None:
                result = self.builder(
                    BuilderArgs(module=self.module_exports, type_name=type_name, args=tuple(args))
                )
            else:
                raise ConstructionError(
                    self.key,
                    reason="module export is not a class and no builder was supplied",
                )
            if inspect.isawaitable(result):
                result = await result

            if self.configure is not None:
                configured = self.configure(result, *args)
                if inspect.isawaitable(configured):
                    configured = await configured
                if configured is not None:
                    result = configured
        except ConstructionError:
            raise
        except Exception as exc:
            raise ConstructionError(self.key, exc) from exc

        return result


class Container:
    """
    DI Container - resolves named dependencies honoring their lifespan.

    LIFETIME entries are built once and cached. Concurrent first
    resolutions of the same key share one in-flight construction.
    SINGLE_USE entries are built on every resolve.

    Args:
        owner: Application context passed as first constructor/builder arg
        content: Initial declarations (name -> spec mapping)
        resolver: Module resolver for string references

    Example:
        container = Container(app)
        container.register("clock", {"module": SystemClock})
        container.register("vault", {
            "builder": build_vault,
            "lifespan": "SingleUse",
        })
        clock, vault = await container.resolve_many(["clock", "vault"])
    """

    __slots__ = ("_entries", "_owner", "_resolver", "_pending")

    def __init__(
        self,
        owner: Any = None,
        content: Optional[Mapping[str, Mapping[str, Any]]] = None,
        resolver: Optional[ModuleResolver] = None,
    ):
        self._entries: Dict[str, DependencyEntry] = {}
        self._owner = owner
        if resolver is None:
            resolver = ImportResolver(getattr(owner, "root_directory", None) or ".")
        self._resolver = resolver
        self._pending: Dict[str, asyncio.Future] = {}

        for key, spec in (content or {}).items():
            self.register(key, spec)

    @property
    def owner(self) -> Any:
        return self._owner

    @property
    def resolver(self) -> ModuleResolver:
        return self._resolver

    def register(self, name: str, spec: Mapping[str, Any], overwrite: bool = False) -> "Container":
        """
        Register a dependency.

        Args:
            name: The name to associate with the dependency
            spec: Declaration (``module``/``builder``/``lifespan``/``configure``)
            overwrite: Replace an existing entry with the same name

        Raises:
            DuplicateKeyError: Name taken and overwrite is False
            InvalidSpecError: Malformed declaration
        """
        if name in self._entries and not overwrite:
            raise DuplicateKeyError(name)

        entry = DependencyEntry.from_spec(name, spec, self._resolver)
        self._entries[name] = entry
        logger.debug("Registered dependency %s (%s)", name, entry.lifespan.value)
        return self

    def is_registered(self, name: str) -> bool:
        return name in self._entries

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def get_entry(self, name: str) -> DependencyEntry:
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownDependencyError(name, self._entries.keys()) from None

    async def resolve(self, name: str) -> Any:
        """
        Resolve a single dependency.

        Raises:
            UnknownDependencyError: Name not registered
            ConstructionError: Building failed
        """
        entry = self.get_entry(name)
        args = (self._owner,)

        if not entry.lifespan.cacheable:
            logger.debug("Building single-use dependency %s", name)
            return await entry.create_instance(args)

        if entry.has_instance:
            return entry.instance

        pending = self._pending.get(name)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._pending[name] = future
        logger.debug("Building lifetime dependency %s", name)
        try:
            instance = await entry.create_instance(args)
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited future does not warn
            future.exception()
            raise
        except BaseException:
            future.cancel()
            raise
        else:
            # Entry may have been replaced by overwrite while building
            if self._entries.get(name) is entry:
                entry.instance = instance
                entry.has_instance = True
            future.set_result(instance)
            return instance
        finally:
            if self._pending.get(name) is future:
                del self._pending[name]

    async def resolve_many(self, names: Iterable[str]) -> List[Any]:
        """
        Resolve several dependencies sequentially, preserving order.

        Builders run one after another, in the order given.
        """
        result = []
        for name in names:
            result.append(await self.resolve(name))
        return result

    def clear_instances(self) -> None:
        """Drop every cached LIFETIME instance."""
        for entry in self._entries.values():
            entry.instance = None
            entry.has_instance = False
