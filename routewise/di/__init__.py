"""
Routewise DI - Named, lifetime-aware dependency container.

Example:
    from routewise.di import Container, Lifespan

    container = Container(app)
    container.register("vault", {
        "module": "hvac:Client",
        "lifespan": Lifespan.LIFETIME,
        "builder": build_vault_client,
    })
    vault = await container.resolve("vault")
"""

from .core import BuilderArgs, Container, DependencyEntry
from .errors import (
    ConstructionError,
    DIError,
    DuplicateKeyError,
    InvalidSpecError,
    UnknownDependencyError,
)
from .loader import ImportResolver, ModuleResolver
from .scopes import Lifespan

__all__ = [
    "BuilderArgs",
    "Container",
    "DependencyEntry",
    "Lifespan",
    "ModuleResolver",
    "ImportResolver",
    "DIError",
    "DuplicateKeyError",
    "InvalidSpecError",
    "UnknownDependencyError",
    "ConstructionError",
]
