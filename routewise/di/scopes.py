"""
Lifespan definitions and parsing.
"""

from enum import Enum
from typing import Union


class Lifespan(str, Enum):
    """Dependency lifetime policies."""

    LIFETIME = "Lifetime"      # One instance for the container's lifetime (singleton)
    SINGLE_USE = "SingleUse"   # New instance on every resolve (transient)

    @property
    def cacheable(self) -> bool:
        return self is Lifespan.LIFETIME

    @classmethod
    def parse(cls, value: Union["Lifespan", str, None]) -> "Lifespan":
        """
        Coerce a declaration value into a Lifespan.

        Accepts members, their values, and the aliases ``Singleton`` and
        ``Transient`` (case-insensitive). ``None`` means LIFETIME.

        Raises:
            ValueError: Unrecognized value
        """
        if value is None:
            return cls.LIFETIME
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            found = _ALIASES.get(value.strip().lower())
            if found is not None:
                return found
        raise ValueError(f"Invalid lifespan {value!r}")


_ALIASES = {
    "lifetime": Lifespan.LIFETIME,
    "singleton": Lifespan.LIFETIME,
    "singleuse": Lifespan.SINGLE_USE,
    "single_use": Lifespan.SINGLE_USE,
    "transient": Lifespan.SINGLE_USE,
}
