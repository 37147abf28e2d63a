"""
Field-naming conventions for the JSON wire format.

Python attribute names are already snake_case, so SNAKE_CASE is the identity
and the separator conventions only swap the underscore. Camel and Pascal
conversions reuse pydantic's alias generators.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Union

from pydantic.alias_generators import to_camel, to_pascal

from restbind.errors import ConfigurationError


class NamingConvention(str, Enum):
    SNAKE_CASE = "snake_case"
    LOWER_CAMEL_CASE = "camelCase"
    UPPER_CAMEL_CASE = "PascalCase"
    KEBAB_CASE = "kebab-case"
    LOWER_CASE = "lowercase"
    LOWER_DOT_CASE = "lower.dot.case"

    @classmethod
    def parse(cls, value: Union["NamingConvention", str]) -> "NamingConvention":
        """Resolve a convention from its value, name or a common spelling.

        Raises ConfigurationError for anything unrecognised.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Naming convention must be a string, got {type(value).__name__}",
                details={"value": repr(value)},
            )
        key = _normalise(value)
        try:
            return _ALIASES[key]
        except KeyError:
            raise ConfigurationError(
                f"Unrecognised naming convention: {value!r}",
                details={"accepted": sorted(c.value for c in cls)},
            ) from None

    def to_wire(self, name: str) -> str:
        """Convert a Python attribute name to its wire key."""
        return _CONVERTERS[self](name)


def _normalise(value: str) -> str:
    out = value.strip()
    for sep in ("-", ".", " "):
        out = out.replace(sep, "_")
    return out.lower()


_ALIASES: dict[str, NamingConvention] = {
    "snake_case": NamingConvention.SNAKE_CASE,
    "snake": NamingConvention.SNAKE_CASE,
    "camelcase": NamingConvention.LOWER_CAMEL_CASE,
    "camel_case": NamingConvention.LOWER_CAMEL_CASE,
    "camel": NamingConvention.LOWER_CAMEL_CASE,
    "lower_camel_case": NamingConvention.LOWER_CAMEL_CASE,
    "pascalcase": NamingConvention.UPPER_CAMEL_CASE,
    "pascal_case": NamingConvention.UPPER_CAMEL_CASE,
    "pascal": NamingConvention.UPPER_CAMEL_CASE,
    "upper_camel_case": NamingConvention.UPPER_CAMEL_CASE,
    "kebab_case": NamingConvention.KEBAB_CASE,
    "kebab": NamingConvention.KEBAB_CASE,
    "lowercase": NamingConvention.LOWER_CASE,
    "lower_case": NamingConvention.LOWER_CASE,
    "lower_dot_case": NamingConvention.LOWER_DOT_CASE,
}


_CONVERTERS: dict[NamingConvention, Callable[[str], str]] = {
    NamingConvention.SNAKE_CASE: lambda name: name,
    NamingConvention.LOWER_CAMEL_CASE: to_camel,
    NamingConvention.UPPER_CAMEL_CASE: to_pascal,
    NamingConvention.KEBAB_CASE: lambda name: name.replace("_", "-"),
    NamingConvention.LOWER_CASE: lambda name: name.replace("_", ""),
    NamingConvention.LOWER_DOT_CASE: lambda name: name.replace("_", "."),
}
