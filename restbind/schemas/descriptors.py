"""
Response-type descriptors.

A bare class (``Widget``) or ``TypeRef(Widget)`` describes a single decoded
value. ``ListOf(Widget)`` describes a sequence of decoded values: it carries
both the container shape and the element type, which a bare class cannot.

Descriptors are always supplied by the caller; the decoder never guesses the
element type from the payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

_CONTAINERS = (list, tuple)


@dataclass(frozen=True)
class TypeRef(Generic[T]):
    """Descriptor for a single value of ``type_``."""

    type_: Any

    def annotation(self) -> Any:
        return self.type_


@dataclass(frozen=True)
class ListOf(Generic[T]):
    """Descriptor for a sequence of ``element_type`` held in ``container``.

    ``container`` is ``list`` (default) or ``tuple``.
    """

    element_type: Any
    container: type = list

    def __post_init__(self) -> None:
        if self.container not in _CONTAINERS:
            raise TypeError(
                f"ListOf container must be list or tuple, got {self.container!r}"
            )

    def annotation(self) -> Any:
        if self.container is tuple:
            return tuple[self.element_type, ...]
        return list[self.element_type]


ResponseType = Union[type, TypeRef, ListOf, Any, None]


def resolve_annotation(response_type: ResponseType) -> Any:
    """Return the type annotation the decoder validates against.

    ``None`` means "no descriptor": the parsed JSON is returned untyped.
    """
    if response_type is None:
        return Any
    if isinstance(response_type, (TypeRef, ListOf)):
        return response_type.annotation()
    return response_type


def require_collection(response_type: Any) -> ListOf:
    """Reject anything but a ListOf for the collection-returning verbs."""
    if not isinstance(response_type, ListOf):
        raise TypeError(
            "Collection calls need a ListOf(...) descriptor, "
            f"got {response_type!r}"
        )
    return response_type
