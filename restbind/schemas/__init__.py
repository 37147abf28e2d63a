from restbind.schemas.descriptors import (
    ListOf,
    ResponseType,
    TypeRef,
    require_collection,
    resolve_annotation,
)

__all__ = [
    "ListOf",
    "ResponseType",
    "TypeRef",
    "require_collection",
    "resolve_annotation",
]
