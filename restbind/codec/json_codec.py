"""
JSON codec bound to a SerializationPolicy.

Encoding walks the body (pydantic models, dataclasses, containers, dates) and
emits wire keys according to the policy's naming convention before handing
the plain tree to ``json``.

Decoding runs the reverse walk guided by the response-type annotation:
wire keys are mapped back to the names pydantic validates against, unknown
fields are dropped (or rejected under the strict policy) and calendar dates
are parsed with the policy's date format. The prepared tree is then validated
by a cached pydantic ``TypeAdapter``.

Keys of free-form mappings are never renamed; only declared model fields are.
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from collections.abc import (
    Mapping,
    MutableMapping,
    MutableSequence,
    MutableSet,
    Sequence,
)
from collections.abc import Set as AbstractSet
from datetime import date, datetime
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, Optional, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from restbind.codec.policy import SerializationPolicy
from restbind.errors import DecodeError, EncodeError
from restbind.schemas.descriptors import ResponseType, resolve_annotation
from restbind.utils.logger import get_logger

log = get_logger(__name__)

_SEQUENCE_ORIGINS = frozenset(
    {list, tuple, set, frozenset, Sequence, MutableSequence, AbstractSet, MutableSet}
)
_MAPPING_ORIGINS = frozenset({dict, Mapping, MutableMapping})
_UNION_ORIGINS = (Union, types.UnionType)


@dataclasses.dataclass(frozen=True)
class _FieldSpec:
    attribute: str
    # Key pydantic accepts for this field during validation
    input_key: str
    annotation: Any
    # Explicit per-field alias; overrides the naming convention on the wire
    alias: Optional[str] = None
    exclude: bool = False


@lru_cache(maxsize=512)
def _fields_of(tp: Any) -> Optional[tuple[_FieldSpec, ...]]:
    """Return the declared fields of a model or dataclass type, else None."""
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        specs = []
        for name, info in tp.model_fields.items():
            validation_alias = (
                info.validation_alias if isinstance(info.validation_alias, str) else None
            )
            explicit = None
            # alias_priority 2 means the alias was set on the field itself,
            # not produced by the model's own alias_generator.
            if (info.alias_priority or 0) >= 2:
                explicit = validation_alias or info.alias
            specs.append(
                _FieldSpec(
                    attribute=name,
                    input_key=validation_alias or info.alias or name,
                    annotation=info.annotation,
                    alias=explicit,
                    exclude=bool(info.exclude),
                )
            )
        return tuple(specs)
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        try:
            hints = typing.get_type_hints(tp, include_extras=True)
        except NameError:
            # forward reference to a name that is not importable here
            hints = {}
        return tuple(
            _FieldSpec(
                attribute=f.name,
                input_key=f.name,
                annotation=hints.get(f.name, Any),
            )
            for f in dataclasses.fields(tp)
            if f.init
        )
    return None


@lru_cache(maxsize=512)
def _cached_adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _adapter(annotation: Any) -> TypeAdapter:
    try:
        return _cached_adapter(annotation)
    except TypeError:
        # unhashable annotation
        return TypeAdapter(annotation)


def _allows_extra(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and issubclass(tp, BaseModel)
        and tp.model_config.get("extra") == "allow"
    )


def _unwrap(annotation: Any) -> Any:
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def _describe(annotation: Any) -> str:
    return getattr(annotation, "__name__", None) or repr(annotation)


class JsonCodec:
    """Encode/decode JSON bodies under one immutable SerializationPolicy."""

    def __init__(self, policy: Optional[SerializationPolicy] = None) -> None:
        self._policy = policy if policy is not None else SerializationPolicy()

    @classmethod
    def from_options(cls, **options: Any) -> "JsonCodec":
        """Build a codec from declarative policy options.

        Raises ConfigurationError for unrecognised or invalid options.
        """
        return cls(SerializationPolicy(**options))

    @property
    def policy(self) -> SerializationPolicy:
        return self._policy

    # ── Encoding ──────────────────────────────────────────────────────────────

    def encode(self, body: Any) -> bytes:
        try:
            tree = self._to_wire(body)
            return json.dumps(
                tree, separators=(",", ":"), ensure_ascii=False, allow_nan=False
            ).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(
                f"Cannot encode {type(body).__name__} as JSON",
                details={"error": str(exc)},
            ) from exc

    def _wire_key(self, spec: _FieldSpec) -> str:
        return spec.alias or self._policy.wire_name(spec.attribute)

    def _to_wire(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return self._to_wire(value.value)
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, BaseModel):
            out = {
                self._wire_key(spec): self._to_wire(getattr(value, spec.attribute))
                for spec in _fields_of(type(value))
                if not spec.exclude
            }
            for key, item in (value.model_extra or {}).items():
                out[key] = self._to_wire(item)
            return out
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {
                self._wire_key(spec): self._to_wire(getattr(value, spec.attribute))
                for spec in _fields_of(type(value))
            }
        if isinstance(value, Mapping):
            return {self._mapping_key(k): self._to_wire(v) for k, v in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._to_wire(item) for item in value]
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return self._policy.format_date(value)
        try:
            return to_jsonable_python(value)
        except PydanticSerializationError as exc:
            raise EncodeError(
                f"Unsupported value of type {type(value).__name__}",
                details={"error": str(exc)},
            ) from exc

    def _mapping_key(self, key: Any) -> Any:
        if isinstance(key, Enum):
            return key.value
        if isinstance(key, datetime):
            return key.isoformat()
        if isinstance(key, date):
            return self._policy.format_date(key)
        return key

    # ── Decoding ──────────────────────────────────────────────────────────────

    def decode(self, content: bytes, response_type: ResponseType = None) -> Any:
        """Decode a response body against ``response_type``.

        An empty body decodes to None whatever the descriptor.
        """
        if not content or not content.strip():
            return None
        try:
            tree = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(
                "Response body is not valid JSON", details={"error": str(exc)}
            ) from exc

        annotation = resolve_annotation(response_type)
        prepared = self._prepare(tree, annotation, "$")
        if annotation is Any:
            return prepared
        try:
            return _adapter(annotation).validate_python(prepared)
        except ValidationError as exc:
            raise DecodeError(
                f"Response does not match {_describe(annotation)}",
                details=exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            ) from exc

    def _prepare(self, value: Any, annotation: Any, path: str) -> Any:
        annotation = _unwrap(annotation)
        if value is None or annotation is Any:
            return value

        origin = get_origin(annotation)
        if origin in _UNION_ORIGINS:
            return self._prepare_union(value, get_args(annotation), path)

        fields = _fields_of(annotation) if origin is None else None
        if fields is not None:
            return self._prepare_object(value, annotation, fields, path)

        if origin in _SEQUENCE_ORIGINS and isinstance(value, list):
            return self._prepare_sequence(value, origin, get_args(annotation), path)

        if origin in _MAPPING_ORIGINS and isinstance(value, dict):
            args = get_args(annotation)
            key_type = _unwrap(args[0]) if len(args) == 2 else Any
            item_type = args[1] if len(args) == 2 else Any
            return {
                (
                    self._parse_date(key, f"{path}.{key}") if key_type is date else key
                ): self._prepare(item, item_type, f"{path}.{key}")
                for key, item in value.items()
            }

        if annotation is date and isinstance(value, str):
            return self._parse_date(value, path)

        return value

    def _prepare_object(
        self,
        value: Any,
        tp: type,
        fields: tuple[_FieldSpec, ...],
        path: str,
    ) -> Any:
        if not isinstance(value, dict):
            # Wrong shape; pydantic reports it during validation
            return value

        by_wire = {self._wire_key(spec): spec for spec in fields}
        keep_extra = _allows_extra(tp)
        out: dict[str, Any] = {}
        unknown: list[str] = []
        for key, item in value.items():
            spec = by_wire.get(key)
            if spec is None:
                unknown.append(key)
                if keep_extra:
                    out[key] = item
                continue
            out[spec.input_key] = self._prepare(item, spec.annotation, f"{path}.{key}")

        if unknown:
            if self._policy.fail_on_unknown_fields:
                raise DecodeError(
                    f"Unknown field(s) for {tp.__name__} at {path}",
                    details={"path": path, "unknown_fields": unknown},
                )
            log.debug(
                "decode_unknown_fields_ignored",
                type=tp.__name__,
                path=path,
                fields=unknown,
            )
        return out

    def _prepare_sequence(
        self, value: list, origin: Any, args: tuple, path: str
    ) -> list:
        if origin is tuple and args and args[-1] is not Ellipsis:
            # Fixed-length tuple: one annotation per position
            return [
                self._prepare(item, args[i], f"{path}[{i}]") if i < len(args) else item
                for i, item in enumerate(value)
            ]
        item_type = args[0] if args else Any
        return [
            self._prepare(item, item_type, f"{path}[{i}]")
            for i, item in enumerate(value)
        ]

    def _prepare_union(self, value: Any, members: tuple, path: str) -> Any:
        """Prepare a value declared as a Union.

        Optional[X] is handled as X. For wider unions each member prepares
        the value under its own wire keys and the first one whose result
        validates is used. An unknown-field error under the strict policy is
        raised only when no member accepts the value.
        """
        candidates = [m for m in members if m is not type(None)]
        if len(candidates) == 1:
            return self._prepare(value, candidates[0], path)

        rejected: Optional[DecodeError] = None
        fallback: Any = value
        prepared_any = False
        for member in candidates:
            try:
                prepared = self._prepare(value, member, path)
            except DecodeError as exc:
                rejected = rejected or exc
                continue
            if not prepared_any:
                fallback, prepared_any = prepared, True
            try:
                _adapter(member).validate_python(prepared)
            except ValidationError:
                continue
            return prepared

        if rejected is not None and not prepared_any:
            raise rejected
        # No member fits; validation of the whole union reports why
        return fallback

    def _parse_date(self, value: str, path: str) -> date:
        try:
            return self._policy.parse_date(value)
        except ValueError as exc:
            raise DecodeError(
                f"Invalid date at {path}",
                details={
                    "path": path,
                    "value": value,
                    "date_format": self._policy.date_format,
                },
            ) from exc
