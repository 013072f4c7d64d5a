"""Request shapes: the four-part description of an operation's input.

Each generated REST operation describes its input as ``path``, ``query``,
``body`` and ``headers`` parts. Every part is one of a closed set of variants:

- ``Absent``: the generator's "never" marker, meaning the operation has no such part
- ``ObjectShape``: a set of named fields
- ``OpaqueShape``: a non-object payload (array, scalar) kept as one value
- ``OptionalPart``: one level of optionality around any of the above

Example:
    >>> shape = RequestShape(
    ...     path=ObjectShape({"productId": FieldSpec(int)}),
    ...     query=OptionalPart(ObjectShape({"page": FieldSpec(int)})),
    ...     headers=ObjectShape({"Accept": FieldSpec(str)}),
    ... )
    >>> shape.body is ABSENT
    True
"""

from __future__ import annotations

import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, NotRequired, Optional, Required, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined

from restbridge.foundation.errors import SchemaError


class _Missing:
    """Sentinel for "no default declared"."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One named field of an object-shaped part.

    Attributes:
        annotation: Python type of the field value
        optional: Whether the field may be omitted
        default: Declared default value (MISSING when none)
        description: Human-readable description, advertised in the flat schema
    """

    annotation: Any = Any
    optional: bool = False
    default: Any = MISSING
    description: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def is_optional(self) -> bool:
        """Independently optional or defaulted."""
        return self.optional or self.has_default

    def as_optional(self) -> FieldSpec:
        return self if self.optional else replace(self, optional=True)

    def to_field(self, alias: str | None = None) -> tuple[Any, FieldInfo]:
        """Pydantic ``(annotation, FieldInfo)`` pair for ``create_model``."""
        if self.has_default:
            return self.annotation, Field(default=self.default, alias=alias, description=self.description)
        if self.optional:
            return Optional[self.annotation], Field(default=None, alias=alias, description=self.description)
        return self.annotation, Field(alias=alias, description=self.description)


@dataclass(frozen=True, slots=True)
class Absent:
    """The "never" marker: the part does not exist for this operation."""


ABSENT = Absent()


@dataclass(frozen=True, slots=True)
class ObjectShape:
    """Object-shaped part with named fields."""

    fields: Mapping[str, FieldSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, spec in self.fields.items():
            if not isinstance(spec, FieldSpec):
                raise SchemaError(f"Field '{name}' must be a FieldSpec, got {type(spec).__name__}")


@dataclass(frozen=True, slots=True)
class OpaqueShape:
    """Non-object payload (array or scalar) that is never decomposed."""

    annotation: Any = Any


Part = Absent | ObjectShape | OpaqueShape


@dataclass(frozen=True, slots=True)
class OptionalPart:
    """One level of optionality around a part."""

    inner: Part

    def __post_init__(self) -> None:
        if not isinstance(self.inner, Absent | ObjectShape | OpaqueShape):
            raise SchemaError(f"OptionalPart wraps exactly one plain part, got {self.inner!r}")


PartSpec = Part | OptionalPart


def optional(part: Part) -> OptionalPart:
    """Wrap a part in optionality."""
    return OptionalPart(part)


def is_absent(spec: PartSpec) -> bool:
    """Whether a part is the never marker, optionally wrapped."""
    match spec:
        case Absent() | OptionalPart(Absent()):
            return True
        case _:
            return False


_PARTS: tuple[str, ...] = ("path", "query", "body", "headers")


@dataclass(frozen=True, slots=True)
class RequestShape:
    """Four-part input description of one external operation.

    Unspecified parts default to ``ABSENT``. ``headers`` are filled in by the
    transport layer and are never exposed to callers.
    """

    path: PartSpec = ABSENT
    query: PartSpec = ABSENT
    body: PartSpec = ABSENT
    headers: PartSpec = ABSENT

    def __post_init__(self) -> None:
        for name in _PARTS:
            value = getattr(self, name)
            if not isinstance(value, Absent | ObjectShape | OpaqueShape | OptionalPart):
                raise SchemaError(f"Part '{name}' must be a part variant, got {type(value).__name__}")

    @classmethod
    def from_typed_dict(cls, request_type: type) -> RequestShape:
        """Build a shape from a generated ``TypedDict`` request type.

        Keys must be among ``path``, ``query``, ``body`` and ``headers``.
        ``Never`` marks an absent part, ``NotRequired[...]`` or ``X | None``
        marks an optional one. Nested ``TypedDict`` or pydantic models become
        object shapes, anything else is kept opaque.

        Example:
            >>> class GetBrandData(TypedDict):
            ...     path: GetBrandPath
            ...     query: NotRequired[Never]
            ...     body: NotRequired[Never]
            ...     headers: AcceptHeaders
            >>> RequestShape.from_typed_dict(GetBrandData).query
            OptionalPart(inner=Absent())
        """
        if not typing.is_typeddict(request_type):
            raise SchemaError(f"{request_type!r} is not a TypedDict")
        hints = get_type_hints(request_type, include_extras=True)
        if unknown := sorted(set(hints) - set(_PARTS)):
            raise SchemaError(f"Unknown request parts {unknown} in {request_type.__name__}")
        optional_keys = request_type.__optional_keys__
        return cls(**{name: _part_from_annotation(tp, name in optional_keys) for name, tp in hints.items()})


# ─────────────────────────────────────────────────────────────────────────────
# Annotation introspection
# ─────────────────────────────────────────────────────────────────────────────

_NEVER: tuple[Any, ...] = (typing.Never, typing.NoReturn)


def _strip_required(tp: Any) -> tuple[Any, bool]:
    """Remove Required/NotRequired, reporting whether the key is not required."""
    origin = get_origin(tp)
    if origin is NotRequired:
        return get_args(tp)[0], True
    if origin is Required:
        return get_args(tp)[0], False
    return tp, False


def _split_none(tp: Any) -> tuple[Any, bool]:
    """Remove ``None`` from a union, reporting whether it was there."""
    if get_origin(tp) not in (Union, types.UnionType):
        return tp, False
    args = get_args(tp)
    rest = tuple(a for a in args if a is not type(None))
    if len(rest) == len(args):
        return tp, False
    return (rest[0] if len(rest) == 1 else Union[rest]), True


def _part_from_annotation(tp: Any, not_required: bool) -> PartSpec:
    tp, stripped = _strip_required(tp)
    tp, nullable = _split_none(tp)
    part = _plain_part(tp)
    return OptionalPart(part) if (not_required or stripped or nullable) else part


def _plain_part(tp: Any) -> Part:
    if any(tp is n for n in _NEVER):
        return ABSENT
    if typing.is_typeddict(tp):
        return ObjectShape(_typed_dict_fields(tp))
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return ObjectShape(_model_fields(tp))
    return OpaqueShape(tp)


def _typed_dict_fields(td: type) -> dict[str, FieldSpec]:
    optional_keys = td.__optional_keys__
    fields: dict[str, FieldSpec] = {}
    for name, tp in get_type_hints(td, include_extras=True).items():
        tp, not_required = _strip_required(tp)
        fields[name] = FieldSpec(tp, optional=not_required or name in optional_keys)
    return fields


def _model_fields(model: type[BaseModel]) -> dict[str, FieldSpec]:
    fields: dict[str, FieldSpec] = {}
    for name, info in model.model_fields.items():
        key = info.alias or name
        if info.is_required():
            spec = FieldSpec(info.annotation, description=info.description)
        elif info.default is None or info.default is PydanticUndefined:
            spec = FieldSpec(info.annotation, optional=True, description=info.description)
        else:
            spec = FieldSpec(info.annotation, default=info.default, description=info.description)
        fields[key] = spec
    return fields
