"""Flatten request shapes into single-level tool schemas, and back.

Tool-calling interfaces want one flat parameter object. ``flatten`` merges the
``path``, ``query`` and object-shaped ``body`` fields of a RequestShape into a
FlatSchema; ``unflatten`` rebuilds the structured ``{path, query, body}`` call
from flat input.

Rules:
- path fields keep their own optionality
- query / body fields become optional when the whole part is optional
- a non-object body is kept under a single ``body`` field
- headers are never exposed

Example:
    >>> shape = RequestShape(
    ...     path=ObjectShape({"productId": FieldSpec(int)}),
    ...     query=ObjectShape({"page": FieldSpec(int, optional=True), "sort": FieldSpec(str)}),
    ...     body=ObjectShape({"name": FieldSpec(str)}),
    ... )
    >>> list(flatten(shape).fields)
    ['productId', 'page', 'sort', 'name']
    >>> unflatten({"productId": 5, "sort": "asc", "name": "Widget"}, shape)
    {'path': {'productId': 5}, 'query': {'sort': 'asc'}, 'body': {'name': 'Widget'}}
"""

from __future__ import annotations

import keyword
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, create_model

from restbridge.foundation.errors import SchemaError

from .shape import Absent, FieldSpec, ObjectShape, OpaqueShape, OptionalPart, RequestShape

logger = logging.getLogger("restbridge.schema")

# Synthetic flat field carrying a non-object body
BODY_KEY = "body"


class StructuredCall(TypedDict, total=False):
    """Reconstructed call; a key exists only when its part has content."""

    path: dict[str, Any]
    query: dict[str, Any]
    body: Any


_FLAT_CONFIG = ConfigDict(
    extra="ignore",
    arbitrary_types_allowed=True,
    protected_namespaces=(),
)


def _is_safe_attr(name: str) -> bool:
    """Whether ``name`` can be a pydantic field name without an alias."""
    return (
        name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith("_")
        and not name.startswith("model_")
        and not hasattr(BaseModel, name)
    )


class FlatSchema:
    """Single-level parameter schema of one operation.

    Wraps the ordered field mapping produced by ``flatten`` together with a
    pydantic model used for validation and JSON-schema export. External field
    names are preserved exactly; names that are not valid attribute names are
    carried as aliases and accepted only under their external name.

    Keys listed in ``passthrough`` are validated but returned exactly as
    supplied.
    """

    __slots__ = ("_fields", "_attrs", "_model", "_passthrough")

    def __init__(
        self,
        fields: Mapping[str, FieldSpec],
        *,
        name: str = "FlatParams",
        passthrough: tuple[str, ...] = (),
    ) -> None:
        self._fields: Mapping[str, FieldSpec] = MappingProxyType(dict(fields))
        self._passthrough = tuple(k for k in passthrough if k in self._fields)
        self._attrs: dict[str, str] = {}
        taken = {k for k in self._fields if _is_safe_attr(k)}
        definitions: dict[str, Any] = {}
        for index, (key, spec) in enumerate(self._fields.items()):
            if _is_safe_attr(key):
                attr, alias = key, None
            else:
                attr = f"field_{index}"
                while attr in taken:
                    attr += "_"
                taken.add(attr)
                alias = key
            self._attrs[key] = attr
            definitions[attr] = spec.to_field(alias)
        self._model: type[BaseModel] = create_model(name, __config__=_FLAT_CONFIG, **definitions)

    @property
    def fields(self) -> Mapping[str, FieldSpec]:
        return self._fields

    @property
    def model(self) -> type[BaseModel]:
        return self._model

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(k for k, spec in self._fields.items() if not spec.is_optional)

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the flat parameters, keyed by external names."""
        schema = self._model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def validate(self, args: Mapping[str, Any]) -> dict[str, Any]:
        """Validate flat input, returning supplied values plus declared defaults.

        Unknown keys are dropped. Raises pydantic.ValidationError on bad input.
        """
        instance = self._model.model_validate(dict(args))
        data = instance.model_dump(by_alias=True, exclude_unset=True)
        for key in self._passthrough:
            if key in args:
                data[key] = args[key]
        for key, spec in self._fields.items():
            if spec.has_default and key not in data:
                data[key] = spec.default
        return data

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FlatSchema({list(self._fields)})"


def _merge(flat: dict[str, FieldSpec], fields: Mapping[str, FieldSpec], source: str, *, promote: bool) -> None:
    for key, spec in fields.items():
        if key in flat:
            # later parts win
            logger.warning("Flat field '%s' from %s overrides an earlier field of the same name", key, source)
        flat[key] = spec.as_optional() if promote and not spec.is_optional else spec


def flatten(shape: RequestShape, *, name: str = "FlatParams") -> FlatSchema:
    """Merge path, query and body of a shape into one flat schema.

    Headers are ignored. An operation with header parameters only flattens
    to an empty schema.
    """
    flat: dict[str, FieldSpec] = {}
    passthrough: tuple[str, ...] = ()

    match shape.path:
        case ObjectShape(fields=fields) | OptionalPart(ObjectShape(fields=fields)):
            _merge(flat, fields, "path", promote=False)
        case Absent() | OpaqueShape() | OptionalPart():
            pass

    match shape.query:
        case ObjectShape(fields=fields):
            _merge(flat, fields, "query", promote=False)
        case OptionalPart(ObjectShape(fields=fields)):
            _merge(flat, fields, "query", promote=True)
        case Absent() | OpaqueShape() | OptionalPart():
            pass

    match shape.body:
        case Absent() | OptionalPart(Absent()):
            pass
        case ObjectShape(fields=fields):
            _merge(flat, fields, "body", promote=False)
        case OptionalPart(ObjectShape(fields=fields)):
            _merge(flat, fields, "body", promote=True)
        case OpaqueShape(annotation=annotation):
            _merge(flat, {BODY_KEY: FieldSpec(annotation)}, "body", promote=False)
            passthrough = (BODY_KEY,)
        case OptionalPart(OpaqueShape(annotation=annotation)):
            _merge(flat, {BODY_KEY: FieldSpec(annotation, optional=True)}, "body", promote=False)
            passthrough = (BODY_KEY,)
        case other:
            raise SchemaError(f"Unsupported body part: {other!r}")

    return FlatSchema(flat, name=name, passthrough=passthrough)


def _collect(flat_input: Mapping[str, Any], fields: Mapping[str, FieldSpec], *, skip_none: bool) -> dict[str, Any]:
    return {
        key: flat_input[key]
        for key in fields
        if key in flat_input and not (skip_none and flat_input[key] is None)
    }


def unflatten(flat_input: Mapping[str, Any], shape: RequestShape) -> StructuredCall:
    """Rebuild the structured ``{path, query, body}`` call from flat input.

    Only declared fields are copied; a part is present only when at least one
    of its fields was supplied. Query values of ``None`` count as not supplied.
    """
    call: StructuredCall = {}

    match shape.path:
        case ObjectShape(fields=fields) | OptionalPart(ObjectShape(fields=fields)):
            if values := _collect(flat_input, fields, skip_none=False):
                call["path"] = values
        case _:
            pass

    match shape.query:
        case ObjectShape(fields=fields) | OptionalPart(ObjectShape(fields=fields)):
            if values := _collect(flat_input, fields, skip_none=True):
                call["query"] = values
        case _:
            pass

    match shape.body:
        case ObjectShape(fields=fields) | OptionalPart(ObjectShape(fields=fields)):
            if values := _collect(flat_input, fields, skip_none=False):
                call["body"] = values
        case OpaqueShape() | OptionalPart(OpaqueShape()):
            if BODY_KEY in flat_input:
                call["body"] = flat_input[BODY_KEY]
        case _:
            pass

    return call
