"""Request shapes and the flat tool-schema adapter.

- RequestShape and its part variants (Absent, ObjectShape, OpaqueShape, OptionalPart)
- flatten: RequestShape -> FlatSchema
- unflatten: flat input + RequestShape -> StructuredCall
"""

from .flatten import BODY_KEY, FlatSchema, StructuredCall, flatten, unflatten
from .shape import (
    ABSENT,
    MISSING,
    Absent,
    FieldSpec,
    ObjectShape,
    OpaqueShape,
    OptionalPart,
    Part,
    PartSpec,
    RequestShape,
    is_absent,
    optional,
)

__all__ = [
    # Shape model
    "RequestShape", "FieldSpec", "Absent", "ABSENT", "ObjectShape", "OpaqueShape", "OptionalPart",
    "Part", "PartSpec", "MISSING", "optional", "is_absent",
    # Adapter
    "FlatSchema", "StructuredCall", "flatten", "unflatten", "BODY_KEY",
]
