"""Schema and typed-payload capabilities.

A type describes its wire shape either by subclassing ``Apiv2Schema`` or by
being a pydantic model; primitives are looked up in a fixed table. The
helpers here answer "what is the schema of this annotation" for the rest of
the package without caring which of those routes the type took.
"""

import collections.abc
import datetime
import decimal
import types
import uuid
from enum import Enum
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin

from pydantic import AnyUrl, BaseModel

from apiv2_compose.models.base import (
    REF_PREFIX,
    DataType,
    Definitions,
    Schema,
    SecurityScheme,
)
from apiv2_compose.schema.reflect import model_schema

# (data type, format) of every primitive leaf
PRIMITIVE_TYPES: dict[type, tuple[DataType, str | None]] = {
    bool: (DataType.BOOLEAN, None),
    int: (DataType.INTEGER, "int64"),
    float: (DataType.NUMBER, "double"),
    str: (DataType.STRING, None),
    bytes: (DataType.STRING, "binary"),
    bytearray: (DataType.STRING, "binary"),
    memoryview: (DataType.STRING, "binary"),
    datetime.datetime: (DataType.STRING, "date-time"),
    datetime.date: (DataType.STRING, "date"),
    datetime.time: (DataType.STRING, "time"),
    datetime.timedelta: (DataType.STRING, "duration"),
    uuid.UUID: (DataType.STRING, "uuid"),
    decimal.Decimal: (DataType.NUMBER, None),
}

SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.Set,
    collections.abc.Iterable,
)
MAPPING_ORIGINS = (dict, collections.abc.Mapping)
UNION_ORIGINS = (Union, types.UnionType)


class Apiv2Schema:
    """Hand-written schema capability.

    Subclasses set ``NAME`` to be stored in the definitions map and override
    ``raw_schema`` to describe their body. Security types set
    ``SECURITY_SCHEME`` instead and keep the default body.
    """

    NAME: ClassVar[str | None] = None
    DESCRIPTION: ClassVar[str | None] = None
    SECURITY_SCHEME: ClassVar[SecurityScheme | None] = None

    @classmethod
    def name(cls) -> str | None:
        return cls.NAME

    @classmethod
    def raw_schema(cls) -> Schema:
        return Schema(description=cls.DESCRIPTION)

    @classmethod
    def security_scheme(cls) -> SecurityScheme | None:
        return cls.SECURITY_SCHEME

    @classmethod
    def schema_with_ref(cls) -> Schema:
        schema = cls.raw_schema().model_copy(deep=True)
        name = cls.name()
        if name:
            schema.name = name
            schema.reference = REF_PREFIX + name
        return schema


class TypedData:
    """Typed payload capability: how a value is declared on a flat parameter."""

    @classmethod
    def data_type(cls) -> DataType:
        return DataType.STRING

    @classmethod
    def format(cls) -> str | None:
        return None


def is_class(annotation: Any) -> bool:
    """True for real classes, false for parametrized generics like ``list[int]``."""
    return isinstance(annotation, type) and get_origin(annotation) is None


def strip_annotated(annotation: Any) -> Any:
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def optional_inner(annotation: Any) -> Any | None:
    """Return ``T`` for ``Optional[T]``, ``None`` for anything else."""
    if get_origin(annotation) not in UNION_ORIGINS:
        return None
    args = get_args(annotation)
    present = [a for a in args if a is not type(None)]
    if len(present) == 1 and len(present) < len(args):
        return present[0]
    return None


def is_url_type(annotation: Any) -> bool:
    return is_class(annotation) and issubclass(annotation, AnyUrl)


def typed_data(annotation: Any) -> tuple[DataType, str | None] | None:
    """Return the (data type, format) pair of a primitive or ``TypedData``."""
    annotation = strip_annotated(annotation)
    if not is_class(annotation):
        return None
    if issubclass(annotation, TypedData):
        return annotation.data_type(), annotation.format()
    if is_url_type(annotation):
        return DataType.STRING, "url"
    if issubclass(annotation, Enum):
        return _enum_data_type(annotation), None
    for primitive in annotation.__mro__:
        if primitive in PRIMITIVE_TYPES:
            return PRIMITIVE_TYPES[primitive]
    return None


def enum_values(annotation: Any) -> list[Any]:
    """Member values of an ``Enum`` class, empty for anything else."""
    if is_class(annotation) and issubclass(annotation, Enum):
        return [member.value for member in annotation]
    return []


def _enum_data_type(annotation: type[Enum]) -> DataType:
    values = enum_values(annotation)
    if values and all(isinstance(v, bool) for v in values):
        return DataType.BOOLEAN
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return DataType.INTEGER
    if values and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return DataType.NUMBER
    return DataType.STRING


def schema_with_ref(annotation: Any) -> Schema | None:
    """Schema of ``annotation`` in with-reference form, or ``None``.

    ``None`` means the type has no schema capability at all.
    """
    annotation = strip_annotated(annotation)
    inner = optional_inner(annotation)
    if inner is not None:
        return schema_with_ref(inner)

    origin = get_origin(annotation)
    if origin is not None:
        args = get_args(annotation)
        if origin in SEQUENCE_ORIGINS:
            element = args[0] if args else Any
            items = schema_with_ref(element) if element is not Any else Schema()
            if items is None:
                return None
            return Schema(data_type=DataType.ARRAY, items=items)
        if origin in MAPPING_ORIGINS:
            value = args[1] if len(args) == 2 else Any
            extra = schema_with_ref(value) if value is not Any else Schema()
            if extra is None:
                return None
            return Schema(data_type=DataType.OBJECT, additional_properties=extra)
        return None

    if not is_class(annotation):
        return None
    if issubclass(annotation, Apiv2Schema):
        return annotation.schema_with_ref()
    if issubclass(annotation, BaseModel):
        return model_schema(annotation)
    primitive = typed_data(annotation)
    if primitive is not None:
        data_type, fmt = primitive
        return Schema(data_type=data_type, format=fmt, enum=enum_values(annotation))
    return None


def has_schema(annotation: Any) -> bool:
    return schema_with_ref(annotation) is not None


def reference_schema(annotation: Any) -> Schema | None:
    """Schema of ``annotation`` reduced to a pointer when it is named."""
    schema = schema_with_ref(annotation)
    if schema is not None:
        schema.retain_ref()
    return schema


def security_scheme_for(annotation: Any) -> tuple[str, SecurityScheme] | None:
    annotation = strip_annotated(annotation)
    if not (is_class(annotation) and issubclass(annotation, Apiv2Schema)):
        return None
    scheme = annotation.security_scheme()
    name = annotation.name()
    if scheme is None or not name:
        return None
    return name, scheme


def collect_definitions(schema: Schema, definitions: Definitions) -> None:
    """Insert every named fragment reachable from ``schema``.

    Insertion is "insert if absent", which keeps the map stable when the
    same type is collected more than once.
    """
    if schema.name:
        if schema.name in definitions:
            return
        definitions[schema.name] = schema.body()
    for child in schema.children():
        collect_definitions(child, definitions)


def update_definitions_from_schema_type(annotation: Any, definitions: Definitions) -> None:
    """Merge the named fragments of ``annotation`` into ``definitions``."""
    if security_scheme_for(annotation) is not None:
        return
    schema = schema_with_ref(annotation)
    if schema is not None:
        collect_definitions(schema, definitions)
