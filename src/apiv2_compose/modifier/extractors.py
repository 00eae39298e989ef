"""Request extractors.

Location-tagged extractors (``Path``, ``Query``, ``QsQuery``, ``Form``,
``Data``) document a single flat placeholder parameter: v2 forbids schema
references outside the body, so the wrapped type's fields are not expanded.
``Json`` is the only extractor that embeds the wrapped type's schema.
"""

from typing import ClassVar

from apiv2_compose.errors import CapabilityResolutionError
from apiv2_compose.models.base import (
    DataType,
    Operation,
    Parameter,
    ParameterIn,
    Response,
    Schema,
)
from apiv2_compose.modifier.core import OperationModifier, Wrapper, type_label
from apiv2_compose.schema.descriptor import (
    Apiv2Schema,
    TypedData,
    reference_schema,
    schema_with_ref,
)


class Extractor(Wrapper):
    """Base for values a handler receives from the request."""


class ParamExtractor(Extractor):
    location: ClassVar[ParameterIn]
    label: ClassVar[str]

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        op.parameters.append(
            Parameter(
                in_=cls.location,
                name=cls.label.lower(),
                required=True,
            )
        )


class Path(ParamExtractor):
    location = ParameterIn.PATH
    label = "Path"


class Query(ParamExtractor):
    location = ParameterIn.QUERY
    label = "Query"


class QsQuery(ParamExtractor):
    """Query string decoded with nested-key syntax (``a[b]=1``)."""

    location = ParameterIn.QUERY
    label = "QsQuery"


class Form(ParamExtractor):
    location = ParameterIn.FORM_DATA
    label = "Form"


class Data(ParamExtractor):
    """Data injected into the request ahead of the handler."""

    location = ParameterIn.HEADER
    label = "Data"


class Json(Extractor, Apiv2Schema):
    """Whole request or response body, serialized as JSON."""

    @classmethod
    def name(cls) -> str | None:
        schema = schema_with_ref(cls.inner())
        return schema.name if schema is not None else None

    @classmethod
    def raw_schema(cls) -> Schema:
        schema = schema_with_ref(cls.inner())
        return schema.body() if schema is not None else Schema()

    @classmethod
    def schema_with_ref(cls) -> Schema:
        return schema_with_ref(cls.inner()) or Schema()

    @classmethod
    def ensure_resolvable(cls) -> None:
        super().ensure_resolvable()
        if schema_with_ref(cls.inner()) is None:
            raise CapabilityResolutionError(
                f"Json body type {type_label(cls.inner())} has no schema",
                {"annotation": type_label(cls.inner())},
            )

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        op.parameters.append(
            Parameter(
                in_=ParameterIn.BODY,
                name="body",
                required=True,
                schema_=reference_schema(cls.inner()),
            )
        )

    @classmethod
    def update_response(cls, op: Operation) -> None:
        op.responses["200"] = Response(
            description="OK",
            schema_=reference_schema(cls.inner()),
        )


class Multipart(TypedData, OperationModifier):
    """A multipart/form-data stream carrying an uploaded file."""

    @classmethod
    def data_type(cls) -> DataType:
        return DataType.FILE

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        op.parameters.append(
            Parameter(
                in_=ParameterIn.FORM_DATA,
                name="file_data",
                required=True,
                data_type=cls.data_type(),
                format=cls.format(),
            )
        )
