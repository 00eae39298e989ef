"""Error descriptor capability.

Failure types list the status codes they can produce. An outcome
``Result[S, E]`` asks ``E`` to add those codes to the operation's responses
after the success type has added its own.
"""

import types
from typing import ClassVar

from apiv2_compose.models.base import Definitions, Operation, Response
from apiv2_compose.schema.descriptor import (
    is_class,
    reference_schema,
    update_definitions_from_schema_type,
)


class Apiv2Errors:
    """Mixin for error types; ``ERROR_MAP`` maps status codes to descriptions.

    When the error type also has a schema (a pydantic model or an
    ``Apiv2Schema``), each error response points at it.
    """

    ERROR_MAP: ClassVar[dict[int | str, str]] = {}

    @classmethod
    def update_error_definitions(cls, op: Operation) -> None:
        for code, description in cls.ERROR_MAP.items():
            op.responses[str(code)] = Response(
                description=description,
                schema_=reference_schema(cls),
            )

    @classmethod
    def update_definitions(cls, definitions: Definitions) -> None:
        update_definitions_from_schema_type(cls, definitions)


def is_error_type(annotation) -> bool:
    return is_class(annotation) and issubclass(annotation, Apiv2Errors)


def api_v2_errors(error_map: dict[int | str, str]):
    """Class decorator declaring the error responses of a failure type.

    The class gains ``Apiv2Errors`` behaviour if it does not have it yet::

        @api_v2_errors({400: "Bad request", 404: "Not found"})
        class StoreError(Exception):
            ...
    """

    def decorator(cls):
        if not issubclass(cls, Apiv2Errors):
            original = cls

            def body(ns):
                ns["__module__"] = original.__module__
                ns["__qualname__"] = original.__qualname__
                ns["__doc__"] = original.__doc__

            cls = types.new_class(original.__name__, (original, Apiv2Errors), exec_body=body)
        cls.ERROR_MAP = dict(error_map)
        return cls

    return decorator
