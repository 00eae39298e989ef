"""Outcome wrapper: a handler that returns a success value or a failure."""

from typing import Any

from apiv2_compose.models.base import Definitions, Operation, SecurityDefinitions
from apiv2_compose.modifier.core import Wrapper, modifier_for
from apiv2_compose.schema.error_map import is_error_type


class Result(Wrapper):
    """``Result[S, E]`` forwards to ``S`` and lets ``E`` add its error responses.

    ``E`` only takes part when it has the ``Apiv2Errors`` capability; a plain
    failure type is ignored and the operation documents ``S`` alone.
    """

    __arity__ = 2

    @classmethod
    def success(cls) -> Any:
        return cls.__params__[0]

    @classmethod
    def failure(cls) -> Any:
        return cls.__params__[1]

    @classmethod
    def described_type(cls) -> Any:
        return cls.success()

    @classmethod
    def ensure_resolvable(cls) -> None:
        super().ensure_resolvable()
        modifier_for(cls.success())

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        modifier_for(cls.success()).update_parameter(op)

    @classmethod
    def update_response(cls, op: Operation) -> None:
        modifier_for(cls.success()).update_response(op)
        if is_error_type(cls.failure()):
            cls.failure().update_error_definitions(op)

    @classmethod
    def update_definitions(cls, definitions: Definitions) -> None:
        modifier_for(cls.success()).update_definitions(definitions)
        if is_error_type(cls.failure()):
            cls.failure().update_definitions(definitions)

    @classmethod
    def update_security(cls, op: Operation) -> None:
        modifier_for(cls.success()).update_security(op)

    @classmethod
    def update_security_definitions(cls, definitions: SecurityDefinitions) -> None:
        modifier_for(cls.success()).update_security_definitions(definitions)
