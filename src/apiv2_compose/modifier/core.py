"""Operation contributor contract and annotation resolution.

Every annotation on a handler resolves to an ``OperationModifier`` subclass.
The contract has five classmethods that are applied in a fixed order; the
defaults add nothing except the schema definitions and security schemes of
the described type.
"""

import logging
from functools import lru_cache
from typing import Any, ClassVar, get_args, get_origin

from apiv2_compose.errors import CapabilityResolutionError
from apiv2_compose.models.base import (
    Definitions,
    Operation,
    SecurityDefinitions,
)
from apiv2_compose.schema.descriptor import (
    MAPPING_ORIGINS,
    SEQUENCE_ORIGINS,
    UNION_ORIGINS,
    has_schema,
    is_class,
    optional_inner,
    security_scheme_for,
    strip_annotated,
    typed_data,
    update_definitions_from_schema_type,
)
from apiv2_compose.schema.error_map import is_error_type

logger = logging.getLogger(__name__)


def update_security(annotation: Any, op: Operation) -> None:
    found = security_scheme_for(annotation)
    if found is None:
        return
    name, scheme = found
    op.security.append({name: sorted(scheme.scopes)})


def update_security_definitions(annotation: Any, definitions: SecurityDefinitions) -> None:
    found = security_scheme_for(annotation)
    if found is None:
        return
    name, scheme = found
    scheme.append_map(name, definitions)


class OperationModifier:
    """Contract through which a type contributes to an operation.

    Subclasses override whichever classmethods they need. ``described_type``
    names the type whose schema and security scheme the defaults use.
    """

    @classmethod
    def described_type(cls) -> Any:
        return cls

    @classmethod
    def ensure_resolvable(cls) -> None:
        """Raise ``CapabilityResolutionError`` if this contributor is unusable."""

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        pass

    @classmethod
    def update_response(cls, op: Operation) -> None:
        pass

    @classmethod
    def update_definitions(cls, definitions: Definitions) -> None:
        update_definitions_from_schema_type(cls.described_type(), definitions)

    @classmethod
    def update_security(cls, op: Operation) -> None:
        update_security(cls.described_type(), op)

    @classmethod
    def update_security_definitions(cls, definitions: SecurityDefinitions) -> None:
        update_security_definitions(cls.described_type(), definitions)


def type_label(annotation: Any) -> str:
    if is_class(annotation):
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


class Wrapper(OperationModifier):
    """A contributor parametrized by other types, e.g. ``Json[User]``.

    Subscripting returns a cached subclass whose ``__params__`` holds the
    type arguments, so ``Json[User] is Json[User]``.
    """

    __params__: ClassVar[tuple] = ()
    __arity__: ClassVar[int] = 1

    def __class_getitem__(cls, params):
        if not isinstance(params, tuple):
            params = (params,)
        if len(params) != cls.__arity__:
            raise TypeError(
                f"{cls.__name__} takes {cls.__arity__} type argument(s), got {len(params)}"
            )
        return _parametrize(cls, params)

    @classmethod
    def inner(cls) -> Any:
        return cls.__params__[0]

    @classmethod
    def ensure_resolvable(cls) -> None:
        if not cls.__params__:
            raise CapabilityResolutionError(
                f"{cls.__name__} must be parametrized before use as an annotation"
            )


@lru_cache(maxsize=None)
def _parametrize(cls: type, params: tuple) -> type:
    label = ", ".join(type_label(p) for p in params)
    name = f"{cls.__name__}[{label}]"
    return type(cls)(name, (cls,), {
        "__params__": params,
        "__module__": cls.__module__,
        "__qualname__": name,
    })


class Leaf(Wrapper):
    """Defaults-only contributor for a type that has no overrides."""

    @classmethod
    def described_type(cls) -> Any:
        return cls.inner()


class Option(Wrapper):
    """``Optional[T]``: forwards every operation to ``T`` unchanged.

    Parameters contributed by ``T`` keep their ``required`` flag.
    """

    @classmethod
    def described_type(cls) -> Any:
        return cls.inner()

    @classmethod
    def ensure_resolvable(cls) -> None:
        super().ensure_resolvable()
        modifier_for(cls.inner())

    @classmethod
    def update_parameter(cls, op: Operation) -> None:
        modifier_for(cls.inner()).update_parameter(op)

    @classmethod
    def update_response(cls, op: Operation) -> None:
        modifier_for(cls.inner()).update_response(op)

    @classmethod
    def update_definitions(cls, definitions: Definitions) -> None:
        modifier_for(cls.inner()).update_definitions(definitions)

    @classmethod
    def update_security(cls, op: Operation) -> None:
        modifier_for(cls.inner()).update_security(op)

    @classmethod
    def update_security_definitions(cls, definitions: SecurityDefinitions) -> None:
        modifier_for(cls.inner()).update_security_definitions(definitions)


def is_leaf_type(annotation: Any) -> bool:
    """True for primitives, schema-described types and error types."""
    return typed_data(annotation) is not None or has_schema(annotation) or is_error_type(annotation)


def modifier_for(annotation: Any) -> type[OperationModifier]:
    """Resolve the operation contributor of a handler annotation."""
    annotation = strip_annotated(annotation)

    inner = optional_inner(annotation)
    if inner is not None:
        option = Option[inner]
        option.ensure_resolvable()
        return option

    origin = get_origin(annotation)
    if origin in UNION_ORIGINS:
        raise CapabilityResolutionError(
            f"Union annotation {type_label(annotation)} has no operation contributor; "
            "only Optional[T] is supported",
            {"annotation": type_label(annotation)},
        )

    if origin is not None:
        args = get_args(annotation)
        if origin in SEQUENCE_ORIGINS:
            for arg in args:
                if arg is not Ellipsis and arg is not Any:
                    modifier_for(arg)
            return Leaf[annotation]
        if origin in MAPPING_ORIGINS:
            if len(args) == 2 and args[1] is not Any:
                modifier_for(args[1])
            return Leaf[annotation]
        raise CapabilityResolutionError(
            f"Generic annotation {type_label(annotation)} has no operation contributor",
            {"annotation": type_label(annotation)},
        )

    if is_class(annotation):
        if issubclass(annotation, OperationModifier):
            annotation.ensure_resolvable()
            return annotation
        if is_leaf_type(annotation):
            return Leaf[annotation]

    raise CapabilityResolutionError(
        f"{type_label(annotation)} has no operation contributor: subclass "
        "OperationModifier, Apiv2Schema or pydantic.BaseModel, or wrap it in an extractor",
        {"annotation": type_label(annotation)},
    )


def apply_modifier(
    modifier: type[OperationModifier],
    op: Operation,
    definitions: Definitions,
    security_definitions: SecurityDefinitions,
) -> None:
    """Run the five contract operations of ``modifier`` in their fixed order."""
    logger.debug("Applying %s", modifier.__qualname__)
    modifier.update_parameter(op)
    modifier.update_response(op)
    modifier.update_definitions(definitions)
    modifier.update_security(op)
    modifier.update_security_definitions(security_definitions)
