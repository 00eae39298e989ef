"""Operation composer - builds an operation descriptor from a handler's annotations."""

import inspect
import logging
from typing import Any, Callable, get_type_hints

from pydantic import BaseModel

from apiv2_compose.errors import CapabilityResolutionError
from apiv2_compose.models.base import Definitions, Operation, SecurityDefinitions
from apiv2_compose.modifier.core import apply_modifier, modifier_for

logger = logging.getLogger(__name__)

OPERATION_ATTR = "__apiv2_operation__"


class OperationMeta(BaseModel):
    """Descriptive metadata attached to a handler by ``api_v2_operation``."""

    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    tags: list[str] = []
    deprecated: bool = False


def api_v2_operation(
    func: Callable | None = None,
    *,
    operation_id: str | None = None,
    summary: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    deprecated: bool = False,
):
    """Attach operation metadata to a handler.

    The summary defaults to the first docstring line and the description to
    the rest of the docstring. Usable bare or with arguments.
    """

    def decorator(handler: Callable) -> Callable:
        doc_summary, doc_description = _split_docstring(handler)
        meta = OperationMeta(
            operation_id=operation_id or handler.__name__,
            summary=summary if summary is not None else doc_summary,
            description=description if description is not None else doc_description,
            tags=tags or [],
            deprecated=deprecated,
        )
        setattr(handler, OPERATION_ATTR, meta)
        return handler

    if func is not None:
        return decorator(func)
    return decorator


def operation_meta(handler: Callable) -> OperationMeta:
    meta = getattr(handler, OPERATION_ATTR, None)
    if meta is None:
        return OperationMeta(operation_id=getattr(handler, "__name__", None))
    return meta


def handler_annotations(handler: Callable) -> list[Any]:
    """Argument annotations in signature order, then the return annotation."""
    name = getattr(handler, "__qualname__", repr(handler))
    hints = get_type_hints(handler, include_extras=True)
    annotations = []
    for param in inspect.signature(handler).parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise CapabilityResolutionError(
                f"{name}: variadic parameter '{param.name}' cannot be documented",
                {"handler": name, "parameter": param.name},
            )
        if param.name not in hints:
            raise CapabilityResolutionError(
                f"{name}: parameter '{param.name}' has no annotation",
                {"handler": name, "parameter": param.name},
            )
        annotations.append(hints[param.name])

    returns = hints.get("return")
    if returns is not None and returns is not type(None):
        annotations.append(returns)
    return annotations


def compose_operation(
    handler: Callable,
    definitions: Definitions,
    security_definitions: SecurityDefinitions,
) -> Operation:
    """Compose the descriptor of ``handler``.

    Named schemas and security schemes land in the two shared maps passed
    in; the returned operation holds parameters, responses and security
    requirements.
    """
    name = getattr(handler, "__qualname__", repr(handler))
    op = Operation(**operation_meta(handler).model_dump())
    for annotation in handler_annotations(handler):
        try:
            modifier = modifier_for(annotation)
        except CapabilityResolutionError as e:
            raise CapabilityResolutionError(
                f"{name}: {e.message}", {"handler": name, **e.details}
            ) from e
        apply_modifier(modifier, op, definitions, security_definitions)

    logger.debug(
        "Composed %s: %d parameters, %d responses",
        name, len(op.parameters), len(op.responses),
    )
    return op


def _split_docstring(handler: Callable) -> tuple[str | None, str | None]:
    doc = inspect.getdoc(handler)
    if not doc:
        return None, None
    first, _, rest = doc.partition("\n")
    return first.strip() or None, rest.strip() or None
