"""Framework context handles.

These are part of a handler's call signature but not of the wire contract,
so they contribute nothing to the operation.
"""

from apiv2_compose.modifier.core import OperationModifier, Wrapper


class HttpRequest(OperationModifier):
    """The raw incoming request."""


class HttpResponse(OperationModifier):
    """A response built by hand inside the handler."""


class Payload(OperationModifier):
    """The raw request body stream."""


class Session(OperationModifier):
    """Per-client session storage."""


class NamedFile(OperationModifier):
    """A file served from disk."""


class State(Wrapper):
    """Process-wide shared state, e.g. ``State[DatabasePool]``."""


class ReqData(Wrapper):
    """Per-request data attached by middleware, e.g. ``ReqData[CurrentUser]``."""
