"""Error taxonomy shared by the services and routers.

Each error extends the builtin type the routers already translate, so a
``ValueError`` handler still catches ``InvalidQuery`` and a ``LookupError``
handler still catches ``NotFound``.
"""


class InvalidQuery(ValueError):
    """Malformed filter combination, pagination window or identifier."""


class NotFound(LookupError):
    """The referenced business or review does not exist."""


class Forbidden(PermissionError):
    """The caller is not the author or owner of the resource."""


class Unauthorized(PermissionError):
    """The caller could not be identified."""


class StoreUnavailable(RuntimeError):
    """The document store failed to answer a query or write."""
