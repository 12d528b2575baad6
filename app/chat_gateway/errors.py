"""Failures of the chat pipeline stages.

Every one of these is recoverable: the gateway turns it into an assistant
message instead of an HTTP error.
"""


class GatewayError(Exception):
    """Base class for chat pipeline failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ModelUnavailable(GatewayError):
    """The language model answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str = "Language model unavailable", status_code=None):
        self.status_code = status_code
        super().__init__(message)


class MalformedQuery(GatewayError):
    """No SELECT statement could be recovered from the model output."""


class RejectedQuery(GatewayError):
    """The statement violates the read-only, user-scoped query policy."""


class QueryExecutionError(GatewayError):
    """The store failed while running an accepted statement."""
