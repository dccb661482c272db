"""Exceptions used within SmartView"""

__all__ = [
    "SmartViewError",
    "UserError",
    "InternalError",
    "ConfigurationError",
    "TransportError",
    "ProtocolError",
    "ProviderException",
    "ArgumentError",
    "GridSpecError",
    "UnrecognisedFilterExpression",
    "NotConnected",
    "NotAttached",
    "AlreadyConnected",
    "UnsupportedOperation",
]


class SmartViewError(Exception):
    """Generic error class."""


class UserError(SmartViewError):
    """Superclass for all errors caused by the caller: malformed grid
    specifications, unparseable filter expressions or calls made in the
    wrong session state."""

    error_type = "unknown_user_error"


class InternalError(SmartViewError):
    """Superclass for all errors that happened outside of the caller's
    control: configuration issues, connection problems, unexpected provider
    responses..."""

    error_type = "internal_error"


class ConfigurationError(InternalError):
    """Raised when there is a problem with the client configuration."""


class TransportError(InternalError):
    """Raised when a request could not be delivered to the provider."""


class ProtocolError(InternalError):
    """Raised when a provider response does not have the expected shape."""


class ProviderException(InternalError):
    """Raised when the provider answers a request with an `exception`
    element."""

    def __init__(self, message, errcode=None, native=None, type=None, details=None):
        super().__init__(message)
        self.errcode = errcode
        self.native = native
        self.type = type
        self.details = details

    @classmethod
    def from_xml(cls, element):
        """Create the exception from a provider `exception` element."""
        return cls(
            (element.findtext("desc") or "").strip(),
            errcode=element.get("errcode"),
            native=element.get("native"),
            type=element.get("type"),
            details=element.findtext("details"),
        )


class ArgumentError(UserError):
    """Invalid argument passed to a call."""

    error_type = "argument"


class GridSpecError(ArgumentError):
    """Raised when a row/column specification does not describe a valid
    grid, for example when a member tuple does not match the number of
    dimensions on its axis."""

    error_type = "grid_spec"


class UnrecognisedFilterExpression(ArgumentError):
    """Raised when a member filter expression matches neither the provider
    grammar nor any of the available filters."""

    error_type = "filter_expression"


class NotConnected(UserError):
    """No provider connection has been established."""


class NotAttached(UserError):
    """No application cube has been opened."""


class AlreadyConnected(UserError):
    """The session is already connected to a provider."""


class UnsupportedOperation(UserError):
    """The operation is not supported by the connected provider."""
