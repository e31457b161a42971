"""
Exception classes for the IAdea REST library.
"""


class IadeaError(Exception):
    """Base exception for IAdea REST errors."""

    pass


class AuthRequiredError(IadeaError):
    """Raised when a command is issued before an access token is held."""

    pass


class AuthError(IadeaError):
    """Raised when the device rejects the supplied credentials."""

    pass


class DeviceTimeoutError(IadeaError, TimeoutError):
    """Raised when a request exceeds its deadline and is aborted."""

    pass


class TransportError(IadeaError):
    """Raised on connection-level failures (refused, reset, DNS...).

    A reboot command always ends with this error because the device drops
    the connection while restarting.
    """

    pass


class UploadCancelledError(TransportError):
    """Raised when an upload is aborted through its cancel event."""

    pass


class ApiNotFoundError(IadeaError):
    """Raised on HTTP 404: the host answers but exposes no /v2/ interface."""

    pass


class LocalFileError(IadeaError):
    """Raised when a local file cannot be accessed."""

    pass


class NotFoundError(IadeaError):
    """Raised when no file on the device matches a lookup."""

    pass


class ConfigError(IadeaError, ValueError):
    """Raised for unsupported local input, e.g. an unknown file extension."""

    pass


class DeviceResponseError(IadeaError):
    """Raised when the device answers with an unexpected payload."""

    pass
