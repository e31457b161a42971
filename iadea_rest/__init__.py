"""
IAdea REST Library
==================

A Python library for controlling IAdea digital signage players through
their HTTP REST API (/v2/).

This library allows you to:
- Authenticate and check whether a player is online
- Upload content files with progress notifications
- List, find and delete content stored on the player
- Play content, set start-up content and trigger SMIL events
- Export, import and commit player configuration
- Control the display and the light bars
"""

__version__ = "0.1.0"

# Export public API
from .device import IadeaDevice
from .exceptions import (
    IadeaError,
    AuthRequiredError,
    AuthError,
    DeviceTimeoutError,
    TransportError,
    UploadCancelledError,
    ApiNotFoundError,
    LocalFileError,
    NotFoundError,
    ConfigError,
    DeviceResponseError,
)
from .models import (
    ConfigurationSet,
    DeviceFile,
    FilterType,
    ProgressEvent,
    UserPref,
)
from .session import DEFAULT_PORT, DeviceSession
from .transport import IADEA_TIMEOUT, Invoker
from .upload import BUFFER_SIZE, MIME_TYPES, UploadRequest, Uploader


def create_device(
    host: str, port: int = DEFAULT_PORT, user: str = "admin", password: str = ""
) -> IadeaDevice:
    """Create a client for the player at host."""
    return IadeaDevice(host, port=port, username=user, password=password)


__all__ = [
    "create_device",
    "IadeaDevice",
    "DeviceSession",
    "Invoker",
    "Uploader",
    "UploadRequest",
    "DeviceFile",
    "ProgressEvent",
    "UserPref",
    "ConfigurationSet",
    "FilterType",
    "DEFAULT_PORT",
    "IADEA_TIMEOUT",
    "BUFFER_SIZE",
    "MIME_TYPES",
    "IadeaError",
    "AuthRequiredError",
    "AuthError",
    "DeviceTimeoutError",
    "TransportError",
    "UploadCancelledError",
    "ApiNotFoundError",
    "LocalFileError",
    "NotFoundError",
    "ConfigError",
    "DeviceResponseError",
]
