"""
Device session state and token acquisition.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .exceptions import AuthError

if TYPE_CHECKING:
    from .transport import Invoker


logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
TOKEN_PATH = "/v2/oauth2/token"


@dataclass
class DeviceSession:
    """Connection coordinates, credentials and the current access token."""

    host: str
    port: int = DEFAULT_PORT
    username: str = "admin"
    password: str = field(default="", repr=False)
    access_token: Optional[str] = field(default=None, repr=False)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @staticmethod
    def requires_token(path: str) -> bool:
        """Every path except the token endpoint needs an access token."""
        return path.split("?", 1)[0] != TOKEN_PATH


def connect(invoker: "Invoker") -> str:
    """Obtain an access token with the password grant and store it.

    Args:
        invoker: Invoker bound to the session to authenticate

    Returns:
        The access token

    Raises:
        AuthError: If the device reports an error or returns no token
        TransportError: If the device cannot be reached
        DeviceTimeoutError: If the device does not answer in time
    """
    session = invoker.session
    payload = {
        "grant_type": "password",
        "username": session.username,
        "password": session.password,
    }

    response = invoker.invoke(TOKEN_PATH, payload)

    if not isinstance(response, dict):
        raise AuthError(f"Unexpected token response: {response!r}")

    if response.get("error"):
        raise AuthError(str(response["error"]))

    token = response.get("access_token")
    if not token:
        raise AuthError("No access token received from device")

    session.access_token = token
    logger.info(f"Connected to {session.host}:{session.port} as {session.username}")
    return token


def check_online(invoker: "Invoker") -> bool:
    """Return True if the device accepts the session credentials.

    Any failure is reported as offline; this function never raises.
    """
    try:
        return bool(connect(invoker))
    except Exception as e:
        logger.info(f"Device {invoker.session.host} is offline: {e}")
        return False
