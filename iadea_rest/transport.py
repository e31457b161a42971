"""
HTTP transport for the IAdea REST API.
"""

import json
import logging
from typing import Any, Dict, Optional, Union

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import (
    ApiNotFoundError,
    AuthRequiredError,
    DeviceTimeoutError,
    TransportError,
)
from .session import DeviceSession


logger = logging.getLogger(__name__)

IADEA_TIMEOUT = 5.0
JSON_CONTENT_TYPE = "application/json"


def create_http_session(pool_size: int = 1) -> requests.Session:
    """Create a requests session for talking to one device.

    Requests are never retried: a failed call is reported to the caller.

    Args:
        pool_size: Number of pooled connections kept per host

    Returns:
        Configured requests.Session object
    """
    session = requests.Session()
    retry = Retry(total=0, read=False, raise_on_status=False)
    adapter = HTTPAdapter(
        pool_connections=pool_size, pool_maxsize=pool_size, max_retries=retry
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def decode_response(response: requests.Response) -> Union[Dict[str, Any], list, str, bytes]:
    """Decode a device response.

    Image responses are returned as bytes. Everything else is parsed as
    JSON, falling back to the raw text for empty or non-JSON bodies.
    """
    content_type = response.headers.get("Content-Type", "")
    if "image" in content_type:
        return response.content

    try:
        return response.json()
    except ValueError:
        return response.text


class Invoker:
    """Performs single request/response exchanges against a device."""

    def __init__(
        self,
        session: DeviceSession,
        timeout: float = IADEA_TIMEOUT,
        http_session: Optional[requests.Session] = None,
    ):
        """Initialize the invoker.

        Args:
            session: Session holding the device address and access token
            timeout: Request timeout in seconds
            http_session: Optional pre-built requests session (owned by caller)
        """
        self.session = session
        self.timeout = timeout
        self._owns_http = http_session is None
        self.http = http_session if http_session is not None else create_http_session()

    def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send one request to the device.

        Args:
            method: HTTP method
            path: API path, e.g. '/v2/files/find'
            data: Request body (bytes, str or iterable of bytes)
            headers: Extra request headers
            timeout: Per-request timeout, defaults to the invoker timeout

        Returns:
            The response, which is never a 404

        Raises:
            AuthRequiredError: If no token is held for an authenticated path
            DeviceTimeoutError: If the request times out
            TransportError: If the connection fails
            ApiNotFoundError: If the device answers 404
        """
        if self.session.requires_token(path) and not self.session.is_authenticated:
            raise AuthRequiredError(f"Access token is required for {path}, call connect() first")

        url = f"{self.session.base_url}{path}"
        params = None
        if self.session.access_token:
            params = {"access_token": self.session.access_token}

        if timeout is None:
            timeout = self.timeout

        logger.debug(f"{method} {path}")

        try:
            response = self.http.request(
                method, url, params=params, data=data, headers=headers, timeout=timeout
            )
        except requests.Timeout as e:
            raise DeviceTimeoutError(f"{method} {path} timed out after {timeout}s") from e
        except (requests.RequestException, urllib3.exceptions.HTTPError, ValueError) as e:
            # requests passes some urllib3 errors through, e.g. LocationParseError
            # for an invalid host name.
            logger.error(f"{method} {path} failed: {e}")
            raise TransportError(f"{method} {path} failed: {str(e)}") from e

        if response.status_code == 404:
            # The host is reachable but it is not an IAdea player.
            raise ApiNotFoundError(
                f"Error 404. /v2/ interface is not found at {self.session.base_url}"
            )

        logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    def invoke(
        self,
        path: str,
        body: Any = None,
        content_type: Optional[str] = None,
    ) -> Union[Dict[str, Any], list, str, bytes]:
        """Call an API command.

        The request is a POST when a body is given and a GET otherwise.
        Mappings and lists are sent as JSON.

        Args:
            path: API path
            body: Optional request body
            content_type: Body content type (default: application/json)

        Returns:
            Decoded response (see decode_response)
        """
        method = "POST" if body is not None else "GET"

        if body is None or isinstance(body, (str, bytes)):
            data = body
        else:
            data = json.dumps(body)

        headers = {"Content-Type": content_type or JSON_CONTENT_TYPE}
        response = self.request(method, path, data=data, headers=headers)
        return decode_response(response)

    def close(self) -> None:
        """Close the HTTP session if this invoker created it."""
        if self._owns_http:
            self.http.close()
