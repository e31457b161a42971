import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest
import requests

from iadea_rest import IadeaDevice


def make_response(body: Any = None, status: int = 200, content_type: str = "application/json"):
    response = requests.Response()
    response.status_code = status
    if body is None:
        content = b""
    elif isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode("utf-8")
    else:
        content = json.dumps(body).encode("utf-8")
    response._content = content
    response.headers["Content-Type"] = content_type
    response.encoding = "utf-8"
    return response


@dataclass
class Call:
    method: str
    url: str
    params: Optional[Dict[str, str]]
    body: Any
    headers: Optional[Dict[str, str]]
    timeout: Any

    @property
    def path(self) -> str:
        return "/" + self.url.split("/", 3)[3]

    @property
    def json(self) -> Any:
        return json.loads(self.body)


class FakeHttp:
    """Stands in for requests.Session: records requests, replays responses."""

    def __init__(self):
        self.calls: List[Call] = []
        self.responses: List[Any] = []
        self.closed = False

    def reply(self, body: Any = None, status: int = 200, content_type: str = "application/json"):
        self.responses.append(make_response(body, status, content_type))
        return self

    def fail(self, error: BaseException):
        self.responses.append(error)
        return self

    def request(self, method, url, params=None, data=None, headers=None, timeout=None):
        body = data
        if data is not None and not isinstance(data, (str, bytes)):
            # Streaming bodies are consumed like the real adapter would.
            body = b"".join(data)

        self.calls.append(Call(method, url, params, body, headers, timeout))

        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")

        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.closed = True


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def device(http):
    return IadeaDevice("10.0.0.5", password="secret", http_session=http)


@pytest.fixture
def connected(device):
    device.session.access_token = "tok123"
    return device


def file_record(id, download_path, mime_type="image/jpeg", completed=True, size=100):
    return {
        "id": id,
        "etag": f"etag-{id}",
        "downloadPath": download_path,
        "createdDate": "2017-01-01T00:00:00.000Z",
        "modifiedDate": "2017-01-01T00:00:00.000Z",
        "mimeType": mime_type,
        "fileSize": size,
        "transferredSize": size if completed else 0,
        "completed": completed,
    }
