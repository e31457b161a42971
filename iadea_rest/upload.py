"""
Streaming multipart upload of content files to the device.
"""

import logging
import os
import stat
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from .exceptions import (
    AuthRequiredError,
    ConfigError,
    DeviceTimeoutError,
    IadeaError,
    LocalFileError,
    TransportError,
    UploadCancelledError,
)
from .models import DeviceFile, ProgressEvent
from .transport import Invoker, decode_response


logger = logging.getLogger(__name__)

# Maximum 40 KiB; try a smaller buffer if uploads fail.
BUFFER_SIZE = 8 * 1024
UPLOAD_PATH = "/v2/files/new"

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "mp4": "video/mp4",
    "mpe": "video/mpeg",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "divx": "video/x-divx",
    "mov": "video/quicktime",
    "smil": "application/smil",
    "smi": "application/smil",
    "txt": "text/plain",
    "mp3": "audio/mpeg",
    "apk": "application/vnd.android.package-archive",
}

ProgressCallback = Callable[[ProgressEvent], None]


def mime_type_for(path: str) -> str:
    """Look up the MIME type of a file from its extension.

    Raises:
        ConfigError: If the extension is not supported by the device
    """
    extension = os.path.splitext(path)[1].lstrip(".").lower()
    try:
        return MIME_TYPES[extension]
    except KeyError:
        raise ConfigError(f"Unknown mimeType for extension: {extension!r}") from None


def iso_timestamp(epoch_seconds: float) -> str:
    """Format a POSIX timestamp as ISO-8601 UTC with milliseconds."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class UploadRequest:
    """Everything needed to describe one upload to the device."""

    local_path: str
    download_path: str
    mime_type: str
    file_size: int
    modified_date: str

    @classmethod
    def from_path(cls, local_path: str, download_path: str) -> "UploadRequest":
        """Describe a local file.

        Args:
            local_path: File to upload
            download_path: Target location, e.g. '/user-data/media/test.jpg'

        Raises:
            ConfigError: If the file type is not supported
            LocalFileError: If the file cannot be accessed
        """
        mime_type = mime_type_for(local_path)

        try:
            stats = os.stat(local_path)
        except OSError as e:
            raise LocalFileError(f"Cannot access {local_path}: {e.strerror or e}") from e

        if not stat.S_ISREG(stats.st_mode):
            raise LocalFileError(f"Not a regular file: {local_path}")

        if not os.access(local_path, os.R_OK):
            raise LocalFileError(f"Cannot read {local_path}: permission denied")

        return cls(
            local_path=local_path,
            download_path=download_path,
            mime_type=mime_type,
            file_size=stats.st_size,
            modified_date=iso_timestamp(stats.st_mtime),
        )


class _UploadAborted(Exception):
    """Carries an error out of the body iterator through requests/urllib3."""

    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error


class MultipartBody:
    """multipart/form-data body streamed from a file, with a known length.

    requests sends iterables that define ``__len__`` with a Content-Length
    header instead of chunked transfer encoding, which the device rejects.
    """

    def __init__(
        self,
        request: UploadRequest,
        chunk_size: int = BUFFER_SIZE,
        boundary: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        if chunk_size <= 0:
            raise ConfigError("chunk_size must be positive")

        self.request = request
        self.chunk_size = chunk_size
        self.boundary = boundary or uuid.uuid4().hex
        self.on_progress = on_progress
        self.deadline = deadline
        self.cancel_event = cancel_event

        self.preamble = self._build_preamble()
        self.closing = f"\r\n--{self.boundary}--"

    def _build_preamble(self) -> str:
        fields = [
            ("downloadPath", self.request.download_path),
            ("fileSize", str(self.request.file_size)),
            ("mimeType", self.request.mime_type),
            ("modifiedDate", self.request.modified_date),
        ]

        parts = []
        for name, value in fields:
            parts.append(
                f"--{self.boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                f"{value}\r\n"
            )
        parts.append(
            f"--{self.boundary}\r\n"
            'Content-Disposition: form-data; name="data"; filename=""\r\n'
            "Content-Type: application/octet-stream\r\n\r\n"
        )
        return "".join(parts)

    @property
    def content_type(self) -> str:
        return f'multipart/form-data; boundary="{self.boundary}"'

    @property
    def content_length(self) -> int:
        """Exact body size in bytes (UTF-8 framing plus raw file size)."""
        return (
            len(self.preamble.encode("utf-8"))
            + len(self.closing.encode("utf-8"))
            + self.request.file_size
        )

    def __len__(self) -> int:
        return self.content_length

    def _check_abort(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise _UploadAborted(UploadCancelledError("Upload cancelled"))

        if self.deadline is not None and time.monotonic() > self.deadline:
            raise _UploadAborted(
                DeviceTimeoutError(f"Upload of {self.request.local_path} timed out")
            )

    def _read_error(self, err: OSError) -> _UploadAborted:
        error = TransportError(f"Failed to read {self.request.local_path}: {err}")
        error.__cause__ = err
        return _UploadAborted(error)

    def __iter__(self) -> Iterator[bytes]:
        total = self.request.file_size
        sent = 0

        self._check_abort()
        yield self.preamble.encode("utf-8")

        try:
            stream = open(self.request.local_path, "rb")
        except OSError as e:
            raise self._read_error(e)

        with stream:
            while sent < total:
                self._check_abort()

                try:
                    chunk = stream.read(min(self.chunk_size, total - sent))
                except OSError as e:
                    raise self._read_error(e)

                if not chunk:
                    raise _UploadAborted(
                        TransportError(
                            f"{self.request.local_path} shrank during upload "
                            f"({sent} of {total} bytes sent)"
                        )
                    )

                yield chunk
                sent += len(chunk)

                if self.on_progress:
                    try:
                        self.on_progress(ProgressEvent.of(sent, total))
                    except Exception as e:
                        raise _UploadAborted(e)

        self._check_abort()
        yield self.closing.encode("utf-8")


class Uploader:
    """Uploads local files to the device as multipart requests."""

    def __init__(self, invoker: Invoker, chunk_size: int = BUFFER_SIZE):
        self.invoker = invoker
        self.chunk_size = chunk_size

    def upload(
        self,
        local_path: str,
        download_path: str,
        on_progress: Optional[ProgressCallback] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeviceFile:
        """Upload a file to the device.

        Args:
            local_path: Full path of the file to upload
            download_path: Where to store the file, should begin with /user-data/
            on_progress: Called with a ProgressEvent after each chunk is sent
            timeout: Overall deadline for the upload in seconds
            cancel_event: Set from another thread to abort the upload

        Returns:
            The record of the created file

        Raises:
            AuthRequiredError: If connect() has not succeeded
            ConfigError: If the file type is not supported
            LocalFileError: If the file cannot be accessed
            DeviceTimeoutError: If the deadline or a socket timeout expires
            UploadCancelledError: If cancel_event is set during the upload
            TransportError: On connection or read failures while streaming
        """
        if not self.invoker.session.is_authenticated:
            raise AuthRequiredError("Access token is required, call connect() first")

        request = UploadRequest.from_path(local_path, download_path)

        deadline = None
        request_timeout = self.invoker.timeout
        if timeout is not None:
            if timeout <= 0:
                raise ConfigError("timeout must be positive")
            deadline = time.monotonic() + timeout
            request_timeout = min(request_timeout, timeout)

        body = MultipartBody(
            request,
            chunk_size=self.chunk_size,
            on_progress=on_progress,
            deadline=deadline,
            cancel_event=cancel_event,
        )
        headers = {
            "Content-Type": body.content_type,
            "Content-Length": str(body.content_length),
        }

        logger.info(
            f"Uploading {local_path} ({request.file_size} bytes) to {download_path}"
        )

        try:
            response = self.invoker.request(
                "POST", UPLOAD_PATH, data=body, headers=headers, timeout=request_timeout
            )
        except _UploadAborted as e:
            logger.error(f"Upload of {local_path} aborted: {e.error}")
            if not isinstance(e.error, IadeaError):
                # Progress callback errors propagate unchanged.
                raise e.error
            raise e.error from e.error.__cause__

        record = DeviceFile.from_dict(decode_response(response))
        logger.info(f"Uploaded {download_path} as file {record.id}")
        return record
