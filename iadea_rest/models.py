"""
Data structures exchanged with the IAdea device.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .exceptions import ConfigError, DeviceResponseError


class FilterType(Enum):
    """Criteria supported by client-side file list filtering."""

    COMPLETED = "completed"
    MIME_TYPE = "mimeType"
    DOWNLOAD_PATH = "downloadPath"


@dataclass
class DeviceFile:
    """Metadata of a content file stored on the device."""

    id: str
    download_path: str = ""
    etag: Optional[str] = None
    created_date: Optional[str] = None
    modified_date: Optional[str] = None
    mime_type: str = ""
    file_size: int = 0
    transferred_size: int = 0
    completed: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = {
        "id": "id",
        "etag": "etag",
        "downloadPath": "download_path",
        "createdDate": "created_date",
        "modifiedDate": "modified_date",
        "mimeType": "mime_type",
        "fileSize": "file_size",
        "transferredSize": "transferred_size",
        "completed": "completed",
    }

    @classmethod
    def from_dict(cls, data: Any) -> "DeviceFile":
        """Build a record from the JSON object returned by the device.

        Raises:
            DeviceResponseError: If the payload is not a file record
        """
        if not isinstance(data, Mapping) or "id" not in data:
            raise DeviceResponseError(f"Expected a file record, got: {data!r}")

        known = {}
        extra = {}
        for key, value in data.items():
            if key in cls._KEYS:
                known[cls._KEYS[key]] = value
            else:
                extra[key] = value

        known["id"] = str(known["id"])
        known.setdefault("download_path", "")
        known["mime_type"] = known.get("mime_type") or ""
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        """Return the record in the device's camelCase shape."""
        data = {device_key: getattr(self, attr) for device_key, attr in self._KEYS.items()}
        data.update(self.extra)
        return data

    @property
    def name(self) -> str:
        """Last component of the download path."""
        return self.download_path.rsplit("/", 1)[-1]


def parse_file_list(data: Any) -> List[DeviceFile]:
    """Turn a `/v2/files/find` response into a list of records.

    Raises:
        DeviceResponseError: If the response carries no item list
    """
    if not isinstance(data, Mapping):
        raise DeviceResponseError(f"Unexpected file list response: {data!r}")

    items = data.get("items") or []
    return [DeviceFile.from_dict(item) for item in items]


@dataclass(frozen=True)
class ProgressEvent:
    """Upload progress notification."""

    total_size: int
    bytes_sent: int
    fraction: float

    @classmethod
    def of(cls, bytes_sent: int, total_size: int) -> "ProgressEvent":
        fraction = bytes_sent / total_size if total_size else 1.0
        return cls(total_size=total_size, bytes_sent=bytes_sent, fraction=fraction)


@dataclass
class UserPref:
    """A single named device preference."""

    name: str
    value: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_input(cls, item: Union["UserPref", Mapping[str, Any]]) -> "UserPref":
        if isinstance(item, UserPref):
            return item

        if not isinstance(item, Mapping) or "name" not in item:
            raise ConfigError(f"A preference needs a name, got: {item!r}")

        extra = {k: v for k, v in item.items() if k not in ("name", "value")}
        return cls(name=item["name"], value=item.get("value"), extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "value": self.value}
        data.update(self.extra)
        return data


ConfigInput = Union[
    "ConfigurationSet",
    UserPref,
    Mapping[str, Any],
    Sequence[Union[UserPref, Mapping[str, Any]]],
]


@dataclass
class ConfigurationSet:
    """Ordered set of user preferences as exported/imported by the device."""

    user_pref: List[UserPref] = field(default_factory=list)

    @classmethod
    def from_input(cls, config: ConfigInput) -> "ConfigurationSet":
        """Normalize the accepted configuration shapes.

        Accepts a ConfigurationSet, a wrapped ``{"userPref": [...]}``
        mapping, a single preference (mapping or UserPref) or a sequence of
        preferences.

        Raises:
            ConfigError: If the input matches none of these shapes
        """
        if isinstance(config, ConfigurationSet):
            return config

        if isinstance(config, UserPref):
            return cls(user_pref=[config])

        if isinstance(config, Mapping):
            if "userPref" in config:
                prefs = config["userPref"]
                if isinstance(prefs, (str, bytes, Mapping)) or not isinstance(prefs, Sequence):
                    raise ConfigError("userPref must be a list of preferences")
                return cls(user_pref=[UserPref.from_input(item) for item in prefs])
            return cls(user_pref=[UserPref.from_input(config)])

        if isinstance(config, Sequence) and not isinstance(config, (str, bytes)):
            return cls(user_pref=[UserPref.from_input(item) for item in config])

        raise ConfigError(f"Unsupported configuration: {config!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"userPref": [pref.to_dict() for pref in self.user_pref]}

    def get(self, name: str) -> Optional[UserPref]:
        for pref in self.user_pref:
            if pref.name == name:
                return pref
        return None

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


FileRef = Union[str, DeviceFile, Mapping[str, Any]]


def file_id(ref: FileRef) -> str:
    """Extract a file id from a file reference.

    Raises:
        ConfigError: If no id can be found in the reference
    """
    if isinstance(ref, DeviceFile):
        return ref.id
    if isinstance(ref, str):
        return ref
    if isinstance(ref, Mapping) and "id" in ref:
        return str(ref["id"])
    raise ConfigError(f"Not a file reference: {ref!r}")


def is_file_collection(files: Any) -> bool:
    """True for a sequence of references or an ``{"items": [...]}`` listing."""
    if isinstance(files, Mapping):
        return "items" in files
    return isinstance(files, Sequence) and not isinstance(files, (str, bytes))


def file_collection(files: Any) -> List[FileRef]:
    if isinstance(files, Mapping):
        return list(files["items"])
    return list(files)
