"""
High level client for IAdea signage players.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

import requests

from .exceptions import ConfigError, DeviceResponseError, NotFoundError
from .models import (
    ConfigInput,
    ConfigurationSet,
    DeviceFile,
    FileRef,
    FilterType,
    file_collection,
    file_id,
    is_file_collection,
    parse_file_list,
)
from .session import DEFAULT_PORT, DeviceSession, check_online, connect
from .transport import IADEA_TIMEOUT, Invoker
from .upload import BUFFER_SIZE, ProgressCallback, Uploader


logger = logging.getLogger(__name__)

PLAYER_PACKAGE = "com.iadea.player"
PLAYER_ACTIVITY = "com.iadea.player.SmilActivity"
VIEW_ACTION = "android.intent.action.VIEW"
LOCAL_CONTENT_URL = "http://localhost:8080/v2"

CONSOLE_SETTINGS = "app.settings.com.iadea.console"
AUTO_START_SETTING = "disableAutoStart"


def content_uri(location: str) -> str:
    """Resolve a download path to a URI the player can open.

    External locations (anything containing 'http') are used unchanged.
    """
    if "http" in location:
        return location
    return LOCAL_CONTENT_URL + location


def view_command(location: str) -> Dict[str, str]:
    return {
        "uri": content_uri(location),
        "className": PLAYER_ACTIVITY,
        "packageName": PLAYER_PACKAGE,
        "action": VIEW_ACTION,
    }


def format_color(
    color_or_red: Union[str, int],
    green: Optional[int] = None,
    blue: Optional[int] = None,
) -> str:
    """Normalize a color to '#RRGGBB'.

    Raises:
        ConfigError: If channels are missing or out of the 0-255 range
    """
    if isinstance(color_or_red, str):
        if green is not None or blue is not None:
            raise ConfigError("Channel values cannot be combined with a color string")
        return color_or_red

    channels = (color_or_red, green, blue)
    if any(c is None for c in channels):
        raise ConfigError("Red, green and blue values are all required")

    for value in channels:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
            raise ConfigError(f"Color channel out of range 0-255: {value!r}")

    return "#{:02X}{:02X}{:02X}".format(*channels)


class IadeaDevice:
    """Client for controlling an IAdea player through its REST API."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        username: str = "admin",
        password: str = "",
        timeout: float = IADEA_TIMEOUT,
        chunk_size: int = BUFFER_SIZE,
        http_session: Optional[requests.Session] = None,
    ):
        """Initialize the device client.

        Args:
            host: Host name or IP address of the player
            port: REST API port
            username: Account name
            password: Account password
            timeout: Request timeout in seconds
            chunk_size: Upload chunk size in bytes
            http_session: Optional requests session to send requests with
        """
        self.session = DeviceSession(
            host=host, port=port or DEFAULT_PORT, username=username, password=password
        )
        self.invoker = Invoker(self.session, timeout=timeout, http_session=http_session)
        self.uploader = Uploader(self.invoker, chunk_size=chunk_size)

    def __enter__(self):
        """Context manager entry point - authenticates with the device."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self) -> None:
        self.invoker.close()

    @property
    def access_token(self) -> Optional[str]:
        return self.session.access_token

    def _call(self, path: str, body: Any = None) -> Any:
        return self.invoker.invoke(path, body)

    # Session

    def connect(self) -> str:
        """Authenticate and store the access token.

        Returns:
            The access token

        Raises:
            AuthError: If the credentials are rejected
            TransportError: If the device cannot be reached
        """
        return connect(self.invoker)

    def check_online(self) -> bool:
        """Return True if the device is reachable and accepts the credentials."""
        return check_online(self.invoker)

    def raw_call(self, path: str, data: Any = None) -> Any:
        """Send an arbitrary API command."""
        return self._call(path, data)

    # Files

    def upload_file(
        self,
        local_path: str,
        download_path: str,
        on_progress: Optional[ProgressCallback] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeviceFile:
        """Upload a file to the device.

        See Uploader.upload for arguments and errors.
        """
        return self.uploader.upload(
            local_path,
            download_path,
            on_progress=on_progress,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def get_file_list(
        self,
        filter: Any = None,
        filter_type: Union[FilterType, str] = FilterType.DOWNLOAD_PATH,
    ) -> List[DeviceFile]:
        """Get all files, or the files matching a filter.

        Filtering is done on the client after fetching the full list.

        Args:
            filter: Value to match; None returns every file
            filter_type: 'completed' (equality), 'mimeType' (substring) or
                'downloadPath' (substring, default)

        Raises:
            ConfigError: If filter_type is unknown
        """
        try:
            filter_type = FilterType(filter_type)
        except ValueError:
            raise ConfigError(f"Unknown filter type: {filter_type!r}") from None

        files = parse_file_list(self._call("/v2/files/find", {}))
        if filter is None:
            return files

        if filter_type is FilterType.COMPLETED:
            return [f for f in files if f.completed == filter]
        if filter_type is FilterType.MIME_TYPE:
            return [f for f in files if str(filter) in f.mime_type]
        return [f for f in files if str(filter) in f.download_path]

    def get_file(self, file: FileRef) -> DeviceFile:
        """Get a file record by id."""
        return DeviceFile.from_dict(self._call(f"/v2/files/{file_id(file)}"))

    def find_file_by_name(self, name: str) -> DeviceFile:
        """Find the first file whose download path contains name.

        Raises:
            NotFoundError: If no file matches
        """
        for record in self.get_file_list():
            if name in record.download_path:
                return self.get_file(record.id)

        raise NotFoundError(f"File not found - {name}")

    def delete_files(self, files: Any) -> Any:
        """Delete one or more files.

        Args:
            files: A file id or record, a list of them, or a listing of the
                form {"items": [...]}. Lists are deleted one at a time, in
                order, each after the previous delete has completed.

        Returns:
            The device response, or a list of responses for a collection
        """
        if not is_file_collection(files):
            return self._delete(files)

        results = []
        for ref in file_collection(files):
            results.append(self._delete(ref))
        return results

    def _delete(self, ref: FileRef) -> Any:
        fid = file_id(ref)
        result = self._call("/v2/files/delete", {"id": fid})
        logger.info(f"Deleted file {fid}")
        return result

    # Playback

    def play_file(self, file: Union[str, DeviceFile, Mapping[str, Any]]) -> Any:
        """Play content once (media file or SMIL).

        Args:
            file: Download path, file record, or an external 'http' URL
        """
        if isinstance(file, DeviceFile):
            location = file.download_path
        elif isinstance(file, Mapping):
            location = file["downloadPath"]
        else:
            location = file

        return self._call("/v2/app/exec", view_command(location))

    def set_start(self, target: Union[str, Mapping[str, Any]], fallback: bool = False) -> Any:
        """Set the content played each time the player boots.

        Args:
            target: Download path, external URL, or a complete start command
            fallback: Set the safe (fallback) content instead
        """
        if isinstance(target, Mapping):
            options = dict(target)
        else:
            options = view_command(target)

        command = "/v2/app/fallback" if fallback else "/v2/app/start"
        return self._call(command, options)

    def switch_to_default(self) -> Any:
        """Switch to the default content (see set_start)."""
        return self.switch_to("start")

    def switch_to(self, mode: str) -> Any:
        """Switch application mode, e.g. 'home' for the home screen."""
        return self._call("/v2/app/switch", {"mode": mode})

    def notify(self, event: Optional[str] = None) -> Any:
        """Trigger a network event in SMIL (XMP-6200 and higher)."""
        option = {}
        if event:
            option["smilEvent"] = event
        return self._call("/v2/task/notify", option)

    # System

    def reboot(self) -> Any:
        """Reboot the player.

        The device drops the connection while restarting, so a
        TransportError is the expected outcome of this call.
        """
        logger.info(f"Rebooting {self.session.host}")
        return self._call("/v2/task/reboot")

    def get_screenshot(self) -> Any:
        return self._call("/v2/task/screenshot")

    def storage_info(self) -> Any:
        return self._call("/v2/system/storageInfo")

    def get_firmware_info(self) -> Any:
        return self._call("/v2/system/firmwareInfo")

    def get_model_info(self) -> Any:
        return self._call("/v2/system/modelInfo")

    def is_wifi_enabled(self) -> Any:
        return self._call("/v2/android.net.wifi.WifiManager/isWifiEnabled")

    def set_password(self, password: Optional[str] = None) -> Any:
        """Update the admin password; None restores the default one."""
        return self._call("/v2/security/users/admin", {"password": password or "pass"})

    # Configuration

    def export_configuration(self) -> Any:
        return self._call("/v2/task/exportConfiguration")

    def import_configuration(self, config: ConfigInput, run_commit: bool = False) -> Any:
        """Import a configuration into the player.

        Args:
            config: A preference, a list of preferences, a {"userPref": [...]}
                mapping or a ConfigurationSet
            run_commit: Commit the imported configuration afterwards

        Returns:
            The import response (with 'commitId' and 'restartRequired'), or
            the commit response when run_commit is set
        """
        cfg = ConfigurationSet.from_input(config)
        result = self._call("/v2/task/importConfiguration", cfg.to_dict())

        if not run_commit:
            return result
        return self.commit_configuration(result)

    def commit_configuration(self, commit: Union[str, Mapping[str, Any]]) -> Any:
        """Apply a previously imported configuration.

        Args:
            commit: Commit id, or the response of import_configuration

        Raises:
            ConfigError: If no commit id is available
        """
        if isinstance(commit, Mapping):
            commit_id = commit.get("commitId")
        else:
            commit_id = commit

        if not commit_id:
            raise ConfigError(f"No commitId in {commit!r}")

        return self._call("/v2/task/commitConfiguration", {"commitId": commit_id})

    def settings_console_new(self, config: Mapping[str, Any]) -> Any:
        """Add settings under com.iadea.console.

        Example: {"settings": [{"name": "autoTimeServer", "value": "ntp://host"}]}
        """
        return self._call("/v2/app/settings/com.iadea.console/new", config)

    def settings_console_update(self, config: Mapping[str, Any]) -> Any:
        """Update settings under com.iadea.console."""
        return self._call("/v2/app/settings/com.iadea.console/update", config)

    def enable_auto_start(self, enable: bool = True) -> Any:
        """Enable or disable starting the player on boot.

        The current configuration is exported first to decide whether the
        setting must be added or updated. The two requests are not atomic.

        The device setting is disableAutoStart, so the value sent is
        ``not enable``. The JavaScript iadea-rest library sent ``enable``
        unchanged.

        Raises:
            DeviceResponseError: If the exported configuration has no valid userPref
        """
        exported = self.export_configuration()
        if not isinstance(exported, Mapping) or exported.get("userPref") is None:
            raise DeviceResponseError("userPref is not set")

        prefs = exported["userPref"]
        if not isinstance(prefs, list) or not all(isinstance(p, Mapping) for p in prefs):
            raise DeviceResponseError(f"Malformed userPref: {prefs!r}")

        names = {pref.get("name") for pref in prefs}
        settings = {"settings": [{"name": AUTO_START_SETTING, "value": not enable}]}

        if f"{CONSOLE_SETTINGS}.{AUTO_START_SETTING}" in names:
            return self.settings_console_update(settings)
        return self.settings_console_new(settings)

    # Hardware

    def switch_display(self, on: bool) -> Any:
        """Turn the display on or to standby."""
        power = "on" if on else "standby"
        return self._call("/v2/hardware/display", {"id": 0, "power": power})

    def set_color(
        self,
        color_or_red: Union[str, int],
        green: Optional[int] = None,
        blue: Optional[int] = None,
    ) -> Any:
        """Set the color of the light bars (XDS-1078).

        Args:
            color_or_red: '#RRGGBB' string, or the red channel (0-255)
            green: Green channel when red is given
            blue: Blue channel when red is given
        """
        color = format_color(color_or_red, green, blue)
        return self._call(
            "/v2/hardware/light", {"name": "frame", "brightness": 1, "color": color}
        )
