"""The juliaup configuration file: its data model, JSON form and locked access."""

from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Union

import portalocker

from .global_paths import GlobalPaths

DEFAULT_VERSIONSDB_UPDATE_INTERVAL = 1440

_LOCKED_MESSAGE = (
    "Juliaup configuration is locked by another process, waiting for it to unlock."
)

_DATETIME_RE = re.compile(
    r"^(?P<main>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>[Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass
class JuliaupConfigVersion:
    """An installed Julia version, stored relative to the juliaup home folder."""

    path: str


@dataclass
class SystemChannel:
    """A channel that points at a Julia version managed by juliaup."""

    version: str


@dataclass
class LinkedChannel:
    """A channel that points at a custom Julia command."""

    command: str
    args: list[str] | None = None


JuliaupConfigChannel = Union[SystemChannel, LinkedChannel]


@dataclass
class JuliaupConfigSettings:
    """User settings stored in the configuration file."""

    create_channel_symlinks: bool = False
    versionsdb_update_interval: int = DEFAULT_VERSIONSDB_UPDATE_INTERVAL


@dataclass
class JuliaupOverride:
    """A directory whose Julia channel differs from the default."""

    path: str
    channel: str


@dataclass
class JuliaupConfig:
    """The whole content of the configuration file."""

    default: str | None = None
    installed_versions: dict[str, JuliaupConfigVersion] = field(default_factory=dict)
    installed_channels: dict[str, JuliaupConfigChannel] = field(default_factory=dict)
    settings: JuliaupConfigSettings = field(default_factory=JuliaupConfigSettings)
    overrides: list[JuliaupOverride] = field(default_factory=list)
    last_version_db_update: datetime | None = None


def _parse_datetime(text: Any) -> datetime:
    match = _DATETIME_RE.match(text) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Invalid timestamp {text!r}.")
    frac = (match["frac"] or "")[:6].ljust(6, "0")
    tz = "+00:00" if match["tz"].upper() == "Z" else match["tz"]
    main = match["main"].replace(" ", "T").replace("t", "T")
    return datetime.fromisoformat(f"{main}.{frac}{tz}").astimezone(timezone.utc)


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Expected a string for {what}, got {value!r}.")
    return value


def _channel_from_dict(data: Any) -> JuliaupConfigChannel:
    if not isinstance(data, dict):
        raise ValueError(f"Invalid channel entry {data!r}.")
    if isinstance(data.get("Version"), str):
        return SystemChannel(version=data["Version"])
    command = data.get("Command")
    if isinstance(command, str):
        args = data.get("Args")
        if args is not None and not (
            isinstance(args, list) and all(isinstance(a, str) for a in args)
        ):
            raise ValueError(f"Invalid arguments {args!r} for linked channel.")
        return LinkedChannel(command=command, args=list(args) if args is not None else None)
    raise ValueError(
        "data did not match any variant of untagged enum JuliaupConfigChannel"
    )


def _channel_to_dict(channel: JuliaupConfigChannel) -> dict[str, Any]:
    if isinstance(channel, SystemChannel):
        return {"Version": channel.version}
    return {"Command": channel.command, "Args": channel.args}


def _settings_from_dict(data: Any) -> JuliaupConfigSettings:
    if not isinstance(data, dict):
        raise ValueError(f"Invalid settings {data!r}.")
    symlinks = data.get("CreateChannelSymlinks", False)
    interval = data.get("VersionsDbUpdateInterval", DEFAULT_VERSIONSDB_UPDATE_INTERVAL)
    if not isinstance(symlinks, bool):
        raise ValueError(f"Invalid value {symlinks!r} for CreateChannelSymlinks.")
    if isinstance(interval, bool) or not isinstance(interval, int):
        raise ValueError(f"Invalid value {interval!r} for VersionsDbUpdateInterval.")
    return JuliaupConfigSettings(
        create_channel_symlinks=symlinks, versionsdb_update_interval=interval
    )


def config_from_dict(data: Any) -> JuliaupConfig:
    """Build a configuration from its decoded JSON form."""
    if not isinstance(data, dict):
        raise ValueError("The configuration must be a JSON object.")
    try:
        default = data.get("Default")
        if default is not None:
            default = _require_str(default, "Default")
        versions_raw = data["InstalledVersions"]
        channels_raw = data["InstalledChannels"]
        if not isinstance(versions_raw, dict) or not isinstance(channels_raw, dict):
            raise ValueError("InstalledVersions and InstalledChannels must be objects.")
        installed_versions = {
            key: JuliaupConfigVersion(path=_require_str(value["Path"], "Path"))
            for key, value in versions_raw.items()
        }
        installed_channels = {
            key: _channel_from_dict(value) for key, value in channels_raw.items()
        }
        settings = _settings_from_dict(data.get("Settings", {}))
        overrides_raw = data.get("Overrides", [])
        if not isinstance(overrides_raw, list):
            raise ValueError("Overrides must be a list.")
        overrides = [
            JuliaupOverride(
                path=_require_str(item["Path"], "Path"),
                channel=_require_str(item["Channel"], "Channel"),
            )
            for item in overrides_raw
        ]
        last_update_raw = data.get("LastVersionDbUpdate")
        last_update = (
            _parse_datetime(last_update_raw) if last_update_raw is not None else None
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid configuration data: missing or bad field {exc}.") from exc
    return JuliaupConfig(
        default=default,
        installed_versions=installed_versions,
        installed_channels=installed_channels,
        settings=settings,
        overrides=overrides,
        last_version_db_update=last_update,
    )


def config_to_dict(config: JuliaupConfig) -> dict[str, Any]:
    """The JSON form of a configuration."""
    settings: dict[str, Any] = {}
    if config.settings.create_channel_symlinks:
        settings["CreateChannelSymlinks"] = True
    if config.settings.versionsdb_update_interval != DEFAULT_VERSIONSDB_UPDATE_INTERVAL:
        settings["VersionsDbUpdateInterval"] = config.settings.versionsdb_update_interval
    result: dict[str, Any] = {
        "Default": config.default,
        "InstalledVersions": {
            key: {"Path": value.path} for key, value in config.installed_versions.items()
        },
        "InstalledChannels": {
            key: _channel_to_dict(value)
            for key, value in config.installed_channels.items()
        },
        "Settings": settings,
        "Overrides": [
            {"Path": item.path, "Channel": item.channel} for item in config.overrides
        ],
    }
    if config.last_version_db_update is not None:
        result["LastVersionDbUpdate"] = _format_datetime(config.last_version_db_update)
    return result


def _dump(config: JuliaupConfig) -> bytes:
    return json.dumps(config_to_dict(config), indent=2).encode("utf-8")


def _parse(raw: bytes, what: str) -> JuliaupConfig:
    try:
        return config_from_dict(json.loads(raw.decode("utf-8")))
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(what) from exc


@dataclass(eq=False)
class JuliaupConfigFile:
    """Configuration opened for change; holds an exclusive lock until closed."""

    file: IO[bytes]
    lock_file: IO[bytes]
    data: JuliaupConfig

    def close(self) -> None:
        """Close the configuration file and release the lock."""
        if not self.file.closed:
            self.file.close()
        if not self.lock_file.closed:
            portalocker.unlock(self.lock_file)
            self.lock_file.close()

    def __enter__(self) -> JuliaupConfigFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class JuliaupReadonlyConfigFile:
    """A snapshot of the configuration, read under a shared lock."""

    data: JuliaupConfig


def _open_lock_file(paths: GlobalPaths) -> IO[bytes]:
    try:
        paths.juliauphome.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError("Could not create juliaup home folder.") from exc
    try:
        return open(paths.lockfile, "a+b")
    except OSError as exc:
        raise OSError(f"Could not create lockfile: {exc}.") from exc


def _acquire(lock_file: IO[bytes], flags: portalocker.LockFlags) -> None:
    try:
        portalocker.lock(lock_file, flags | portalocker.LockFlags.NON_BLOCKING)
    except portalocker.LockException:
        print(_LOCKED_MESSAGE, file=sys.stderr)
        portalocker.lock(lock_file, flags)


def load_config_db(paths: GlobalPaths) -> JuliaupReadonlyConfigFile:
    """Read the configuration; a missing file yields the default configuration."""
    lock_file = _open_lock_file(paths)
    try:
        _acquire(lock_file, portalocker.LockFlags.SHARED)
        try:
            try:
                raw = Path(paths.juliaupconfig).read_bytes()
            except FileNotFoundError:
                data = JuliaupConfig()
            except OSError as exc:
                raise OSError(
                    f"Problem opening the file {str(paths.juliaupconfig)!r}: {exc!r}"
                ) from exc
            else:
                data = _parse(
                    raw,
                    f"Failed to parse configuration file '{paths.juliaupconfig}' for reading.",
                )
        finally:
            portalocker.unlock(lock_file)
    finally:
        lock_file.close()
    return JuliaupReadonlyConfigFile(data=data)


def load_mut_config_db(paths: GlobalPaths) -> JuliaupConfigFile:
    """Open the configuration for change under an exclusive lock, creating it if empty."""
    lock_file = _open_lock_file(paths)
    try:
        _acquire(lock_file, portalocker.LockFlags.EXCLUSIVE)
    except BaseException:
        lock_file.close()
        raise

    file: IO[bytes] | None = None
    try:
        try:
            fd = os.open(paths.juliaupconfig, os.O_RDWR | os.O_CREAT, 0o666)
            file = os.fdopen(fd, "r+b")
        except OSError as exc:
            raise OSError("Failed to open juliaup config file.") from exc

        if file.seek(0, os.SEEK_END) == 0:
            data = JuliaupConfig()
            file.write(_dump(data))
            file.flush()
            os.fsync(file.fileno())
            file.seek(0)
        else:
            file.seek(0)
            data = _parse(file.read(), "Failed to parse configuration file.")
    except BaseException:
        if file is not None:
            file.close()
        portalocker.unlock(lock_file)
        lock_file.close()
        raise

    return JuliaupConfigFile(file=file, lock_file=lock_file, data=data)


def save_config_db(config_file: JuliaupConfigFile) -> None:
    """Replace the file's content with the current configuration data."""
    file = config_file.file
    file.seek(0)
    file.truncate(0)
    file.write(_dump(config_file.data))
    file.flush()
    os.fsync(file.fileno())