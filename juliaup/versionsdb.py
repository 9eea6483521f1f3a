"""The versions database: available Julia versions and channels."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import semver

from . import build_info
from .global_paths import GlobalPaths


@dataclass
class JuliaupVersionDBVersion:
    """A downloadable Julia version."""

    url_path: str


@dataclass
class JuliaupVersionDBChannel:
    """A channel and the full version it currently points to."""

    version: str


@dataclass
class JuliaupVersionDB:
    """The whole versions database."""

    available_versions: dict[str, JuliaupVersionDBVersion]
    available_channels: dict[str, JuliaupVersionDBChannel]
    version: str


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Expected a string for {what}, got {value!r}.")
    return value


def versiondb_from_dict(data: Any) -> JuliaupVersionDB:
    """Build a versions database from its decoded JSON form."""
    if not isinstance(data, dict):
        raise ValueError("The versions database must be a JSON object.")
    try:
        versions_raw = data["AvailableVersions"]
        channels_raw = data["AvailableChannels"]
        if not isinstance(versions_raw, dict) or not isinstance(channels_raw, dict):
            raise ValueError("AvailableVersions and AvailableChannels must be objects.")
        return JuliaupVersionDB(
            available_versions={
                key: JuliaupVersionDBVersion(_require_str(value["UrlPath"], "UrlPath"))
                for key, value in versions_raw.items()
            },
            available_channels={
                key: JuliaupVersionDBChannel(_require_str(value["Version"], "Version"))
                for key, value in channels_raw.items()
            },
            version=_require_str(data["Version"], "Version"),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid versions database: missing or bad field {exc}.") from exc


def _read_versiondb(path: Path) -> JuliaupVersionDB:
    with open(path, encoding="utf-8") as fh:
        return versiondb_from_dict(json.load(fh))


def load_vendored_db() -> JuliaupVersionDB:
    """The versions database that ships with the package."""
    path = build_info.BUNDLED_VERSIONDB_PATH
    try:
        return _read_versiondb(path)
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"No vendored version db found at {path}.") from exc
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError("Failed to parse vendored version db.") from exc


def load_versions_db(paths: GlobalPaths) -> JuliaupVersionDB:
    """The local versions database if it is at least as new as the bundled one, else the bundled one."""
    try:
        local = _read_versiondb(paths.versiondb)
    except (OSError, ValueError, UnicodeDecodeError):
        local = None

    if local is not None:
        try:
            version = semver.Version.parse(local.version)
        except ValueError:
            version = None
        if version is not None and version >= build_info.get_bundled_dbversion():
            return local

    return load_vendored_db()