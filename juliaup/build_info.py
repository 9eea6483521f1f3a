"""Facts fixed when the package is built: own version, target triple and bundled versions database."""

from __future__ import annotations

import json
import platform
import sys
from importlib import metadata
from pathlib import Path
from typing import Any

import semver

_ARCHES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
}


def _detect_target() -> str:
    machine = platform.machine().lower()
    arch = _ARCHES.get(machine, machine or "unknown")
    if sys.platform == "darwin":
        rest = "apple-darwin"
    elif sys.platform.startswith("win"):
        rest = "pc-windows-msvc"
    elif sys.platform.startswith("freebsd"):
        rest = "unknown-freebsd"
    else:
        rest = "unknown-linux-gnu"
    return f"{arch}-{rest}"


JULIAUP_TARGET = _detect_target()

BUNDLED_VERSIONDB_PATH = (
    Path(__file__).with_name("versiondb") / f"versiondb-{JULIAUP_TARGET}.json"
)


def _read_bundled_versiondb() -> dict[str, Any] | None:
    """Return the bundled versions database, or None when none ships with the package."""
    try:
        with open(BUNDLED_VERSIONDB_PATH, encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return None


def get_bundled_julia_version() -> str:
    """The Julia version of the release channel in the bundled database, or '' if there is none."""
    data = _read_bundled_versiondb()
    if data is None:
        return ""
    return str(data["AvailableChannels"]["release"]["Version"])


def get_bundled_dbversion() -> semver.Version:
    """The version of the bundled database; 0.0.0 when no database is bundled."""
    data = _read_bundled_versiondb()
    if data is None:
        return semver.Version(0, 0, 0)
    try:
        return semver.Version.parse(str(data["Version"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise ValueError("Failed to parse our own db version.") from exc


def get_juliaup_target() -> str:
    """The platform triple this installation manages Julia for."""
    return JULIAUP_TARGET


def get_own_version() -> semver.Version:
    """The version of this package as a semantic version."""
    try:
        text = metadata.version("juliaup")
    except metadata.PackageNotFoundError:
        text = "0.0.0"
    try:
        return semver.Version.parse(text)
    except ValueError as exc:
        raise ValueError("Failed to parse our own version.") from exc