"""Helpers for server URLs, binary folder, architecture and version strings."""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path
from urllib.parse import urlsplit

import semver

DEFAULT_SERVER = "https://julialang-s3.julialang.org"

_ARCH_NAMES = {
    "x86": "x86",
    "i386": "x86",
    "i686": "x86",
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def get_juliaserver_base_url() -> str:
    """The base URL of the download server, always ending in '/'."""
    base_url = os.environ.get("JULIAUP_SERVER", DEFAULT_SERVER)
    if not base_url.endswith("/"):
        base_url += "/"
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(
            f"Failed to parse the value of JULIAUP_SERVER '{base_url}' as a uri."
        )
    return base_url


def get_bin_dir() -> Path:
    """The folder in which channel symlinks are placed."""
    value = os.environ.get("JULIAUP_BIN_DIR")
    if value is not None:
        path = Path(value.split(os.pathsep)[0])
        if not path.is_absolute():
            raise ValueError(
                "The `JULIAUP_BIN_DIR` environment variable contains a value that "
                f"resolves to an an invalid path `{path}`."
            )
        return path

    path = Path(sys.argv[0]).resolve().parent
    try:
        home_dir = Path.home()
    except RuntimeError:
        return path
    if not path.is_relative_to(home_dir):
        path = home_dir / ".local" / "bin"
        if not path.is_absolute():
            raise RuntimeError(
                f"The system returned an invalid home directory path `{path}`."
            )
    return path


def get_arch() -> str:
    """The architecture name as used in Julia version strings."""
    machine = platform.machine()
    try:
        return _ARCH_NAMES[machine.lower()]
    except KeyError:
        raise ValueError(f"Running on an unknown arch: {machine}.") from None


def parse_versionstring(value: str) -> tuple[str, semver.Version]:
    """Split a full version string into its platform and its version without build data."""
    version = semver.Version.parse(value)
    build_parts = (version.build or "").split(".")
    if len(build_parts) != 4:
        raise ValueError(
            f"`{value}` is an invalid version specifier: the build part must have four parts."
        )
    return build_parts[1], version.replace(build=None)