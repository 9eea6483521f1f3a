"""Locations of the configuration, lock file and versions database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .build_info import get_juliaup_target


@dataclass(frozen=True)
class GlobalPaths:
    """All file system locations used by the installation."""

    juliauphome: Path
    juliaupconfig: Path
    lockfile: Path
    versiondb: Path


def _default_juliaup_home_path() -> Path:
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise RuntimeError(
            "Could not determine the path of the user home directory."
        ) from exc
    path = home / ".julia" / "juliaup"
    if not path.is_absolute():
        raise RuntimeError(f"The system returned an invalid home directory path `{path}`.")
    return path


def _juliaup_home_path() -> Path:
    value = os.environ.get("JULIAUP_DEPOT_PATH")
    if value is None:
        return _default_juliaup_home_path()
    value = value.strip()
    if not value:
        return _default_juliaup_home_path()
    path = Path(value)
    if not path.is_absolute():
        raise ValueError(
            f"The current value of '{value}' for the environment variable "
            "JULIAUP_DEPOT_PATH is not an absolute path."
        )
    return path / "juliaup"


def get_paths() -> GlobalPaths:
    """Work out all paths from the environment."""
    juliauphome = _juliaup_home_path()
    return GlobalPaths(
        juliauphome=juliauphome,
        juliaupconfig=juliauphome / "juliaup.json",
        lockfile=juliauphome / ".juliaup-lock",
        versiondb=juliauphome / f"versiondb-{get_juliaup_target()}.json",
    )