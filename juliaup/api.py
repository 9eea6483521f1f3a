"""The machine-readable API command that reports the configured channels as JSON."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any

import semver

from .config_file import LinkedChannel, SystemChannel, load_config_db
from .global_paths import GlobalPaths
from .utils import parse_versionstring

_EXE_SUFFIX = ".exe" if os.name == "nt" else ""
_VERSION_PREFIX = "julia version "


@dataclass
class JuliaupChannelInfo:
    """How to start one channel and which Julia it runs."""

    name: str
    file: str
    args: list[str]
    version: str
    arch: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "File": self.file,
            "Args": list(self.args),
            "Version": self.version,
            "Arch": self.arch,
        }


@dataclass
class JuliaupApiGetinfoReturn:
    """The answer to the getconfig1 API command."""

    default: JuliaupChannelInfo | None = None
    other_versions: list[JuliaupChannelInfo] = field(default_factory=list)

    def to_json(self) -> str:
        """Compact JSON form of the answer."""
        payload = {
            "DefaultChannel": self.default.to_dict() if self.default else None,
            "OtherChannels": [info.to_dict() for info in self.other_versions],
        }
        return json.dumps(payload, separators=(",", ":"))


def _system_channel_info(name, channel: SystemChannel, config, paths) -> JuliaupChannelInfo:
    try:
        platform, version = parse_versionstring(channel.version)
    except ValueError as exc:
        raise ValueError(
            "Encountered invalid version string in the configuration file while "
            "running the getconfig1 API command."
        ) from exc
    installed = config.installed_versions.get(channel.version)
    if installed is None:
        raise ValueError(
            f"The channel '{name}' is configured as a system channel, but no such "
            "channel exists in the versions database."
        )
    binary = paths.juliauphome / installed.path / "bin" / f"julia{_EXE_SUFFIX}"
    return JuliaupChannelInfo(
        name=name,
        file=os.path.normpath(os.path.abspath(binary)),
        args=[],
        version=str(version),
        arch=platform,
    )


def _linked_channel_info(name, channel: LinkedChannel) -> JuliaupChannelInfo | None:
    args = list(channel.args or [])
    try:
        result = subprocess.run(
            [channel.command, *args, "--version"], capture_output=True, check=False
        )
    except OSError:
        return None
    output = result.stdout.decode("utf-8", errors="replace").strip()
    if not output.startswith(_VERSION_PREFIX):
        return None
    version = semver.Version.parse(output[len(_VERSION_PREFIX):])
    return JuliaupChannelInfo(
        name=name, file=channel.command, args=args, version=str(version), arch=""
    )


def run_command_api(command: str, paths: GlobalPaths) -> JuliaupApiGetinfoReturn:
    """Run an API command, print its JSON answer and return it."""
    if command != "getconfig1":
        raise ValueError("Wrong API command.")

    config = load_config_db(paths).data
    result = JuliaupApiGetinfoReturn()

    for name, channel in config.installed_channels.items():
        if isinstance(channel, SystemChannel):
            info = _system_channel_info(name, channel, config, paths)
        else:
            info = _linked_channel_info(name, channel)
            if info is None:
                continue

        if config.default is not None and name == config.default:
            result.default = info
        else:
            result.other_versions.append(info)

    print(result.to_json())
    return result