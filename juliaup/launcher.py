"""The Julia launcher: pick a channel, start its Julia and pass on its exit status."""

from __future__ import annotations

import enum
import os
import signal
import subprocess
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .config_file import (
    JuliaupConfig,
    JuliaupReadonlyConfigFile,
    LinkedChannel,
    load_config_db,
)
from .global_paths import get_paths
from .versionsdb import JuliaupVersionDB, load_versions_db

_EXE_SUFFIX = ".exe" if os.name == "nt" else ""

INITIAL_SETUP_COMMAND = "46029ef5-0b73-4a71-bff3-d0d05de42aac"
UPDATE_VERSION_DB_COMMAND = "0cf1528f-0b15-46b1-9ac9-e5bf5ccccbcf"


class UserError(Exception):
    """An error caused by the user's input; reported without a traceback."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class JuliaupChannelSource(enum.Enum):
    """Where the channel to launch was taken from."""

    CMD_LINE = "cmdline"
    ENV_VAR = "envvar"
    OVERRIDE = "override"
    DEFAULT = "default"


def _juliaup_path() -> Path:
    own_path = Path(sys.argv[0]).resolve()
    return own_path.parent / f"juliaup{_EXE_SUFFIX}"


def do_initial_setup(juliaupconfig_path: Path) -> None:
    """Run the first-time setup of juliaup when no configuration exists yet."""
    if Path(juliaupconfig_path).exists():
        return
    try:
        subprocess.run([str(_juliaup_path()), INITIAL_SETUP_COMMAND], check=False)
    except OSError as exc:
        raise RuntimeError("Failed to start juliaup for the initial setup.") from exc


def run_versiondb_update(config_file: JuliaupReadonlyConfigFile) -> bool:
    """Start a background versions database update when one is due; return whether it started."""
    interval = config_file.data.settings.versionsdb_update_interval
    if interval <= 0:
        return False

    last_update = config_file.data.last_version_db_update
    if last_update is not None:
        if last_update.tzinfo is None:
            last_update = last_update.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) < last_update + timedelta(minutes=interval):
            return False

    try:
        subprocess.Popen(
            [str(_juliaup_path()), UPDATE_VERSION_DB_COMMAND],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise RuntimeError("Failed to start juliaup for version db update.") from exc
    return True


def check_channel_uptodate(
    channel: str, current_version: str, versions_db: JuliaupVersionDB
) -> None:
    """Tell the user when a newer Julia is available for the channel."""
    entry = versions_db.available_channels.get(channel)
    if entry is None:
        raise ValueError(
            f"The channel `{channel}` does not exist in the versions database."
        )
    latest_version = entry.version
    if latest_version != current_version:
        print(
            f"The latest version of Julia in the `{channel}` channel is {latest_version}. "
            f"You currently have `{current_version}` installed. Run:",
            file=sys.stderr,
        )
        print(file=sys.stderr)
        print("  juliaup update", file=sys.stderr)
        print(file=sys.stderr)
        print(
            f"to install Julia {latest_version} and update the `{channel}` channel "
            "to that version.",
            file=sys.stderr,
        )


def _missing_channel_error(channel: str, source: JuliaupChannelSource) -> Exception:
    if source is JuliaupChannelSource.CMD_LINE:
        return UserError(f"ERROR: Invalid Juliaup channel `{channel}` at command line.")
    if source is JuliaupChannelSource.ENV_VAR:
        return UserError(
            f"ERROR: Invalid Juliaup channel `{channel}` in environment variable "
            "JULIAUP_CHANNEL."
        )
    if source is JuliaupChannelSource.OVERRIDE:
        return UserError(
            f"ERROR: Invalid Juliaup channel `{channel}` in directory override."
        )
    return RuntimeError(
        "The Juliaup configuration is in an inconsistent state, the currently "
        f"configured default channel `{channel}` is not installed."
    )


def get_julia_path_from_channel(
    versions_db: JuliaupVersionDB,
    config_data: JuliaupConfig,
    channel: str,
    juliaupconfig_path: Path,
    juliaup_channel_source: JuliaupChannelSource,
) -> tuple[Path, list[str]]:
    """The Julia binary and its leading arguments for a channel."""
    channel_info = config_data.installed_channels.get(channel)
    if channel_info is None:
        raise _missing_channel_error(channel, juliaup_channel_source)

    if isinstance(channel_info, LinkedChannel):
        return Path(channel_info.command), list(channel_info.args or [])

    version = channel_info.version
    installed = config_data.installed_versions.get(version)
    if installed is None:
        raise RuntimeError(
            "The juliaup configuration is in an inconsistent state, the channel "
            f"{channel} is pointing to Julia version {version}, which is not installed."
        )

    try:
        check_channel_uptodate(channel, version, versions_db)
    except ValueError as exc:
        raise RuntimeError(
            "The Julia launcher failed while checking whether the channe "
            f"{channel} is up-to-date."
        ) from exc

    binary = (
        Path(juliaupconfig_path).parent / installed.path / "bin" / f"julia{_EXE_SUFFIX}"
    )
    return Path(os.path.normpath(os.path.abspath(binary))), []


def get_override_channel(config_file: JuliaupReadonlyConfigFile) -> str | None:
    """The channel of the most specific override that covers the current folder."""
    curr_dir = Path.cwd().resolve()
    matching = sorted(
        (
            item
            for item in config_file.data.overrides
            if curr_dir.is_relative_to(Path(item.path))
        ),
        key=lambda item: len(item.path),
    )
    return matching[-1].channel if matching else None


def _set_console_title() -> None:
    if sys.stdout.isatty():
        sys.stdout.write("\x1b]0;Julia\x07")
        sys.stdout.flush()


def _ignore_sigint(signum, frame) -> None:
    # The Julia child process handles Ctrl-C itself.
    return None


def _reraise_signal(signum: int) -> None:
    try:
        sig = signal.Signals(signum)
    except ValueError:
        raise RuntimeError(f"Unknown signal value {signum}.") from None
    try:
        signal.signal(sig, signal.SIG_DFL)
    except (OSError, ValueError):
        pass
    # Raised twice: SIGSEGV and SIGBUS need a second delivery once the default action is in place.
    os.kill(os.getpid(), sig)
    os.kill(os.getpid(), sig)
    raise RuntimeError("Maybe we should never reach this?")


def run_app(argv: list[str] | None = None) -> int:
    """Start Julia for the selected channel and return its exit code."""
    args = list(sys.argv[1:] if argv is None else argv)

    _set_console_title()

    paths = get_paths()

    try:
        do_initial_setup(paths.juliaupconfig)
    except Exception as exc:
        raise RuntimeError(
            "The Julia launcher failed to run the initial setup steps."
        ) from exc

    try:
        config_file = load_config_db(paths)
    except Exception as exc:
        raise RuntimeError(
            "The Julia launcher failed to load a configuration file."
        ) from exc

    try:
        versiondb_data = load_versions_db(paths)
    except Exception as exc:
        raise RuntimeError("The Julia launcher failed to load a versions db.") from exc

    channel_from_cmd_line = args[0][1:] if args and args[0].startswith("+") else None

    env_channel = os.environ.get("JULIAUP_CHANNEL")
    try:
        override_channel = get_override_channel(config_file)
    except OSError:
        override_channel = None

    if channel_from_cmd_line is not None:
        channel, source = channel_from_cmd_line, JuliaupChannelSource.CMD_LINE
    elif env_channel is not None:
        channel, source = env_channel, JuliaupChannelSource.ENV_VAR
    elif override_channel is not None:
        channel, source = override_channel, JuliaupChannelSource.OVERRIDE
    elif config_file.data.default is not None:
        channel, source = config_file.data.default, JuliaupChannelSource.DEFAULT
    else:
        raise RuntimeError(
            "The Julia launcher failed to figure out which juliaup channel to use."
        )

    try:
        julia_path, julia_args = get_julia_path_from_channel(
            versiondb_data, config_file.data, channel, paths.juliaupconfig, source
        )
    except UserError:
        raise
    except Exception as exc:
        raise RuntimeError(
            "The Julia launcher failed to determine the command for the "
            f"`{channel}` channel."
        ) from exc

    new_args = list(julia_args)
    new_args.extend(
        value
        for index, value in enumerate(args)
        if index > 1 or not value.startswith("+")
    )

    signal.signal(signal.SIGINT, _ignore_sigint)

    try:
        child = subprocess.Popen([str(julia_path), *new_args])
    except OSError as exc:
        raise RuntimeError("The Julia launcher failed to start Julia.") from exc

    try:
        run_versiondb_update(config_file)
    except Exception as exc:
        raise RuntimeError("Failed to run version db update") from exc

    code = child.wait()
    if code >= 0:
        return code
    if os.name == "nt":
        raise RuntimeError(
            "There is no exit code, that should not be possible on Windows."
        )
    _reraise_signal(-code)
    return code


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the exit code of Julia."""
    try:
        return run_app(argv)
    except UserError as err:
        print(err.msg, file=sys.stderr)
        return 1