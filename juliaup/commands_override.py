"""Commands that manage per-directory channel overrides."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .config_file import (
    JuliaupOverride,
    load_config_db,
    load_mut_config_db,
    save_config_db,
)
from .global_paths import GlobalPaths


def _table(titles: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [
        max([len(title), *(len(row[i]) for row in rows)])
        for i, title in enumerate(titles)
    ]

    def line(cells: Sequence[str]) -> str:
        return "".join(f" {cell.ljust(width)} " for cell, width in zip(cells, widths))

    header = line(titles)
    lines = [header, "-" * len(header), *(line(row) for row in rows)]
    return "".join(f"{text}\n" for text in lines)


def _target_path(path: str | None) -> Path:
    return (Path(path) if path is not None else Path.cwd()).resolve(strict=True)


def run_command_override_status(paths: GlobalPaths) -> None:
    """Print a table of all directory overrides."""
    config = load_config_db(paths).data
    rows = [
        (str(Path(item.path)), item.channel)
        for item in sorted(config.overrides, key=lambda item: item.path)
    ]
    print(_table(("Path", "Channel"), rows), end="")


def run_command_override_set(
    paths: GlobalPaths, channel: str, path: str | None
) -> None:
    """Use channel in the given folder (or the current one) and below it."""
    with load_mut_config_db(paths) as config_file:
        data = config_file.data
        if channel not in data.installed_channels:
            raise ValueError(f"'{channel}' channel does not exist.")

        target = str(_target_path(path))
        if any(item.path == target for item in data.overrides):
            raise ValueError(f"'{channel}' path already has an override configured.")

        data.overrides.append(JuliaupOverride(path=target, channel=channel))
        save_config_db(config_file)


def run_command_override_unset(
    paths: GlobalPaths, nonexistent: bool, path: str | None
) -> None:
    """Remove the override of a folder, or all overrides of folders that no longer exist."""
    with load_mut_config_db(paths) as config_file:
        data = config_file.data
        target = _target_path(path)
        if nonexistent:
            data.overrides = [item for item in data.overrides if Path(item.path).is_dir()]
        else:
            data.overrides = [item for item in data.overrides if Path(item.path) != target]
        save_config_db(config_file)