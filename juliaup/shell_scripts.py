"""Maintain the managed PATH section in shell startup scripts."""

from __future__ import annotations

import sys
from pathlib import Path

S_MARKER = b"# >>> juliaup initialize >>>"
E_MARKER = b"# <<< juliaup initialize <<<"
HEADER = b"\n\n# !! Contents within this block are managed by juliaup !!\n\n"

_SCRIPT_NAMES = (".bashrc", ".profile", ".bash_profile", ".bash_login", ".zshrc")


def _zsh_content(path_str: str) -> str:
    return f"path=('{path_str}' $path)\nexport PATH\n"


def _sh_content(path_str: str) -> str:
    # Prepend only if the folder is not already on PATH; append ':$PATH' only if PATH is set.
    return (
        'case ":$PATH:" in\n'
        f"    *:{path_str}:*)\n"
        "        ;;\n"
        "\n"
        "    *)\n"
        f"        export PATH={path_str}${{PATH:+:${{PATH}}}}\n"
        "        ;;\n"
        "esac\n"
    )


def match_markers(buffer: bytes) -> tuple[int, int] | None:
    """Locate the managed section: (start, end) offsets, or None when there is none."""
    start = buffer.find(S_MARKER)
    end = buffer.find(E_MARKER)
    if start == -1 and end == -1:
        return None
    if end == -1 or start == -1:
        raise ValueError("Found an opening marker but no end marker of juliaup section.")
    if start != buffer.rfind(S_MARKER) or end != buffer.rfind(E_MARKER):
        raise ValueError("Found multiple startup script sections from juliaup.")
    return start, end + len(E_MARKER)


def get_shell_script_juliaup_content(bin_path: Path, path: Path) -> bytes:
    """The managed section that puts bin_path on PATH, in the syntax that suits the script."""
    try:
        bin_path_str = str(bin_path)
        bin_path_str.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError(
            "Could not create UTF-8 string from passed-in binary application path. "
            "Currently only valid UTF-8 paths are supported"
        ) from None

    if Path(path).name == ".zshrc":
        body = _zsh_content(bin_path_str)
    else:
        body = _sh_content(bin_path_str)
    return S_MARKER + HEADER + body.encode("utf-8") + b"\n" + E_MARKER


def add_path_to_specific_file(bin_path: Path, path: Path) -> None:
    """Insert or replace the managed section in one script, creating it if needed."""
    path = Path(path)
    path.touch(exist_ok=True)
    buffer = path.read_bytes()

    try:
        existing = match_markers(buffer)
    except ValueError as exc:
        raise ValueError(
            f"Error occured while searching juliaup shell startup script section in {path}"
        ) from exc

    new_content = get_shell_script_juliaup_content(bin_path, path)

    if existing is None:
        buffer = buffer + b"\n" + new_content + b"\n"
    else:
        start, end = existing
        buffer = buffer[:start] + new_content + buffer[end:]

    path.write_bytes(buffer)


def remove_path_from_specific_file(path: Path) -> None:
    """Remove the managed section from one script, if it has one."""
    path = Path(path)
    buffer = path.read_bytes()

    try:
        existing = match_markers(buffer)
    except ValueError as exc:
        raise ValueError(
            f"Error occured while searching juliaup shell startup script section in {path}"
        ) from exc

    if existing is not None:
        start, end = existing
        path.write_bytes(buffer[:start] + buffer[end:])


def find_shell_scripts_to_be_modified(add_case: bool) -> list[Path]:
    """The startup scripts in the home folder that should carry the managed section."""
    home_dir = Path.home()
    # On macOS zsh is the default shell, so .zshrc is always edited when adding.
    always_zshrc = add_case and sys.platform == "darwin"
    return [
        p
        for p in (home_dir / name for name in _SCRIPT_NAMES)
        if p.exists() or (always_zshrc and p.name == ".zshrc")
    ]


def add_binfolder_to_path_in_shell_scripts(bin_path: Path) -> None:
    """Add bin_path to PATH in every relevant startup script."""
    for p in find_shell_scripts_to_be_modified(True):
        add_path_to_specific_file(bin_path, p)


def remove_binfolder_from_path_in_shell_scripts() -> None:
    """Remove the managed section from every existing startup script."""
    for p in find_shell_scripts_to_be_modified(False):
        remove_path_from_specific_file(p)