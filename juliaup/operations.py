"""Downloading, unpacking and installing Julia versions and the versions database."""

from __future__ import annotations

import contextlib
import json
import os
import shutil
import sys
import tarfile
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urljoin

import requests
import semver
from tqdm import tqdm

from . import build_info
from .config_file import (
    JuliaupConfig,
    JuliaupConfigVersion,
    load_mut_config_db,
    save_config_db,
)
from .global_paths import GlobalPaths
from .utils import get_juliaserver_base_url
from .versionsdb import JuliaupVersionDB, versiondb_from_dict

DBVERSION_URL_PATHS = {
    "release": "juliaup/RELEASECHANNELDBVERSION",
    "releasepreview": "juliaup/RELEASEPREVIEWCHANNELDBVERSION",
    "dev": "juliaup/DEVCHANNELDBVERSION",
}

_CHUNK_SIZE = 64 * 1024
_TIMEOUT = 30


def _components(name: str) -> list[str]:
    """Split an archive member name the way a path is split into components."""
    if name.startswith("/"):
        lead = ["/"]
    elif name == "." or name.startswith("./"):
        lead = ["."]
    else:
        lead = []
    return lead + [part for part in name.split("/") if part not in ("", ".")]


def _member_target(dst: Path, name: str, levels_to_skip: int) -> Path:
    # Only plain names survive, so nothing can land outside dst.
    parts = [
        part
        for part in _components(name)[levels_to_skip:]
        if part not in ("/", ".", "..")
    ]
    return dst.joinpath(*parts)


def unpack_sans_parent(archive: tarfile.TarFile, dst: Path, levels_to_skip: int) -> None:
    """Extract every member of archive below dst, dropping the first path levels."""
    dst = Path(dst)
    for member in archive:
        target = _member_target(dst, member.name, levels_to_skip)
        if member.isdir():
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        if member.issym() or member.islnk():
            if target.is_symlink() or target.exists():
                target.unlink()
            if member.issym():
                os.symlink(member.linkname, target)
            else:
                os.link(_member_target(dst, member.linkname, levels_to_skip), target)
        elif member.isfile():
            if target.is_symlink():
                target.unlink()
            source = archive.extractfile(member)
            with source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)
            os.chmod(target, member.mode & 0o777)


def _get(url: str, **kwargs) -> requests.Response:
    try:
        response = requests.get(url, timeout=_TIMEOUT, **kwargs)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to download from url `{url}`.") from exc
    return response


def download_extract_sans_parent(url: str, target_path: Path, levels_to_skip: int) -> None:
    """Download a .tar.gz archive and unpack it into target_path."""
    response = _get(url, stream=True)
    length = response.headers.get("Content-Length", "")
    total = int(length) if length.isdigit() else None

    with response, tempfile.TemporaryFile() as buffer:
        try:
            with tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                desc="  Downloading:",
                leave=False,
            ) as bar:
                for chunk in response.iter_content(_CHUNK_SIZE):
                    buffer.write(chunk)
                    bar.update(len(chunk))
        except requests.RequestException as exc:
            raise RuntimeError(f"Failed to download from url `{url}`.") from exc
        buffer.seek(0)
        try:
            with tarfile.open(fileobj=buffer, mode="r:gz") as archive:
                unpack_sans_parent(archive, target_path, levels_to_skip)
        except (tarfile.TarError, OSError, EOFError) as exc:
            raise RuntimeError(
                f"Failed to extract downloaded file from url `{url}`."
            ) from exc


def download_juliaup_version(url: str) -> semver.Version:
    """Download a text file that holds a single semantic version."""
    trimmed = _get(url).text.strip()
    try:
        return semver.Version.parse(trimmed)
    except ValueError as exc:
        raise ValueError(
            f"`download_juliaup_version` failed to parse `{trimmed}` as a valid semversion."
        ) from exc


def download_versiondb(url: str, path: Path) -> None:
    """Download a versions database and store it at path."""
    content = _get(url).content
    try:
        Path(path).write_bytes(content)
    except OSError as exc:
        raise OSError(
            f"Failed to open or create version db file at {str(path)!r}"
        ) from exc


def _bundled_julia_dir() -> Path:
    return Path(sys.argv[0]).resolve().parent / "BundledJulia"


def install_version(
    fullversion: str,
    config_data: JuliaupConfig,
    version_db: JuliaupVersionDB,
    paths: GlobalPaths,
) -> None:
    """Make fullversion available in the juliaup home folder and record it."""
    if fullversion in config_data.installed_versions:
        return

    child_target_foldername = f"julia-{fullversion}"
    target_path = paths.juliauphome / child_target_foldername
    target_path.parent.mkdir(parents=True, exist_ok=True)

    bundled_dir = _bundled_julia_dir()
    if fullversion == build_info.get_bundled_julia_version() and bundled_dir.exists():
        shutil.copytree(bundled_dir, target_path, symlinks=True, dirs_exist_ok=True)
    else:
        base = get_juliaserver_base_url()
        entry = version_db.available_versions.get(fullversion)
        if entry is None:
            raise ValueError(
                f"Failed to find download url in versions db for '{fullversion}'."
            )
        download_url = urljoin(base, entry.url_path)
        print(f"Installing Julia {fullversion}", file=sys.stderr)
        download_extract_sans_parent(download_url, target_path, 1)

    config_data.installed_versions[fullversion] = JuliaupConfigVersion(
        path=os.path.join(".", child_target_foldername)
    )


def _local_dbversion(path: Path) -> semver.Version | None:
    try:
        with open(path, encoding="utf-8") as fh:
            db = versiondb_from_dict(json.load(fh))
        return semver.Version.parse(db.version)
    except (OSError, ValueError, UnicodeDecodeError):
        return None


def update_version_db(paths: GlobalPaths) -> None:
    """Fetch a newer versions database from the server when there is one."""
    with load_mut_config_db(paths) as config_file:
        juliaup_channel = "release"
        base = get_juliaserver_base_url()
        dbversion_url_path = DBVERSION_URL_PATHS.get(juliaup_channel)
        if dbversion_url_path is None:
            raise ValueError(
                f"Juliaup is configured to a channel named '{juliaup_channel}' "
                "that does not exist."
            )

        try:
            online_dbversion = download_juliaup_version(urljoin(base, dbversion_url_path))
        except (RuntimeError, ValueError) as exc:
            raise RuntimeError("Failed to download current version db version.") from exc

        config_file.data.last_version_db_update = datetime.now(timezone.utc)
        save_config_db(config_file)

        bundled_dbversion = build_info.get_bundled_dbversion()
        local_dbversion = _local_dbversion(paths.versiondb)

        if online_dbversion > bundled_dbversion:
            if local_dbversion is None or online_dbversion > local_dbversion:
                url = urljoin(
                    base,
                    f"juliaup/versiondb/versiondb-{online_dbversion}-"
                    f"{build_info.get_juliaup_target()}.json",
                )
                try:
                    download_versiondb(url, paths.versiondb)
                except (RuntimeError, OSError) as exc:
                    raise RuntimeError(
                        f"Failed to download new version db from {url}."
                    ) from exc
        elif local_dbversion is not None:
            # The bundled database is current, so a cached copy is not needed.
            with contextlib.suppress(OSError):
                paths.versiondb.unlink()