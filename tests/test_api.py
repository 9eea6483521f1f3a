import json
import sys
from pathlib import Path

import pytest

from juliaup.api import JuliaupApiGetinfoReturn, JuliaupChannelInfo, run_command_api
from juliaup.config_file import (
    JuliaupConfigVersion,
    LinkedChannel,
    SystemChannel,
    load_mut_config_db,
    save_config_db,
)
from juliaup.global_paths import GlobalPaths

FULL = "1.6.7+0.x64.linux.gnu"
EXE = "julia.exe" if sys.platform.startswith("win") else "julia"


def _paths(tmp_path):
    home = tmp_path / "juliaup"
    return GlobalPaths(
        juliauphome=home,
        juliaupconfig=home / "juliaup.json",
        lockfile=home / ".juliaup-lock",
        versiondb=home / "versiondb-test.json",
    )


def _configure(paths, channels, versions=None, default=None):
    with load_mut_config_db(paths) as config_file:
        config_file.data.installed_channels = channels
        config_file.data.installed_versions = versions or {}
        config_file.data.default = default
        save_config_db(config_file)


def test_wrong_command_raises(tmp_path):
    with pytest.raises(ValueError, match="Wrong API command."):
        run_command_api("getconfig2", _paths(tmp_path))


def test_default_system_channel(tmp_path, capsys):
    paths = _paths(tmp_path)
    _configure(
        paths,
        {"release": SystemChannel(FULL)},
        {FULL: JuliaupConfigVersion(f"./julia-{FULL}")},
        default="release",
    )
    result = run_command_api("getconfig1", paths)
    printed = json.loads(capsys.readouterr().out)
    assert printed["OtherChannels"] == []
    assert printed["DefaultChannel"]["Name"] == "release"
    assert printed["DefaultChannel"]["Version"] == "1.6.7"
    assert printed["DefaultChannel"]["Arch"] == "x64"
    assert printed["DefaultChannel"]["Args"] == []
    assert Path(result.default.file) == paths.juliauphome / f"julia-{FULL}" / "bin" / EXE


def test_non_default_goes_to_other_channels(tmp_path, capsys):
    paths = _paths(tmp_path)
    _configure(
        paths,
        {"lts": SystemChannel(FULL)},
        {FULL: JuliaupConfigVersion(f"./julia-{FULL}")},
    )
    run_command_api("getconfig1", paths)
    printed = json.loads(capsys.readouterr().out)
    assert printed["DefaultChannel"] is None
    assert [c["Name"] for c in printed["OtherChannels"]] == ["lts"]


def test_missing_installed_version_raises(tmp_path):
    paths = _paths(tmp_path)
    _configure(paths, {"release": SystemChannel(FULL)})
    with pytest.raises(ValueError, match="release"):
        run_command_api("getconfig1", paths)


def test_invalid_version_string_raises(tmp_path):
    paths = _paths(tmp_path)
    _configure(paths, {"release": SystemChannel("1.1.1")}, {"1.1.1": JuliaupConfigVersion("./x")})
    with pytest.raises(ValueError):
        run_command_api("getconfig1", paths)


def test_linked_channel_runs_command(tmp_path):
    paths = _paths(tmp_path)
    args = ["-c", "print('julia version 1.9.0')"]
    _configure(paths, {"custom": LinkedChannel(sys.executable, args)}, default="custom")
    result = run_command_api("getconfig1", paths)
    assert result.default.file == sys.executable
    assert result.default.args == args
    assert result.default.version == "1.9.0"
    assert result.default.arch == ""


def test_linked_channel_with_unexpected_output_is_skipped(tmp_path):
    paths = _paths(tmp_path)
    _configure(paths, {"custom": LinkedChannel(sys.executable, ["-c", "print('hello')"])})
    result = run_command_api("getconfig1", paths)
    assert result.default is None
    assert result.other_versions == []


def test_linked_channel_missing_command_is_skipped(tmp_path):
    paths = _paths(tmp_path)
    _configure(paths, {"gone": LinkedChannel(str(tmp_path / "no-such-binary"), None)})
    assert run_command_api("getconfig1", paths).other_versions == []


def test_to_json_is_compact_with_wire_keys():
    answer = JuliaupApiGetinfoReturn(
        default=None,
        other_versions=[JuliaupChannelInfo("a", "/bin/julia", [], "1.0.0", "x64")],
    )
    text = answer.to_json()
    assert " " not in text
    assert json.loads(text) == {
        "DefaultChannel": None,
        "OtherChannels": [
            {"Name": "a", "File": "/bin/julia", "Args": [], "Version": "1.0.0", "Arch": "x64"}
        ],
    }