import json
import signal
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from juliaup.config_file import (
    JuliaupConfig,
    JuliaupConfigSettings,
    JuliaupConfigVersion,
    JuliaupOverride,
    JuliaupReadonlyConfigFile,
    LinkedChannel,
    SystemChannel,
    config_to_dict,
)
from juliaup.launcher import (
    JuliaupChannelSource,
    UserError,
    check_channel_uptodate,
    get_julia_path_from_channel,
    get_override_channel,
    main,
    run_versiondb_update,
)
from juliaup.versionsdb import JuliaupVersionDB, JuliaupVersionDBChannel


def _printer(version):
    return LinkedChannel(
        command=sys.executable,
        args=["-c", f"import sys; sys.stdout.write('{version}')"],
    )


@pytest.fixture
def depot(tmp_path, monkeypatch):
    monkeypatch.setenv("JULIAUP_DEPOT_PATH", str(tmp_path))
    monkeypatch.delenv("JULIAUP_CHANNEL", raising=False)
    home = tmp_path / "juliaup"
    home.mkdir()
    config = JuliaupConfig(
        default="1.6.7",
        installed_channels={
            "1.6.7": _printer("1.6.7"),
            "1.7.3": _printer("1.7.3"),
            "1.8.5": _printer("1.8.5"),
        },
        settings=JuliaupConfigSettings(versionsdb_update_interval=0),
    )
    (home / "juliaup.json").write_text(json.dumps(config_to_dict(config)))
    from juliaup.build_info import get_juliaup_target

    (home / f"versiondb-{get_juliaup_target()}.json").write_text(
        json.dumps({"AvailableVersions": {}, "AvailableChannels": {}, "Version": "999.0.0"})
    )
    previous = signal.getsignal(signal.SIGINT)
    yield tmp_path
    signal.signal(signal.SIGINT, previous)


def test_default_channel(depot, capfd):
    assert main(["-e", "print(VERSION)"]) == 0
    assert capfd.readouterr().out == "1.6.7"


def test_cmdline_channel(depot, capfd):
    assert main(["+1.8.5", "-e", "print(VERSION)"]) == 0
    assert capfd.readouterr().out == "1.8.5"


def test_env_channel(depot, capfd, monkeypatch):
    monkeypatch.setenv("JULIAUP_CHANNEL", "1.7.3")
    assert main(["-e", "print(VERSION)"]) == 0
    assert capfd.readouterr().out == "1.7.3"


def test_cmdline_beats_env(depot, capfd, monkeypatch):
    monkeypatch.setenv("JULIAUP_CHANNEL", "1.7.3")
    assert main(["+1.8.5", "-e", "print(VERSION)"]) == 0
    assert capfd.readouterr().out == "1.8.5"


def test_invalid_cmdline_channel(depot, capfd):
    assert main(["+1.8.6", "-e", "print(VERSION)"]) == 1
    assert capfd.readouterr().err == "ERROR: Invalid Juliaup channel `1.8.6` at command line.\n"


def test_invalid_env_channel(depot, capfd, monkeypatch):
    monkeypatch.setenv("JULIAUP_CHANNEL", "1.7.4")
    assert main(["-e", "print(VERSION)"]) == 1
    assert (
        capfd.readouterr().err
        == "ERROR: Invalid Juliaup channel `1.7.4` in environment variable JULIAUP_CHANNEL.\n"
    )


def test_invalid_cmdline_beats_env(depot, capfd, monkeypatch):
    monkeypatch.setenv("JULIAUP_CHANNEL", "1.7.4")
    assert main(["+1.8.6", "-e", "print(VERSION)"]) == 1
    assert capfd.readouterr().err == "ERROR: Invalid Juliaup channel `1.8.6` at command line.\n"


def test_exit_code_is_passed_on(depot, capfd):
    config_path = depot / "juliaup" / "juliaup.json"
    data = json.loads(config_path.read_text())
    data["InstalledChannels"]["fail"] = {
        "Command": sys.executable,
        "Args": ["-c", "import sys; sys.exit(3)"],
    }
    config_path.write_text(json.dumps(data))
    assert main(["+fail"]) == 3


def _db(channels):
    return JuliaupVersionDB(
        available_versions={},
        available_channels={k: JuliaupVersionDBChannel(v) for k, v in channels.items()},
        version="1.0.0",
    )


def test_override_source_error():
    with pytest.raises(UserError) as info:
        get_julia_path_from_channel(
            _db({}), JuliaupConfig(), "x", Path("/a/juliaup.json"),
            JuliaupChannelSource.OVERRIDE,
        )
    assert info.value.msg == "ERROR: Invalid Juliaup channel `x` in directory override."


def test_default_source_error_is_not_user_error():
    with pytest.raises(RuntimeError):
        get_julia_path_from_channel(
            _db({}), JuliaupConfig(), "x", Path("/a/juliaup.json"),
            JuliaupChannelSource.DEFAULT,
        )


def test_linked_channel_path():
    config = JuliaupConfig(
        installed_channels={"mine": LinkedChannel(command="/opt/julia", args=["-q"])}
    )
    path, args = get_julia_path_from_channel(
        _db({}), config, "mine", Path("/a/juliaup.json"), JuliaupChannelSource.CMD_LINE
    )
    assert path == Path("/opt/julia")
    assert args == ["-q"]


def test_system_channel_path(tmp_path, capsys):
    version = "1.6.7+0.x64.linux.gnu"
    config = JuliaupConfig(
        installed_versions={version: JuliaupConfigVersion(path=f"./julia-{version}")},
        installed_channels={"1.6": SystemChannel(version=version)},
    )
    path, args = get_julia_path_from_channel(
        _db({"1.6": version}), config, "1.6", tmp_path / "juliaup.json",
        JuliaupChannelSource.DEFAULT,
    )
    assert path.parent == tmp_path / f"julia-{version}" / "bin"
    assert path.name.startswith("julia")
    assert args == []
    assert capsys.readouterr().err == ""


def test_system_channel_not_installed(tmp_path):
    config = JuliaupConfig(installed_channels={"1.6": SystemChannel(version="1.6.7")})
    with pytest.raises(RuntimeError):
        get_julia_path_from_channel(
            _db({"1.6": "1.6.7"}), config, "1.6", tmp_path / "juliaup.json",
            JuliaupChannelSource.DEFAULT,
        )


def test_check_channel_uptodate_notice(capsys):
    check_channel_uptodate("release", "1.6.0", _db({"release": "1.9.0"}))
    err = capsys.readouterr().err
    assert "juliaup update" in err
    assert "1.9.0" in err


def test_check_channel_uptodate_missing():
    with pytest.raises(ValueError):
        check_channel_uptodate("nope", "1.0.0", _db({}))


def test_override_channel_most_specific(tmp_path, monkeypatch):
    parent = tmp_path.resolve()
    child = parent / "child"
    child.mkdir()
    config = JuliaupReadonlyConfigFile(
        data=JuliaupConfig(
            overrides=[
                JuliaupOverride(path=str(parent), channel="1.7.3"),
                JuliaupOverride(path=str(child), channel="1.8.5"),
            ]
        )
    )
    monkeypatch.chdir(parent)
    assert get_override_channel(config) == "1.7.3"
    monkeypatch.chdir(child)
    assert get_override_channel(config) == "1.8.5"


def test_override_channel_none(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = JuliaupReadonlyConfigFile(data=JuliaupConfig())
    assert get_override_channel(config) is None


def test_versiondb_update_disabled():
    config = JuliaupReadonlyConfigFile(
        data=JuliaupConfig(settings=JuliaupConfigSettings(versionsdb_update_interval=0))
    )
    assert run_versiondb_update(config) is False


def test_versiondb_update_not_due():
    config = JuliaupReadonlyConfigFile(
        data=JuliaupConfig(
            last_version_db_update=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
    )
    assert run_versiondb_update(config) is False