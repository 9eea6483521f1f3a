# juliaup

A library for managing local Julia installations by *channel* (`release`,
`1.6`, `1.8.5`, …), together with `julialauncher`, a command that starts
the right Julia for the channel you choose.

## Installation

```
pip install juliaup
```

This installs one command, `julialauncher`, and the `juliaup` Python package.

## Starting Julia

```
julialauncher                          # use the selected channel
julialauncher +1.8.5 -e 'print(VERSION)'
```

The channel is chosen in this order:

1. a `+channel` first argument,
2. the `JULIAUP_CHANNEL` environment variable,
3. a directory override covering the current directory (the longest matching
   path wins),
4. the configured default.

An unknown channel given on the command line, in `JULIAUP_CHANNEL` or in an
override is reported as, for example,

```
ERROR: Invalid Juliaup channel `1.8.6` at command line.
```

and the launcher exits with status 1. All remaining arguments are passed on
to Julia, after any arguments stored with a linked channel. The launcher
returns Julia's exit code; if Julia was killed by a signal, the launcher
raises the same signal on itself. Ctrl-C is left to Julia.

When a system channel's version differs from the one the versions database
lists for that channel, the launcher says so on standard error and suggests
updating.

## Using the library

All locations come from `juliaup.global_paths.get_paths()`, which returns a
`GlobalPaths` with `juliauphome`, `juliaupconfig`, `lockfile` and
`versiondb`.

```python
from juliaup.global_paths import get_paths
from juliaup.config_file import load_config_db, load_mut_config_db, save_config_db
from juliaup.versionsdb import load_versions_db
from juliaup.operations import install_version, update_version_db
from juliaup.config_file import SystemChannel

paths = get_paths()

update_version_db(paths)                 # fetch a newer versions database if there is one
db = load_versions_db(paths)
fullversion = db.available_channels["release"].version

with load_mut_config_db(paths) as cfg:   # exclusive lock until the block ends
    install_version(fullversion, cfg.data, db, paths)
    cfg.data.installed_channels["release"] = SystemChannel(version=fullversion)
    cfg.data.default = cfg.data.default or "release"
    save_config_db(cfg)

print(load_config_db(paths).data.default)  # read under a shared lock
```

The modules:

- `juliaup.config_file` – the configuration model (`JuliaupConfig`,
  `SystemChannel`, `LinkedChannel`, `JuliaupConfigSettings`,
  `JuliaupOverride`, …), `config_from_dict` / `config_to_dict`, and locked
  access with `load_config_db`, `load_mut_config_db` and `save_config_db`.
- `juliaup.versionsdb` – the versions database model, `load_vendored_db()`
  and `load_versions_db(paths)`, which uses the downloaded database when it is
  at least as new as the bundled one.
- `juliaup.operations` – `download_extract_sans_parent`,
  `download_juliaup_version`, `download_versiondb`, `unpack_sans_parent`,
  `install_version` and `update_version_db`.
- `juliaup.commands_override` – directory overrides:
  `run_command_override_set(paths, channel, path)`,
  `run_command_override_unset(paths, nonexistent, path)` and
  `run_command_override_status(paths)`, which prints a table of paths and
  channels.
- `juliaup.api` – `run_command_api("getconfig1", paths)` prints the
  installed channels as compact JSON (`DefaultChannel`, `OtherChannels`) and
  returns them. Linked channels are included only if running them with
  `--version` prints `julia version …`.
- `juliaup.shell_scripts` – adds or removes a marked block in `.bashrc`,
  `.profile`, `.bash_profile`, `.bash_login` and `.zshrc` that puts a folder
  on `PATH`.
- `juliaup.utils` – `get_juliaserver_base_url`, `get_bin_dir`, `get_arch`
  and `parse_versionstring`.
- `juliaup.build_info` – the package version, the platform target and the
  bundled versions database.
- `juliaup.launcher` – the `julialauncher` command (`main(argv=None)`).

## Bundled versions database

The bundled database is read from
`juliaup/versiondb/versiondb-<target>.json` inside the package. If no such
file is present, its version counts as `0.0.0`, so any downloaded database is
preferred, and `load_vendored_db()` raises `FileNotFoundError`.

## What this package does not do

There is no `juliaup` management command here. Adding, removing and
updating channels, setting the default, linking custom binaries, listing
channels, showing status, garbage-collecting versions and changing settings
are not provided as commands; only the library functions above exist.

The launcher expects a `juliaup` program next to itself: when no
configuration file exists yet it runs that program to do the first-time
setup, and when the versions database update interval has passed it starts
that program in the background to refresh the database. This package does not
supply that program.

## Environment variables

| Variable             | Meaning |
|----------------------|---------|
| `JULIAUP_DEPOT_PATH` | Absolute path of the depot; data goes to `<depot>/juliaup`. Defaults to `~/.julia`. |
| `JULIAUP_SERVER`     | Base URL of the server that hosts Julia downloads and the versions database. |
| `JULIAUP_BIN_DIR`    | Absolute directory returned by `get_bin_dir()`. |
| `JULIAUP_CHANNEL`    | Channel used by `julialauncher` when none is given on the command line. |

## Files

Everything lives under the juliaup home folder:

- `juliaup.json` – installed versions, channels, default, overrides and settings;
- `versiondb-<target>.json` – a downloaded versions database;
- `julia-<version>/` – installed Julia trees;
- `.juliaup-lock` – the lock that keeps concurrent runs from clashing.

## Running the tests

```
pip install "juliaup[test]"
pytest
```