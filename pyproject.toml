[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "juliaup"
version = "1.11.0"
description = "Julia version manager library and launcher: install, select and start Julia versions by channel."
requires-python = ">=3.10"
keywords = ["julia", "version-manager", "installer", "toolchain", "launcher"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Installation/Setup",
]
dependencies = [
    "portalocker>=2.0",
    "requests>=2.25",
    "semver>=3.0",
    "tqdm>=4.60",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
julialauncher = "juliaup.launcher:main"

[tool.hatch.build.targets.wheel]
packages = ["juliaup"]

[tool.hatch.build.targets.sdist]
include = ["juliaup", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
