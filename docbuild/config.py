"""Build configuration for the appledoc invocation."""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence
import json
import os
import shutil
import tomllib

import yaml


SOURCE_ROOT_VARIABLES = ("JPSOURCE_ROOT", "SOURCE_ROOT", "SRCROOT")
DEST_DIR_VARIABLES = ("DERIVED_FILE_DIR", "DERIVED_FILES_DIR", "DOCBUILD_OUTPUT_DIR")
EXECUTABLE_VARIABLE = "APPLEDOC"

SETTINGS_SECTION = "docbuild"
SOURCE_SUBDIR = ("json", "ObjC")

DEFAULT_EXECUTABLE = "/usr/local/bin/appledoc"
DEFAULT_OUTPUT_FLAGS = (
    "--no-create-docset",
    "--keep-intermediate-files",
    "--create-html",
)
DEFAULT_WARNING_FLAGS = (
    "--warn-undocumented-object",
    "--warn-undocumented-member",
    "--warn-empty-description",
    "--warn-unknown-directive",
    "--warn-invalid-crossref",
    "--warn-missing-arg",
)
DEFAULT_BEHAVIOR_FLAGS = (
    "--no-repeat-first-par",
    "--no-keep-undocumented-objects",
    "--no-keep-undocumented-members",
    "--prefix-merged-sections",
    "--no-search-undocumented-doc",
    "--explicit-crossref",
)


class ConfigurationError(ValueError):
    """Raised when the build configuration is missing or invalid."""


def canonicalize(path: str | os.PathLike[str]) -> Path:
    """Return ``path`` as an absolute path with ``.`` and ``..`` resolved."""

    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(path)))))


def _first_set(env: Mapping[str, str], names: Sequence[str]) -> str | None:
    for name in names:
        value = env.get(name)
        if value and value.strip():
            return value
    return None


@dataclass(frozen=True, slots=True)
class BuildConfig:
    source_root: Path
    dest_dir: Path
    project_name: str = "JPJson"
    project_version: str = "0.1"
    company_name: str = "|–|"
    executable: str = DEFAULT_EXECUTABLE
    exclude_patterns: tuple[str, ...] = (".m",)
    output_flags: tuple[str, ...] = DEFAULT_OUTPUT_FLAGS
    warning_flags: tuple[str, ...] = DEFAULT_WARNING_FLAGS
    behavior_flags: tuple[str, ...] = DEFAULT_BEHAVIOR_FLAGS
    log_format: str = "xcode"
    exit_threshold: int = 2
    open_on_failure: bool = True
    fail_on_generator_error: bool = False
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_root", canonicalize(self.source_root))
        object.__setattr__(self, "dest_dir", canonicalize(self.dest_dir))

    @property
    def source_path(self) -> Path:
        return canonicalize(self.source_root.joinpath(*SOURCE_SUBDIR))

    @property
    def dest_path(self) -> Path:
        return self.dest_dir

    @property
    def index_path(self) -> Path:
        return self.dest_path / "html" / "index.html"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BuildConfig":
        """Build a configuration from a flat mapping of field values."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        source_root = data.get("source_root")
        if not source_root or not str(source_root).strip():
            names = ", ".join(SOURCE_ROOT_VARIABLES)
            raise ConfigurationError(f"Source root is not set (expected one of: {names})")
        dest_dir = data.get("dest_dir")
        if not dest_dir or not str(dest_dir).strip():
            names = ", ".join(DEST_DIR_VARIABLES)
            raise ConfigurationError(f"Destination directory is not set (expected one of: {names})")

        values: Dict[str, Any] = {
            "source_root": Path(str(source_root)),
            "dest_dir": Path(str(dest_dir)),
        }
        try:
            for key in ("project_name", "project_version", "company_name", "executable", "log_format"):
                if key in data:
                    values[key] = _require_string(data[key], key)
            for key in ("exclude_patterns", "output_flags", "warning_flags", "behavior_flags"):
                if key in data:
                    values[key] = _string_tuple(data[key], key)
            for key in ("open_on_failure", "fail_on_generator_error"):
                if key in data:
                    if not isinstance(data[key], bool):
                        raise TypeError(f"{key} must be a boolean")
                    values[key] = data[key]
            if "exit_threshold" in data:
                threshold = data["exit_threshold"]
                if isinstance(threshold, bool) or not isinstance(threshold, int):
                    raise TypeError("exit_threshold must be an integer")
                values["exit_threshold"] = threshold
            if data.get("timeout") is not None:
                timeout = data["timeout"]
                if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                    raise TypeError("timeout must be a positive number of seconds")
                values["timeout"] = float(timeout)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(**values)

    @classmethod
    def from_environment(
        cls,
        env: Mapping[str, str] | None = None,
        *,
        settings_file: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
        validate: bool = True,
    ) -> "BuildConfig":
        """Assemble the configuration from defaults, settings file, environment and overrides."""

        environ = dict(env) if env is not None else dict(os.environ)
        data: Dict[str, Any] = {}
        if settings_file is not None:
            data.update(load_settings(settings_file))

        env_values: Dict[str, Any] = {}
        source_root = _first_set(environ, SOURCE_ROOT_VARIABLES)
        if source_root:
            env_values["source_root"] = source_root
        dest_dir = _first_set(environ, DEST_DIR_VARIABLES)
        if dest_dir:
            env_values["dest_dir"] = dest_dir
        executable = _first_set(environ, (EXECUTABLE_VARIABLE,))
        if executable:
            env_values["executable"] = executable
        data.update(env_values)

        if overrides:
            data.update({key: value for key, value in overrides.items() if value is not None})

        config = cls.from_mapping(data)
        if validate:
            config.validate()
        return config

    def validate(self) -> None:
        """Ensure the source root is readable and the destination writable."""

        if not self.source_root.is_dir():
            raise ConfigurationError(f"Source root '{self.source_root}' is not an existing directory")
        if not os.access(self.source_root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Source root '{self.source_root}' is not readable")
        if not self.dest_dir.is_dir():
            raise ConfigurationError(f"Destination directory '{self.dest_dir}' is not an existing directory")
        if not os.access(self.dest_dir, os.W_OK | os.X_OK):
            raise ConfigurationError(f"Destination directory '{self.dest_dir}' is not writable")

    def with_resolved_executable(self) -> "BuildConfig":
        """Return a copy whose executable is an absolute path to an existing program."""

        candidate = Path(self.executable).expanduser()
        if candidate.is_absolute():
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return replace(self, executable=str(canonicalize(candidate)))
            raise ConfigurationError(f"Documentation generator '{candidate}' is not an executable file")
        found = shutil.which(self.executable)
        if found is None:
            raise ConfigurationError(f"Documentation generator '{self.executable}' was not found on PATH")
        return replace(self, executable=str(canonicalize(found)))


def _require_string(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    if not value.strip():
        raise TypeError(f"{key} cannot be empty")
    return value


def _string_tuple(value: Any, key: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{key} must be a string or a list of strings")
    items = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{key} entries must be strings")
        if item.strip():
            items.append(item.strip())
    return tuple(items)


SettingsReader = Callable[[Path], Any]


def _read_toml(path: Path) -> Any:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def _read_yaml(path: Path) -> Any:
    with path.open(encoding="utf-8") as handle:
        return yaml.safe_load(handle)


SETTINGS_READERS: Dict[str, SettingsReader] = {
    ".toml": _read_toml,
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
}


def load_settings(path: Path) -> Dict[str, Any]:
    """Return the validated ``[docbuild]`` table from the settings file at ``path``.

    Keys are checked against :class:`BuildConfig` fields so a typo is reported
    together with the file it came from.
    """

    reader = SETTINGS_READERS.get(path.suffix.lower())
    if reader is None:
        supported = ", ".join(sorted(SETTINGS_READERS))
        raise ConfigurationError(
            f"Unsupported settings file '{path}' (expected one of: {supported})"
        )
    try:
        data = reader(path)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file '{path}': {exc}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Invalid settings file '{path}': {exc}") from exc

    section = data.get(SETTINGS_SECTION) if isinstance(data, Mapping) else None
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Settings file '{path}' has no [{SETTINGS_SECTION}] table")

    known = {item.name for item in fields(BuildConfig)}
    unknown = sorted(str(key) for key in section if key not in known)
    if unknown:
        keys = ", ".join(f"{SETTINGS_SECTION}.{key}" for key in unknown)
        raise ConfigurationError(f"Unknown keys in settings file '{path}': {keys}")
    return dict(section)


__all__ = [
    "BuildConfig",
    "ConfigurationError",
    "DEST_DIR_VARIABLES",
    "SOURCE_ROOT_VARIABLES",
    "canonicalize",
    "load_settings",
]
