"""Load :class:`PublishSettings` from defaults, an optional YAML file and the environment."""

from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path, PurePosixPath
import shlex
from typing import Any, Final, Mapping

import yaml

from blogpub.models.settings import PublishSettings


DEFAULT_CONFIG_NAME: Final[str] = "blogpub.yaml"

_ENV_VARIABLES: Final[dict[str, str]] = {
    "BLOGPUB_AUTHORING_BRANCH": "authoring_branch",
    "BLOGPUB_PUBLISHING_BRANCH": "publishing_branch",
    "BLOGPUB_REMOTE": "remote",
    "BLOGPUB_RENDER_COMMAND": "render_command",
    "BLOGPUB_OUTPUT_DIR": "output_directory",
    "BLOGPUB_EXCLUDED_PATHS": "excluded_paths",
    "BLOGPUB_COMMIT_MESSAGE": "commit_message",
    "BLOGPUB_CNAME": "cname",
    "BLOGPUB_GIT": "git_executable",
}

_FILE_KEYS: Final[frozenset[str]] = frozenset(
    item.name for item in fields(PublishSettings) if item.name != "config_file"
)


class SettingsError(ValueError):
    """Raised when the publish configuration is missing, malformed or unsafe."""


def load_settings(
    repo_path: Path,
    *,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PublishSettings:
    """Return settings for ``repo_path`` with file, environment and ``overrides`` applied in order.

    ``blogpub.yaml`` in the repository root is read when present; an explicit
    ``config_path`` must exist. A config file inside the repository is recorded
    so the pipeline can keep it off the publishing branch.
    """

    values: dict[str, Any] = {}
    config_file: str | None = None

    path = config_path
    if path is None:
        candidate = repo_path / DEFAULT_CONFIG_NAME
        path = candidate if candidate.is_file() else None
    elif not path.is_file():
        raise SettingsError(f"Configuration file '{path}' does not exist")

    if path is not None:
        values.update(_read_config_file(path))
        config_file = _relative_to_repo(path, repo_path)

    for variable, key in _ENV_VARIABLES.items():
        raw = (environ or {}).get(variable)
        if raw is not None and raw.strip():
            values[key] = raw.strip()

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    return _build_settings(values, config_file)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SettingsError(f"Configuration file '{path}' is not valid YAML: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise SettingsError(f"Configuration file '{path}' must contain a mapping")

    unknown = sorted(str(key) for key in payload if key not in _FILE_KEYS)
    if unknown:
        raise SettingsError(f"Unknown configuration keys: {', '.join(unknown)}")
    return dict(payload)


def _relative_to_repo(path: Path, repo_path: Path) -> str | None:
    try:
        return path.resolve().relative_to(repo_path.resolve()).as_posix()
    except ValueError:
        return None


def _build_settings(values: Mapping[str, Any], config_file: str | None) -> PublishSettings:
    settings = PublishSettings(config_file=config_file)
    updates: dict[str, Any] = {}

    for key in ("authoring_branch", "publishing_branch", "remote", "output_directory", "commit_message", "git_executable"):
        if key in values:
            updates[key] = _require_text(key, values[key])

    if "cname" in values:
        cname = values["cname"]
        updates["cname"] = _require_text("cname", cname) if cname not in (None, "") else None

    if "render_command" in values:
        updates["render_command"] = _parse_command(values["render_command"])

    if "excluded_paths" in values:
        updates["excluded_paths"] = _parse_paths(values["excluded_paths"])

    settings = replace(settings, **updates)
    _validate_relative("output_directory", settings.output_directory)
    if settings.authoring_branch == settings.publishing_branch:
        raise SettingsError("authoring_branch and publishing_branch must differ")
    return settings


def _require_text(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"'{key}' must be a non-empty string")
    return value.strip()


def _parse_command(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        command = tuple(shlex.split(value))
    elif isinstance(value, (list, tuple)) and all(isinstance(part, str) for part in value):
        command = tuple(part for part in value if part)
    else:
        raise SettingsError("'render_command' must be a string or a list of strings")

    if not command:
        raise SettingsError("'render_command' cannot be empty")
    return command


def _parse_paths(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = [segment.strip() for segment in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [segment.strip() if isinstance(segment, str) else segment for segment in value]
    else:
        raise SettingsError("'excluded_paths' must be a comma separated string or a list of strings")

    paths: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise SettingsError("'excluded_paths' entries must be strings")
        if not item:
            continue
        _validate_relative("excluded_paths", item)
        normalised = PurePosixPath(item).as_posix()
        if normalised not in paths:
            paths.append(normalised)
    return tuple(paths)


def _validate_relative(key: str, value: str) -> None:
    path = PurePosixPath(value)
    if path.is_absolute() or ".." in path.parts or path.parts[:1] in ((".git",), (".",)) or not path.parts:
        raise SettingsError(f"'{key}' must be a path inside the repository, got '{value}'")
