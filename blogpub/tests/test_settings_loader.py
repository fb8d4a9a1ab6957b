from __future__ import annotations

from pathlib import Path

import pytest

from blogpub.models.settings import DEFAULT_EXCLUDED_PATHS, PublishSettings
from blogpub.services.settings_loader import SettingsError, load_settings


def test_defaults_publish_dev_onto_master(tmp_path: Path) -> None:
    settings = load_settings(tmp_path, environ={})

    assert settings == PublishSettings()
    assert settings.authoring_branch == "dev"
    assert settings.publishing_branch == "master"
    assert settings.remote == "origin"
    assert settings.render_command == ("zola", "build")
    assert settings.excluded_paths == DEFAULT_EXCLUDED_PATHS
    assert "templaes" in settings.excluded_paths
    assert settings.paths_to_remove() == DEFAULT_EXCLUDED_PATHS


def test_repository_config_file_is_loaded_and_excluded(tmp_path: Path) -> None:
    (tmp_path / "blogpub.yaml").write_text(
        "publishing_branch: gh-pages\n"
        "render_command: [zola, build, --drafts]\n"
        "excluded_paths: [config.toml, content, templates]\n"
        "cname: atsuzaki.com\n",
        encoding="utf-8",
    )

    settings = load_settings(tmp_path, environ={})

    assert settings.publishing_branch == "gh-pages"
    assert settings.render_command == ("zola", "build", "--drafts")
    assert settings.excluded_paths == ("config.toml", "content", "templates")
    assert settings.cname == "atsuzaki.com"
    assert settings.config_file == "blogpub.yaml"
    assert settings.paths_to_remove() == ("config.toml", "content", "templates", "blogpub.yaml")


def test_environment_and_overrides_take_precedence(tmp_path: Path) -> None:
    (tmp_path / "blogpub.yaml").write_text("remote: mirror\ncommit_message: From file\n", encoding="utf-8")
    environ = {
        "BLOGPUB_REMOTE": "upstream",
        "BLOGPUB_RENDER_COMMAND": "zola --root site build",
        "BLOGPUB_EXCLUDED_PATHS": "config.toml, content ,static",
    }

    settings = load_settings(tmp_path, environ=environ, overrides={"commit_message": "Publish", "remote": None})

    assert settings.remote == "upstream"
    assert settings.render_command == ("zola", "--root", "site", "build")
    assert settings.excluded_paths == ("config.toml", "content", "static")
    assert settings.commit_message == "Publish"


def test_config_outside_repository_is_not_excluded(tmp_path: Path) -> None:
    repo = tmp_path / "site"
    repo.mkdir()
    config = tmp_path / "publish.yaml"
    config.write_text("authoring_branch: main\n", encoding="utf-8")

    settings = load_settings(repo, config_path=config, environ={})

    assert settings.authoring_branch == "main"
    assert settings.config_file is None


def test_explicit_config_must_exist(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="does not exist"):
        load_settings(tmp_path, config_path=tmp_path / "missing.yaml", environ={})


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("remote: [unclosed\n", "not valid YAML"),
        ("- just\n- a list\n", "must contain a mapping"),
        ("branch: dev\n", "Unknown configuration keys: branch"),
        ("excluded_paths: [../outside]\n", "inside the repository"),
        ("excluded_paths: [.git]\n", "inside the repository"),
        ("output_directory: /tmp/public\n", "inside the repository"),
        ("render_command: []\n", "cannot be empty"),
        ("remote: ''\n", "non-empty string"),
        ("include_untracked: false\n", "Unknown configuration keys: include_untracked"),
        ("publishing_branch: dev\n", "must differ"),
    ],
)
def test_invalid_configuration_is_rejected(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / "blogpub.yaml").write_text(content, encoding="utf-8")

    with pytest.raises(SettingsError, match=message):
        load_settings(tmp_path, environ={})
