"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

from pathlib import Path
import shutil
import subprocess
from typing import Callable

import pytest

from blogpub.models.repository import RepositoryState
from blogpub.services.memory_repo import InMemoryRenderer, InMemoryRepository


SITE_FILES: dict[str, bytes] = {
    "config.toml": b'base_url = "https://example.com"\n',
    "content/a.md": b"# Driving a single-threaded database from async code\n",
    "sass/site.scss": b"body { margin: 0; }\n",
    "static/favicon.ico": b"\x00\x01",
    "themes/plain/templates/index.html": b"{{ content }}\n",
}


def git(path: Path, *args: str) -> str:
    """Run a git command in ``path`` and return its stripped stdout."""

    result = subprocess.run(
        ["git", *args],
        cwd=path,
        check=True,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Return a repository on ``dev`` holding the site sources, with a bare ``origin`` remote."""

    if shutil.which("git") is None:
        pytest.skip("git executable is not available")

    remote = tmp_path / "remote.git"
    remote.mkdir()
    git(remote, "init", "--bare")

    repo = tmp_path / "site"
    repo.mkdir()
    git(repo, "init")
    git(repo, "config", "user.name", "Blog Bot")
    git(repo, "config", "user.email", "bot@example.com")
    git(repo, "config", "commit.gpgsign", "false")
    git(repo, "checkout", "-b", "dev")

    for relative, data in SITE_FILES.items():
        target = repo / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    (repo / ".gitignore").write_text("public/\n", encoding="utf-8")

    git(repo, "add", ".")
    git(repo, "commit", "-m", "Add site sources")
    git(repo, "remote", "add", "origin", str(remote))
    return repo


@pytest.fixture
def make_repository() -> Callable[..., InMemoryRepository]:
    """Return a factory for in-memory repositories checked out on ``dev``."""

    def factory(files: dict[str, bytes] | None = None, **kwargs: object) -> InMemoryRepository:
        state = RepositoryState.initial("dev", SITE_FILES if files is None else files)
        return InMemoryRepository(state=state, **kwargs)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def memory_repo(make_repository: Callable[..., InMemoryRepository]) -> InMemoryRepository:
    return make_repository()


@pytest.fixture
def memory_renderer(memory_repo: InMemoryRepository) -> InMemoryRenderer:
    return InMemoryRenderer(repository=memory_repo)


@pytest.fixture
def run_git() -> Callable[..., str]:
    """Expose :func:`git` to tests that inspect repositories directly."""

    return git
