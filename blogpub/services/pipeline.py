"""Orchestration layer that renders the authoring branch and publishes it to the hosting branch."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Protocol, TypeVar

from blogpub.models.publisher import PublishResult
from blogpub.models.settings import PublishSettings
from blogpub.services.git import CommandError


logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class PublishError(RuntimeError):
    """Raised when a pipeline step fails; carries the failing step and exit status."""

    def __init__(self, step: str, message: str, *, returncode: int | None = None) -> None:
        self.step = step
        self.returncode = returncode
        super().__init__(f"{step} failed: {message}")


class PreconditionError(PublishError):
    """Raised when the repository is not in a state the pipeline can publish from."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__("precondition", message, returncode=returncode)


class SupportsVersionControl(Protocol):
    """Subset of :class:`GitClient` relied upon by the pipeline."""

    def current_branch(self) -> str:
        """Return the checked-out branch name."""

    def branch_exists(self, branch: str) -> bool:
        """Return ``True`` when a local branch named ``branch`` exists."""

    def stash_push(self, *, include_untracked: bool = True) -> bool:
        """Stash local changes and report whether anything was stashed."""

    def stash_pop(self) -> None:
        """Reapply and drop the most recent stash entry."""

    def checkout(self, branch: str, *, force: bool = False, create: bool = False) -> None:
        """Switch the working tree to ``branch``."""

    def reset_hard(self, ref: str) -> None:
        """Point the current branch at ``ref`` and match its tree."""

    def add_all(self, *, force: bool = True) -> None:
        """Stage every change, including deletions."""

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit hash."""

    def push(self, remote: str, branch: str, *, force: bool = True) -> None:
        """Push ``branch`` to the same-named branch on ``remote``."""

    def clean(self) -> None:
        """Remove untracked files and directories."""


class SupportsRendering(Protocol):
    """Protocol describing the static-site renderer."""

    def render(self) -> Any:
        """Render the content tree into the output directory."""


class SupportsWorkspace(Protocol):
    """Protocol describing working-tree file operations."""

    def promote(self, output_directory: str) -> list[str]:
        """Move rendered output into the repository root."""

    def remove(self, paths: Iterable[str]) -> list[str]:
        """Delete the given paths and return the ones that existed."""

    def write_file(self, name: str, content: str) -> Path | None:
        """Write ``content`` to ``name`` at the repository root."""


@dataclass(slots=True)
class AuthoringSnapshot:
    """What the restore step needs to put the authoring branch back as it was."""

    branch: str
    stashed: bool = False


@dataclass(slots=True)
class PublishPipeline:
    """Render the authoring branch and force-publish only the output to the publishing branch."""

    vcs: SupportsVersionControl
    renderer: SupportsRendering
    workspace: SupportsWorkspace
    settings: PublishSettings = field(default_factory=PublishSettings)

    def run(self, *, published_at: datetime | None = None) -> PublishResult:
        """Execute the publish sequence, always restoring the authoring branch afterwards."""

        settings = self.settings
        self._check_preconditions()

        with self._authoring_state() as snapshot:
            self._step("reset", self._reset_publishing_branch)
            self._step("render", self.renderer.render)
            published = self._step("promote", self.workspace.promote, settings.output_directory)
            removed = self._step("cleanup", self.workspace.remove, settings.paths_to_remove())
            if settings.cname:
                self._step("cname", self.workspace.write_file, "CNAME", f"{settings.cname.strip()}\n")
            self._step("stage", self.vcs.add_all, force=True)
            commit_hash = self._step("commit", self.vcs.commit, settings.commit_message)
            self._step("push", self.vcs.push, settings.remote, settings.publishing_branch, force=True)

        return PublishResult(
            branch=settings.publishing_branch,
            remote=settings.remote,
            commit_hash=commit_hash,
            published_files=sorted(published),
            removed_paths=list(removed),
            stashed=snapshot.stashed,
            published_at=(published_at or datetime.now(timezone.utc)).astimezone(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _check_preconditions(self) -> None:
        authoring = self.settings.authoring_branch
        try:
            current = self.vcs.current_branch()
        except CommandError as exc:
            raise PreconditionError(str(exc), returncode=exc.returncode) from exc

        if current != authoring:
            raise PreconditionError(
                f"expected the authoring branch '{authoring}' to be checked out, found '{current}'"
            )
        if authoring == self.settings.publishing_branch:
            raise PreconditionError("authoring and publishing branches must differ")

    @contextmanager
    def _authoring_state(self) -> Iterator[AuthoringSnapshot]:
        """Set local edits aside and guarantee they come back on the authoring branch."""

        stashed = self._step("stash", self.vcs.stash_push, include_untracked=True)
        snapshot = AuthoringSnapshot(branch=self.settings.authoring_branch, stashed=stashed)
        try:
            yield snapshot
        except BaseException:
            try:
                self._restore(snapshot)
            except PublishError:
                logger.exception("Restoring '%s' after a failed publish did not complete", snapshot.branch)
            raise
        self._restore(snapshot)

    def _restore(self, snapshot: AuthoringSnapshot) -> None:
        self._step("restore", self.vcs.checkout, snapshot.branch, force=True)
        self._step("restore", self.vcs.clean)
        if snapshot.stashed:
            self._step("restore", self.vcs.stash_pop)

    def _reset_publishing_branch(self) -> None:
        publishing = self.settings.publishing_branch
        if self.vcs.branch_exists(publishing):
            self.vcs.checkout(publishing)
            self.vcs.reset_hard(self.settings.authoring_branch)
        else:
            logger.info("Creating publishing branch '%s'", publishing)
            self.vcs.checkout(publishing, create=True)

    def _step(self, name: str, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        """Run one pipeline step, translating tool failures into :class:`PublishError`."""

        logger.info("PUBLISH_STEP %s", name)
        try:
            return func(*args, **kwargs)
        except CommandError as exc:
            raise PublishError(name, str(exc), returncode=exc.returncode) from exc
        except OSError as exc:
            raise PublishError(name, str(exc)) from exc
