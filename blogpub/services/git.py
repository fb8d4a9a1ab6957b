"""Thin wrapper around the ``git`` executable used by the publish pipeline."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess
from typing import Sequence


logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"{' '.join(self.command)} failed with exit code {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


def run_command(command: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run ``command`` in ``cwd`` and return the completed process without raising on failure."""

    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        return subprocess.run(
            list(command),
            cwd=cwd,
            text=True,
            check=False,
            capture_output=True,
        )
    except FileNotFoundError as exc:
        raise CommandError(command, 127, str(exc)) from exc


@dataclass(slots=True)
class GitClient:
    """Drive the local Git repository that holds both the authoring and publishing branches."""

    repo_path: Path
    git_executable: str = "git"

    def current_branch(self) -> str:
        """Return the checked-out branch name, or ``HEAD`` when detached."""

        return self._run_git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def branch_exists(self, branch: str) -> bool:
        result = self._run_git("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}", check=False)
        return result.returncode == 0

    def rev_parse(self, ref: str) -> str:
        return self._run_git("rev-parse", ref).stdout.strip()

    def has_changes(self, *, include_untracked: bool = True) -> bool:
        """Return ``True`` when the working tree differs from ``HEAD``."""

        untracked = "--untracked-files=all" if include_untracked else "--untracked-files=no"
        return bool(self._run_git("status", "--porcelain", untracked).stdout.strip())

    def stash_push(self, *, include_untracked: bool = True) -> bool:
        """Stash local changes, returning ``False`` when there was nothing to stash."""

        if not self.has_changes(include_untracked=include_untracked):
            logger.info("No local changes to stash")
            return False

        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        self._run_git(*args, "-m", "blogpub: changes set aside while publishing")
        return True

    def stash_pop(self) -> None:
        self._run_git("stash", "pop", "--index")

    def checkout(self, branch: str, *, force: bool = False, create: bool = False) -> None:
        args = ["checkout"]
        if force:
            args.append("--force")
        if create:
            args.append("-b")
        self._run_git(*args, branch)

    def reset_hard(self, ref: str) -> None:
        self._run_git("reset", "--hard", ref)

    def add_all(self, *, force: bool = True) -> None:
        """Stage every change in the working tree, including deletions."""

        args = ["add", "--all"]
        if force:
            args.append("--force")
        self._run_git(*args, ".")

    def commit(self, message: str) -> str:
        """Create a commit from the index and return its hash."""

        self._run_git("commit", "-m", message)
        return self.rev_parse("HEAD")

    def push(self, remote: str, branch: str, *, force: bool = True) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        self._run_git(*args, remote, branch)

    def clean(self) -> None:
        """Remove untracked files and directories."""

        self._run_git("clean", "-f", "-d")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _run_git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Execute a Git command within the repository and raise on error."""

        command = [self.git_executable, *args]
        result = run_command(command, self.repo_path)
        if check and result.returncode != 0:
            raise CommandError(command, result.returncode, result.stderr)
        return result
