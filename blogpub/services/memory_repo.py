"""In-memory stand-ins for Git, the site generator and the working tree.

``InMemoryRepository`` keeps a :class:`RepositoryState` value and replaces it on
every operation, so a publish run can be exercised (and inspected) without a
real repository. Failures are scripted per operation name through
``failures``, mirroring a command that exits with the given status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import posixpath
from typing import Callable, Iterable, Mapping

from blogpub.models.repository import RepositoryState, Tree
from blogpub.services.git import CommandError


@dataclass(slots=True)
class InMemoryRepository:
    """Version control and workspace operations applied to a :class:`RepositoryState`."""

    state: RepositoryState
    remotes: set[str] = field(default_factory=lambda: {"origin"})
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list, init=False)

    # ------------------------------------------------------------------
    # Version control
    # ------------------------------------------------------------------
    def current_branch(self) -> str:
        self._record("current_branch")
        return self.state.current_branch

    def branch_exists(self, branch: str) -> bool:
        self._record("branch_exists")
        return branch in self.state.branches

    def stash_push(self, *, include_untracked: bool = True) -> bool:
        self._record("stash_push")
        state = self.state
        if not state.has_tracked_changes and not (include_untracked and state.untracked):
            return False
        self.state = state.push_stash(include_untracked=include_untracked)
        return True

    def stash_pop(self) -> None:
        self._record("stash_pop")
        if not self.state.stashes:
            self._fail("stash pop", 1, "No stash entries found.")
        self.state = self.state.pop_stash()

    def checkout(self, branch: str, *, force: bool = False, create: bool = False) -> None:
        self._record("checkout")
        state = self.state
        if create and branch in state.branches:
            self._fail(f"checkout -b {branch}", 128, f"a branch named '{branch}' already exists")
        if not create and branch not in state.branches:
            self._fail(f"checkout {branch}", 1, f"pathspec '{branch}' did not match any branch")
        if not force and state.has_tracked_changes:
            self._fail(f"checkout {branch}", 1, "Your local changes would be overwritten by checkout.")
        self.state = state.switch_to(branch, create=create)

    def reset_hard(self, ref: str) -> None:
        self._record("reset_hard")
        commit_id = self.state.resolve(ref)
        if commit_id is None:
            self._fail(f"reset --hard {ref}", 128, f"ambiguous argument '{ref}'")
        self.state = self.state.reset_to(commit_id)

    def add_all(self, *, force: bool = True) -> None:
        self._record("add_all")
        self.state = self.state.stage_all()

    def commit(self, message: str) -> str:
        self._record("commit")
        if dict(self.state.index) == dict(self.state.head_tree):
            self._fail("commit", 1, "nothing to commit, working tree clean")
        self.state = self.state.commit(message)
        return self.state.head or ""

    def push(self, remote: str, branch: str, *, force: bool = True) -> None:
        self._record("push")
        if remote not in self.remotes:
            self._fail(f"push {remote} {branch}", 128, f"'{remote}' does not appear to be a git repository")
        current = self.state.remote_branches.get(f"{remote}/{branch}")
        if not force and current is not None and current not in self.state.reachable(self.state.branches[branch]):
            self._fail(f"push {remote} {branch}", 1, "Updates were rejected (non-fast-forward)")
        self.state = self.state.push(remote, branch)

    def clean(self) -> None:
        self._record("clean")
        self.state = self.state.clean()

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------
    def promote(self, output_directory: str) -> list[str]:
        self._record("promote")
        prefix = output_directory.strip("/")
        rendered = self.state.paths_under(prefix)
        if not rendered:
            raise FileNotFoundError(f"Rendered output directory '{prefix}' does not exist")

        moved = {posixpath.relpath(path, prefix): self.state.tree[path] for path in rendered}
        promoted = sorted({name.split("/", 1)[0] for name in moved})
        tree = {
            path: data
            for path, data in self.state.tree.items()
            if path not in rendered and path.split("/", 1)[0] not in promoted
        }
        tree.update(moved)
        self.state = self.state.with_tree(tree)
        return promoted

    def remove(self, paths: Iterable[str]) -> list[str]:
        self._record("remove")
        removed: list[str] = []
        tree = dict(self.state.tree)
        for relative in paths:
            matches = self.state.paths_under(relative)
            if not matches:
                continue
            for path in matches:
                tree.pop(path, None)
            removed.append(relative)
        self.state = self.state.with_tree(tree)
        return removed

    def write_file(self, name: str, content: str) -> None:
        self._record("write_file")
        self.state = self.state.with_tree({**self.state.tree, name: content.encode("utf-8")})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        returncode = self.failures.get(operation)
        if returncode is not None:
            self._fail(operation, returncode, f"scripted failure of {operation}")

    @staticmethod
    def _fail(operation: str, returncode: int, stderr: str) -> None:
        raise CommandError(["git", *operation.split()], returncode, stderr)


def render_markdown_as_html(tree: Tree, output_directory: str = "public") -> dict[str, bytes]:
    """Map every ``content/**/*.md`` file to ``<output>/**/*.html`` with the same body."""

    rendered: dict[str, bytes] = {}
    for path, data in sorted(tree.items()):
        if not path.startswith("content/") or not path.endswith(".md"):
            continue
        relative = path[len("content/") : -len(".md")]
        rendered[f"{output_directory}/{relative}.html"] = b"<html>" + data + b"</html>"
    return rendered


@dataclass(slots=True)
class InMemoryRenderer:
    """Renderer that writes generated files into an :class:`InMemoryRepository` working tree."""

    repository: InMemoryRepository
    output_directory: str = "public"
    render_tree: Callable[[Tree, str], Mapping[str, bytes]] = render_markdown_as_html
    returncode: int = 0
    calls: int = field(default=0, init=False)

    def render(self) -> str:
        self.calls += 1
        if self.returncode != 0:
            raise CommandError(["zola", "build"], self.returncode, "Error: Failed to build the site")
        state = self.repository.state
        output = self.render_tree(state.tree, self.output_directory)
        self.repository.state = state.with_tree({**state.tree, **output})
        return self.output_directory
