"""Value types describing a version-controlled working tree.

``RepositoryState`` is immutable: every transition returns a new state so the
in-memory repository can model checkouts, stashes and pushes without touching
the filesystem. Paths are POSIX style and relative to the repository root;
directories exist only implicitly as path prefixes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping


Tree = Mapping[str, bytes]


@dataclass(slots=True, frozen=True)
class Commit:
    """Snapshot of the tracked tree recorded on a branch."""

    id: str
    parent: str | None
    tree: Tree
    message: str


@dataclass(slots=True, frozen=True)
class StashEntry:
    """Working tree and index set aside by ``git stash``."""

    tree: Tree
    index: Tree


def _is_within(path: str, prefix: str) -> bool:
    prefix = prefix.strip("/")
    return path == prefix or path.startswith(f"{prefix}/")


@dataclass(slots=True, frozen=True)
class RepositoryState:
    """Complete state of a repository: branches, history, working tree and stash."""

    current_branch: str
    branches: Mapping[str, str] = field(default_factory=dict)
    commits: Mapping[str, Commit] = field(default_factory=dict)
    tree: Tree = field(default_factory=dict)
    index: Tree = field(default_factory=dict)
    stashes: tuple[StashEntry, ...] = ()
    remote_branches: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def initial(cls, branch: str, files: Tree, *, message: str = "Initial commit") -> "RepositoryState":
        """Return a repository with a single commit of ``files`` on ``branch``."""

        commit = Commit(id="c1", parent=None, tree=dict(files), message=message)
        return cls(
            current_branch=branch,
            branches={branch: commit.id},
            commits={commit.id: commit},
            tree=dict(files),
            index=dict(files),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def head(self) -> str | None:
        return self.branches.get(self.current_branch)

    @property
    def head_tree(self) -> Tree:
        head = self.head
        return self.commits[head].tree if head is not None else {}

    @property
    def untracked(self) -> dict[str, bytes]:
        """Return working-tree files that are not in the index."""

        return {path: data for path, data in self.tree.items() if path not in self.index}

    @property
    def has_tracked_changes(self) -> bool:
        if dict(self.index) != dict(self.head_tree):
            return True
        return any(self.tree.get(path) != data for path, data in self.index.items())

    def resolve(self, ref: str) -> str | None:
        """Return the commit id named by a branch or commit id."""

        if ref in self.branches:
            return self.branches[ref]
        if ref in self.commits:
            return ref
        return None

    def reachable(self, commit_id: str | None) -> set[str]:
        """Return every commit id reachable from ``commit_id`` by following parents."""

        seen: set[str] = set()
        while commit_id is not None and commit_id not in seen:
            seen.add(commit_id)
            commit_id = self.commits[commit_id].parent
        return seen

    def branch_tree(self, branch: str) -> Tree:
        return self.commits[self.branches[branch]].tree

    def paths_under(self, prefix: str) -> list[str]:
        return sorted(path for path in self.tree if _is_within(path, prefix))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def switch_to(self, branch: str, *, create: bool = False) -> "RepositoryState":
        """Check out ``branch``, discarding tracked changes and keeping untracked files."""

        branches = dict(self.branches)
        if create:
            if self.head is not None:
                branches[branch] = self.head
        target_tree = self.commits[branches[branch]].tree if branch in branches else {}
        return replace(
            self,
            current_branch=branch,
            branches=branches,
            tree={**self.untracked, **target_tree},
            index=dict(target_tree),
        )

    def reset_to(self, commit_id: str) -> "RepositoryState":
        """Move the current branch to ``commit_id`` and match its tree."""

        branches = {**self.branches, self.current_branch: commit_id}
        target_tree = self.commits[commit_id].tree
        return replace(
            self,
            branches=branches,
            tree={**self.untracked, **target_tree},
            index=dict(target_tree),
        )

    def push_stash(self, *, include_untracked: bool) -> "RepositoryState":
        if include_untracked:
            saved = StashEntry(tree=dict(self.tree), index=dict(self.index))
            kept: dict[str, bytes] = {}
        else:
            saved = StashEntry(
                tree={path: data for path, data in self.tree.items() if path in self.index},
                index=dict(self.index),
            )
            kept = self.untracked
        head_tree = dict(self.head_tree)
        return replace(
            self,
            tree={**kept, **head_tree},
            index=head_tree,
            stashes=(saved, *self.stashes),
        )

    def pop_stash(self) -> "RepositoryState":
        entry, *rest = self.stashes
        return replace(
            self,
            tree={**self.untracked, **entry.tree},
            index=dict(entry.index),
            stashes=tuple(rest),
        )

    def with_tree(self, tree: Tree) -> "RepositoryState":
        return replace(self, tree=dict(tree))

    def stage_all(self) -> "RepositoryState":
        return replace(self, index=dict(self.tree))

    def commit(self, message: str) -> "RepositoryState":
        commit = Commit(
            id=f"c{len(self.commits) + 1}",
            parent=self.head,
            tree=dict(self.index),
            message=message,
        )
        return replace(
            self,
            commits={**self.commits, commit.id: commit},
            branches={**self.branches, self.current_branch: commit.id},
        )

    def push(self, remote: str, branch: str) -> "RepositoryState":
        key = f"{remote}/{branch}"
        return replace(self, remote_branches={**self.remote_branches, key: self.branches[branch]})

    def clean(self) -> "RepositoryState":
        return replace(self, tree={path: data for path, data in self.tree.items() if path in self.index})
