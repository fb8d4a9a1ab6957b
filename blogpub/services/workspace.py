"""Filesystem operations applied to the publishing branch's working tree."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
from typing import Iterable


logger = logging.getLogger(__name__)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


@dataclass(slots=True)
class LocalWorkspace:
    """Promote rendered output and strip source-only paths inside a repository checkout."""

    repo_path: Path

    def promote(self, output_directory: str) -> list[str]:
        """Move the contents of ``output_directory`` into the repository root.

        Same-named paths at the root are replaced. The emptied output directory is
        removed afterwards. Returns the promoted entry names, sorted.
        """

        source = self.repo_path / output_directory
        if not source.is_dir():
            raise FileNotFoundError(f"Rendered output directory '{source}' does not exist")

        promoted: list[str] = []
        for entry in sorted(source.iterdir()):
            target = self.repo_path / entry.name
            if target == source:
                continue
            if target.exists() or target.is_symlink():
                _remove_path(target)
            shutil.move(str(entry), str(target))
            promoted.append(entry.name)

        if not any(source.iterdir()):
            source.rmdir()
        logger.info("Promoted %d rendered entries from %s", len(promoted), output_directory)
        return promoted

    def remove(self, paths: Iterable[str]) -> list[str]:
        """Delete each relative path that exists and return the ones removed."""

        removed: list[str] = []
        for relative in paths:
            target = self.repo_path / relative
            if not (target.exists() or target.is_symlink()):
                continue
            _remove_path(target)
            removed.append(relative)

        if removed:
            logger.info("Removed source-only paths: %s", ", ".join(removed))
        return removed

    def write_file(self, name: str, content: str) -> Path:
        destination = self.repo_path / name
        destination.write_text(content, encoding="utf-8")
        return destination
