"""Configuration values consumed by the publish pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


DEFAULT_RENDER_COMMAND: Final[tuple[str, ...]] = ("zola", "build")

# "templaes" is kept exactly as the site has always excluded it; it matches no
# directory in the content tree and is left for the site owner to confirm.
DEFAULT_EXCLUDED_PATHS: Final[tuple[str, ...]] = (
    "config.toml",
    "content",
    "sass",
    "static",
    "themes",
    "templaes",
)


@dataclass(slots=True, frozen=True)
class PublishSettings:
    """Branch names, external commands and paths used when publishing the site."""

    authoring_branch: str = "dev"
    publishing_branch: str = "master"
    remote: str = "origin"
    render_command: tuple[str, ...] = DEFAULT_RENDER_COMMAND
    output_directory: str = "public"
    excluded_paths: tuple[str, ...] = DEFAULT_EXCLUDED_PATHS
    commit_message: str = "Build"
    cname: str | None = None
    git_executable: str = "git"
    config_file: str | None = None

    def paths_to_remove(self) -> tuple[str, ...]:
        """Return every source-only path that must not reach the publishing branch."""

        if self.config_file and self.config_file not in self.excluded_paths:
            return (*self.excluded_paths, self.config_file)
        return self.excluded_paths
