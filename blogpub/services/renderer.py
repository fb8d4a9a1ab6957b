"""Static-site renderer invoked by the publish pipeline."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Sequence

from blogpub.models.settings import DEFAULT_RENDER_COMMAND
from blogpub.services.git import CommandError, run_command


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandRenderer:
    """Render the content tree by running the site generator (``zola build`` by default)."""

    repo_path: Path
    command: Sequence[str] = DEFAULT_RENDER_COMMAND
    output_directory: str = "public"

    def render(self) -> Path:
        """Run the generator in the repository root and return the output directory."""

        command = list(self.command)
        if not command:
            raise ValueError("Render command cannot be empty")

        result = run_command(command, self.repo_path)
        if result.stdout.strip():
            logger.debug("Renderer output:\n%s", result.stdout.strip())
        if result.returncode != 0:
            raise CommandError(command, result.returncode, result.stderr)

        output = self.repo_path / self.output_directory
        if not output.is_dir():
            raise FileNotFoundError(f"Renderer did not produce output directory '{output}'")
        return output
