"""Render the blog from the authoring branch and force-publish the output to the hosting branch.

Run from the repository root with no arguments to publish ``dev`` onto
``master`` and push it to ``origin``. Defaults can be changed in
``blogpub.yaml`` or through ``BLOGPUB_*`` environment variables; the flags
below take precedence over both.
"""

from __future__ import annotations

import argparse
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
import json
import logging
import os
from pathlib import Path
import sys
from typing import Any

from blogpub.models.settings import PublishSettings
from blogpub.services.git import GitClient
from blogpub.services.pipeline import PreconditionError, PublishError, PublishPipeline
from blogpub.services.renderer import CommandRenderer
from blogpub.services.settings_loader import SettingsError, load_settings
from blogpub.services.workspace import LocalWorkspace

LOGGER = logging.getLogger("blogpub.publish")

if not LOGGER.handlers:  # avoid duplicates on re-import
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False

EXIT_USAGE = 2


def _json_default(o):
    if isinstance(o, (datetime, date)):
        if isinstance(o, datetime) and o.tzinfo is None:
            o = o.replace(tzinfo=timezone.utc)
        return o.isoformat()
    if is_dataclass(o):
        return asdict(o)
    if isinstance(o, Path):
        return str(o)
    if isinstance(o, set):
        return list(o)
    return str(o)


def _exit_code(returncode: int | None) -> int:
    """Map a failing command's status to a process exit code; signals follow the shell's 128+N form."""
    if not returncode:
        return 1
    if returncode < 0:
        return 128 - returncode
    return returncode


def _configure_logging() -> None:
    """Configure root logging based on ``BLOGPUB_LOG_LEVEL``."""
    level_name = os.getenv("BLOGPUB_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the site and force-push it to the publishing branch.")
    parser.add_argument(
        "--repo",
        default=os.getenv("BLOGPUB_REPO", "."),
        help="Repository root (default from BLOGPUB_REPO or the current directory).",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("BLOGPUB_CONFIG"),
        help="YAML settings file (default: blogpub.yaml in the repository root, if present).",
    )
    parser.add_argument("--remote", help="Remote to push the publishing branch to.")
    parser.add_argument("--message", help="Commit message for the publish commit.")
    return parser.parse_args(argv)


def _build_pipeline(repo_path: Path, settings: PublishSettings) -> PublishPipeline:
    return PublishPipeline(
        vcs=GitClient(repo_path=repo_path, git_executable=settings.git_executable),
        renderer=CommandRenderer(
            repo_path=repo_path,
            command=settings.render_command,
            output_directory=settings.output_directory,
        ),
        workspace=LocalWorkspace(repo_path=repo_path),
        settings=settings,
    )


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, default=_json_default, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)
    repo_path = Path(args.repo).expanduser().resolve()

    try:
        settings = load_settings(
            repo_path,
            config_path=Path(args.config).expanduser() if args.config else None,
            environ=os.environ,
            overrides={"remote": args.remote, "commit_message": args.message},
        )
    except SettingsError as exc:
        LOGGER.error("PUBLISH_ERROR %s", exc)
        _emit({"succeeded": False, "errors": [str(exc)]})
        return EXIT_USAGE

    LOGGER.info(
        "PUBLISH_START repo=%s authoring=%s publishing=%s remote=%s",
        repo_path,
        settings.authoring_branch,
        settings.publishing_branch,
        settings.remote,
    )
    pipeline = _build_pipeline(repo_path, settings)

    try:
        result = pipeline.run()
    except PreconditionError as exc:
        LOGGER.error("PUBLISH_ERROR %s", exc)
        _emit({"succeeded": False, "step": exc.step, "errors": [str(exc)]})
        return EXIT_USAGE
    except PublishError as exc:
        LOGGER.error("PUBLISH_ERROR %s", exc)
        LOGGER.error("Publish aborted at step '%s'", exc.step)
        _emit({"succeeded": False, "step": exc.step, "returncode": exc.returncode, "errors": [str(exc)]})
        return _exit_code(exc.returncode)

    if not result.published_files:
        LOGGER.warning("PUBLISH_WARNING renderer produced no files; published branch is empty")

    LOGGER.info(
        "PUBLISH_COMPLETE branch=%s remote=%s commit=%s files=%d",
        result.branch,
        result.remote,
        result.commit_hash,
        len(result.published_files),
    )
    _emit({"succeeded": True, **asdict(result)})
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(main())
