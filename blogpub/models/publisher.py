"""Data structures describing the outcome of a publish run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _default_datetime() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PublishResult:
    """Outcome returned by the publish pipeline after pushing the rendered site."""

    branch: str
    remote: str
    commit_hash: str
    published_files: list[str] = field(default_factory=list)
    removed_paths: list[str] = field(default_factory=list)
    stashed: bool = False
    published_at: datetime = field(default_factory=_default_datetime)
