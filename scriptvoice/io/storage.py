"""Filesystem storage for scripts, style references, and generated artifacts.

Responsibilities:
- Persist generated script text under deterministic, collision-free names.
- Load optional style-reference scripts confined to the templates directory.
- List, resolve, and delete generated files without escaping the output directories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from ..telemetry.logger import RunLogger
from ..text.slug import slugify_title

FILE_KINDS = {"script": "scripts", "audio": "audio"}
"""Public file-kind tokens mapped to their subdirectory under the output root."""


def filename_timestamp(moment: datetime) -> str:
    """Return an ISO-8601 timestamp with `:` and `.` replaced for filenames."""

    return moment.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")


def _utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class ScriptStore(Protocol):
    """Protocol for script persistence collaborators."""

    def save(self, content: str, *, topic: str) -> Path:
        """Persist script text and return its location."""


class FileScriptStore:
    """Flat-file script store writing `<topic_slug>_<timestamp>.txt` files."""

    def __init__(self, root: Path, *, clock: Callable[[], datetime] = _utc_now) -> None:
        """Initialize the store with the output root directory."""

        self.root = root
        self.clock = clock

    @property
    def directory(self) -> Path:
        """Return the directory holding saved scripts."""

        return self.root / FILE_KINDS["script"]

    def save(self, content: str, *, topic: str) -> Path:
        """Save script content and return the final path."""

        self.directory.mkdir(parents=True, exist_ok=True)
        stem = f"{slugify_title(topic)}_{filename_timestamp(self.clock())}"
        path = self.directory / f"{stem}.txt"
        suffix = 1
        while path.exists():
            path = self.directory / f"{stem}_{suffix}.txt"
            suffix += 1
        path.write_text(content, encoding="utf-8")
        return path


class ReferenceScriptLoader:
    """Load style-reference scripts from the templates directory."""

    def __init__(self, templates_dir: Path, run_logger: RunLogger | None = None) -> None:
        self.templates_dir = templates_dir
        self.run_logger = run_logger or RunLogger()

    def load(self, reference_file: str | None) -> str | None:
        """Return reference text, or `None` when unset, missing, or unreadable."""

        if not reference_file:
            return None
        root = self.templates_dir.resolve()
        candidate = (root / reference_file).resolve()
        if not candidate.is_relative_to(root):
            self.run_logger.event(
                "WARNING", "reference", "rejected", reason="outside_templates_dir"
            )
            return None
        if not candidate.is_file():
            self.run_logger.event("WARNING", "reference", "missing", file=reference_file)
            return None
        try:
            return candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.run_logger.event(
                "WARNING", "reference", "unreadable", file=reference_file, error_type=type(exc).__name__
            )
            return None


@dataclass(frozen=True, slots=True)
class GeneratedFile:
    """Metadata row for one generated file."""

    name: str
    path: Path
    size: int
    modified_at: datetime

    def to_payload(self) -> dict[str, object]:
        """Return the JSON payload shape for this file row."""

        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "modifiedAt": self.modified_at.isoformat(),
        }


class GeneratedFileIndex:
    """List, resolve, and delete files inside `<root>/scripts` and `<root>/audio`."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def directory_for(self, kind: str) -> Path:
        """Return the directory for a file kind.

        Raises:
            ValueError: If `kind` is not `script` or `audio`.
        """

        try:
            return self.root / FILE_KINDS[kind]
        except KeyError as exc:
            raise ValueError(f"Invalid file type `{kind}`.") from exc

    def list(self, kind: str) -> list[GeneratedFile]:
        """Return generated files of one kind sorted by name."""

        directory = self.directory_for(kind)
        if not directory.is_dir():
            return []
        rows: list[GeneratedFile] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file():
                continue
            stat = path.stat()
            rows.append(
                GeneratedFile(
                    name=path.name,
                    path=path,
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, timezone.utc),
                )
            )
        return rows

    def resolve(self, kind: str, filename: str) -> Path:
        """Resolve a filename inside the kind directory.

        Raises:
            ValueError: If `kind` is unknown.
            PermissionError: If the resolved path escapes the kind directory.
        """

        directory = self.directory_for(kind).resolve()
        candidate = (directory / filename).resolve()
        if candidate == directory or not candidate.is_relative_to(directory):
            raise PermissionError("Access denied.")
        return candidate

    def delete(self, kind: str, filename: str) -> bool:
        """Delete one generated file and return whether it existed."""

        path = self.resolve(kind, filename)
        if not path.is_file():
            return False
        path.unlink()
        return True
