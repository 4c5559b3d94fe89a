"""
utilities/source_collector.py
-----------------------------
Walks a skills directory and turns every SKILL.md under it into a
RawSkillSource for the loader.

  skills/definitions/
    phoenix/realtime-ux/SKILL.md   → path "phoenix/realtime-ux/SKILL.md"
    elixir-otp/SKILL.md            → path "elixir-otp/SKILL.md"

Paths are recorded relative to the root (POSIX separators) so descriptor
ids stay stable across machines. Files are visited in sorted order.
Oversized or unreadable files, and anything resolving outside the root,
are skipped with a warning.

This is the one I/O-bound step of a load, so it honours a timeout and a
cancel event (LoadTimeoutError).

Owner: Utilities team
Depends on: skills/base_skill, skills/skill_loader
Depended on by: registry_store, scripts/skillctl
"""

import logging
import threading
from pathlib import Path

from skills.base_skill import SKILL_FILENAME, RawSkillSource
from skills.skill_loader import LoadDeadline

logger = logging.getLogger(__name__)

SKILLS_DIR = Path(__file__).parent.parent / "skills" / "definitions"

MAX_SKILL_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def _is_within(path: Path, base_dir: Path) -> bool:
    try:
        path.resolve().relative_to(base_dir)
        return True
    except (ValueError, OSError, RuntimeError):
        return False


class SourceCollector:
    """Collects RawSkillSource records from a directory tree."""

    def __init__(self, skills_dir: Path = SKILLS_DIR, filename: str = SKILL_FILENAME):
        self._skills_dir = Path(skills_dir).expanduser()
        self._filename = filename

    @property
    def skills_dir(self) -> Path:
        return self._skills_dir

    def list_paths(self) -> list[Path]:
        """All skill files under the root, sorted. Empty if the root does not exist."""
        if not self._skills_dir.is_dir():
            return []
        return sorted(self._skills_dir.rglob(self._filename))

    def collect(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[RawSkillSource]:
        """
        Read every skill file into a RawSkillSource.
        Raises FileNotFoundError if the root directory does not exist and
        LoadTimeoutError if the deadline passes or the cancel event is set.
        """
        if not self._skills_dir.is_dir():
            raise FileNotFoundError(
                f"Skills directory not found: {self._skills_dir}. "
                f"Set SKILLS_DIR or pass an existing directory."
            )

        deadline = LoadDeadline(timeout, cancel_event)
        base = self._skills_dir.resolve()
        sources: list[RawSkillSource] = []

        for index, path in enumerate(self.list_paths()):
            deadline.check(completed=index)

            if not _is_within(path, base):
                logger.warning("Skipping %s: resolves outside %s", path, base)
                continue

            try:
                size = path.stat().st_size
                if size > MAX_SKILL_FILE_SIZE:
                    logger.warning("Skipping %s: file too large (%d bytes)", path, size)
                    continue
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Error reading %s: %s", path, exc)
                continue

            relative = path.relative_to(self._skills_dir).as_posix()
            sources.append(RawSkillSource.from_text(relative, text))

        return sources
