"""
core/registry_cache.py
----------------------
Optional on-disk cache of parsed registries, so a restart with unchanged
skill files can skip front matter parsing and related-name resolution.

Persistence: SQLite via the standard library sqlite3 module.
Rows are keyed by the content hash of all sources (skill_loader.content_hash).
A lookup with a different hash is a miss; storing a new hash prunes every
other row, so a changed library invalidates the old entry.

Conflict groups are not stored: resolve() is cheap and deterministic and
is re-run on every cache hit.

The cache never fails a load: a corrupt, locked or read-only database is
logged and treated as a miss (get) or a skipped write (put), and
open_cache() returns None for a file that cannot be opened at all.

Owner: Core team
Depends on: skills/skill_registry, skills/base_skill, core/errors
Depended on by: registry_store, api/main, scripts/skillctl
"""

import json
import logging
import sqlite3
from pathlib import Path

from core.errors import MalformedSkillError
from skills.base_skill import SkillDescriptor
from skills.skill_registry import Registry

logger = logging.getLogger(__name__)


class RegistryCache:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    # ------------------------------------------------------------------
    # DB helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS registries (
                    content_hash TEXT PRIMARY KEY,
                    payload      TEXT NOT NULL,
                    created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, content_hash: str) -> Registry | None:
        """
        Return the cached (unresolved) Registry for a hash, or None on a miss.
        An unreadable payload or database counts as a miss.
        """
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT payload FROM registries WHERE content_hash = ?",
                    (content_hash,),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Registry cache %s unavailable, loading from source: %s", self.db_path, exc)
            return None
        if row is None:
            return None

        try:
            payload = json.loads(row["payload"])
            descriptors = [SkillDescriptor.model_validate(d) for d in payload["descriptors"]]
            errors = [
                MalformedSkillError(e["path"], e["reason"])
                for e in payload.get("load_errors", [])
            ]
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable registry cache entry %s: %s", content_hash[:12], exc)
            self.invalidate()
            return None

        logger.info("Registry cache hit (%s, %d descriptors)", content_hash[:12], len(descriptors))
        return Registry(descriptors, load_errors=errors, content_hash=content_hash)

    def put(self, registry: Registry) -> bool:
        """
        Store a registry under its content hash and drop every other entry.
        Returns False when the database could not be written.
        """
        if not registry.content_hash:
            raise ValueError("Cannot cache a registry without a content hash.")
        payload = json.dumps({
            "descriptors": [d.model_dump(mode="json") for d in registry],
            "load_errors": [e.to_dict() for e in registry.load_errors],
        })
        try:
            with self._connect() as conn:
                conn.execute(
                    "DELETE FROM registries WHERE content_hash != ?",
                    (registry.content_hash,),
                )
                conn.execute(
                    """
                    INSERT INTO registries (content_hash, payload)
                    VALUES (?, ?)
                    ON CONFLICT(content_hash) DO UPDATE SET
                        payload = excluded.payload,
                        created_at = CURRENT_TIMESTAMP
                    """,
                    (registry.content_hash, payload),
                )
        except sqlite3.Error as exc:
            logger.warning("Could not write registry cache %s: %s", self.db_path, exc)
            return False
        return True

    def invalidate(self) -> None:
        """Remove every cached registry."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM registries")
        except sqlite3.Error as exc:
            logger.warning("Could not clear registry cache %s: %s", self.db_path, exc)

    def hashes(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT content_hash FROM registries").fetchall()
        return [r["content_hash"] for r in rows]


def open_cache(db_path: Path | None) -> RegistryCache | None:
    """
    Open the cache at db_path, or return None when caching is disabled or
    the file cannot be used as a SQLite database.
    """
    if db_path is None:
        return None
    try:
        return RegistryCache(db_path)
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Registry cache %s disabled: %s", db_path, exc)
        return None
