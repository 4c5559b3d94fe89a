"""
core/config.py
--------------
Runtime configuration read from environment variables (.env supported).

  SKILLS_DIR             root of the SKILL.md library (default: skills/definitions)
  SKILL_CACHE_PATH       SQLite registry cache file; empty disables the cache
  LOAD_TIMEOUT_SECONDS   per-load timeout; 0 disables
  DEFAULT_MAX_BYTES      budget used when a request does not give one
  RELOAD_MAX_ATTEMPTS    attempts for reload_with_retry
  RELOAD_INITIAL_DELAY   first backoff delay in seconds (doubles per attempt)
  MATCH_*_WEIGHT         matcher weights (see core/matcher.py)
  LOG_LEVEL              root logging level

Owner: Core team
Depends on: python-dotenv
Depended on by: api/main, scripts/skillctl
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from core.models import MatchWeights

load_dotenv()

_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Config:
    """Configuration for the skill engine."""

    # Skill library
    SKILLS_DIR = os.getenv("SKILLS_DIR", str(_BACKEND_DIR / "skills" / "definitions"))
    SKILL_CACHE_PATH = os.getenv("SKILL_CACHE_PATH", "")

    # Loading
    LOAD_TIMEOUT_SECONDS = float(os.getenv("LOAD_TIMEOUT_SECONDS", "30"))
    RELOAD_MAX_ATTEMPTS = int(os.getenv("RELOAD_MAX_ATTEMPTS", "3"))
    RELOAD_INITIAL_DELAY = float(os.getenv("RELOAD_INITIAL_DELAY", "0.5"))

    # Assembly
    DEFAULT_MAX_BYTES = int(os.getenv("DEFAULT_MAX_BYTES", "32000"))

    # Matching
    MATCH_PHRASE_WEIGHT = float(os.getenv("MATCH_PHRASE_WEIGHT", "5"))
    MATCH_JACCARD_WEIGHT = float(os.getenv("MATCH_JACCARD_WEIGHT", "3"))
    MATCH_NAME_WEIGHT = float(os.getenv("MATCH_NAME_WEIGHT", "2"))
    MATCH_RELATED_WEIGHT = float(os.getenv("MATCH_RELATED_WEIGHT", "1"))
    MATCH_REQUESTED_WEIGHT = float(os.getenv("MATCH_REQUESTED_WEIGHT", "5"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def get_skills_dir(cls) -> Path:
        return Path(cls.SKILLS_DIR).expanduser()

    @classmethod
    def get_cache_path(cls) -> Path | None:
        """Cache file path, or None when caching is disabled."""
        return Path(cls.SKILL_CACHE_PATH).expanduser() if cls.SKILL_CACHE_PATH else None

    @classmethod
    def get_load_timeout(cls) -> float | None:
        return cls.LOAD_TIMEOUT_SECONDS if cls.LOAD_TIMEOUT_SECONDS > 0 else None

    @classmethod
    def get_match_weights(cls) -> MatchWeights:
        """
        Get matcher weights.

        Returns:
            MatchWeights instance with settings from environment variables
        """
        return MatchWeights(
            phrase=cls.MATCH_PHRASE_WEIGHT,
            jaccard=cls.MATCH_JACCARD_WEIGHT,
            name=cls.MATCH_NAME_WEIGHT,
            related=cls.MATCH_RELATED_WEIGHT,
            requested=cls.MATCH_REQUESTED_WEIGHT,
        )

    @classmethod
    def configure_logging(cls) -> None:
        """Apply LOG_LEVEL to the root logger. Safe to call more than once."""
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
