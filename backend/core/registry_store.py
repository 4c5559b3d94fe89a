"""
core/registry_store.py
----------------------
Owns the live Registry snapshot.

Readers call current() and get an immutable Registry — no locking.
A reload builds a brand-new registry end to end:

  collect sources → cache lookup by content hash
                  → (miss) load + cache put
                  → resolve conflicts
                  → swap the single snapshot reference

Only writers take the lock, so two concurrent reloads serialise while
in-flight queries keep reading whichever snapshot they started with.
A failed reload (timeout, empty library) leaves the previous snapshot
in place.

Owner: Core team
Depends on: skills/*, utilities/source_collector, core/registry_cache
Depended on by: pipeline, api/main, scripts/skillctl
"""

import logging
import threading
import time

from core.errors import LoadTimeoutError
from core.models import ConflictDetected
from core.registry_cache import RegistryCache
from skills import conflict_resolver, skill_loader
from skills.base_skill import RawSkillSource
from skills.skill_registry import Registry
from utilities.source_collector import SourceCollector

logger = logging.getLogger(__name__)


class RegistryStore:
    def __init__(
        self,
        collector: SourceCollector | None = None,
        cache: RegistryCache | None = None,
        load_timeout: float | None = None,
    ):
        self.collector = collector or SourceCollector()
        self.cache = cache
        self.load_timeout = load_timeout
        self._snapshot = Registry.empty()
        self._conflict_events: tuple[ConflictDetected, ...] = ()
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def current(self) -> Registry:
        """The live snapshot. Never mutated; hold on to it for a whole request."""
        return self._snapshot

    @property
    def conflict_events(self) -> tuple[ConflictDetected, ...]:
        """ConflictDetected events from the build that produced the live snapshot."""
        return self._conflict_events

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def build(
        self,
        sources: list[RawSkillSource] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> tuple[Registry, list[ConflictDetected]]:
        """
        Build and resolve a new registry without installing it.
        Raises LoadTimeoutError, EmptyRegistryError, or FileNotFoundError
        (missing skills directory).
        """
        started = time.monotonic()
        if sources is None:
            sources = self.collector.collect(timeout=self.load_timeout, cancel_event=cancel_event)

        remaining = None
        if self.load_timeout is not None:
            remaining = self.load_timeout - (time.monotonic() - started)
            if remaining <= 0:
                raise LoadTimeoutError(self.load_timeout, completed=len(sources))

        registry = None
        if self.cache is not None:
            registry = self.cache.get(skill_loader.content_hash(sources))
        if registry is None:
            registry = skill_loader.load(sources, timeout=remaining, cancel_event=cancel_event)
            if self.cache is not None:
                self.cache.put(registry)

        events: list[ConflictDetected] = []
        resolved = conflict_resolver.resolve(registry, on_conflict=events.append)
        return resolved, events

    def reload(
        self,
        sources: list[RawSkillSource] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Registry:
        """Build a new registry and atomically replace the live snapshot with it."""
        with self._write_lock:
            registry, events = self.build(sources, cancel_event=cancel_event)
            self._snapshot = registry
            self._conflict_events = tuple(events)
        logger.info(
            "Registry reloaded: %d descriptor(s), %d conflict(s), %d malformed source(s)",
            len(registry),
            len(registry.conflicts),
            len(registry.load_errors),
        )
        return registry

    def reload_with_retry(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        sources: list[RawSkillSource] | None = None,
    ) -> Registry:
        """
        reload(), retrying LoadTimeoutError with exponential backoff.
        Any other error propagates immediately. The last timeout is re-raised
        once attempts run out.
        """
        delay = initial_delay
        for attempt in range(1, max_attempts + 1):
            try:
                return self.reload(sources)
            except LoadTimeoutError as exc:
                if attempt == max_attempts:
                    logger.error("Registry reload timed out after %d attempt(s)", attempt)
                    raise
                logger.warning(
                    "Registry reload attempt %d/%d timed out (%s); retrying in %.2fs",
                    attempt,
                    max_attempts,
                    exc,
                    delay,
                )
                time.sleep(delay)
                delay *= 2
        raise ValueError("max_attempts must be at least 1")
