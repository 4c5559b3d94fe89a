"""
skills/skill_loader.py
----------------------
Turns RawSkillSource records into an immutable Registry.

Per source, parse_source() returns a tagged result — either a ParsedSkill
or a MalformedSkillError — never raises. load() keeps going past malformed
sources, logs each one, and records it on the registry for audit.

A source is malformed when its front matter:
  - is missing or is not valid YAML
  - is not a mapping
  - lacks a non-empty `name` or `description`

Related skills are collected as references at parse time, from the
`related` front matter key and from the bullets of a "Related Skills"
body section, then resolved to descriptor ids against the name index
once every source is parsed. A name shared by several descriptors
resolves to that name's conflict winner.

Owner: Skills team
Depends on: base_skill, skill_registry, conflict_resolver, pyyaml
Depended on by: registry_store, scripts/skillctl
"""

import hashlib
import logging
import re
import threading
import time
from collections.abc import Iterable
from typing import NamedTuple

import yaml

from core.errors import EmptyRegistryError, LoadTimeoutError, MalformedSkillError
from skills.base_skill import RawSkillSource, SkillDescriptor, descriptor_id_for
from skills.conflict_resolver import pick_winner
from skills.skill_registry import Registry

logger = logging.getLogger(__name__)

MAX_SKILL_NAME_LENGTH = 64
MAX_SKILL_DESCRIPTION_LENGTH = 1024

_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.*?)\s*#*\s*$")
_BULLET_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")
_BACKTICK_RE = re.compile(r"`([^`]+)`")
_LINK_TEXT_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_REF_TOKEN_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_./-]*")
_SEE_PREFIX_RE = re.compile(r"^(?:see(?:\s+also)?|also)\s*:?\s+", re.IGNORECASE)


class ParsedSkill(NamedTuple):
    descriptor: SkillDescriptor     # related_ids still empty
    related_refs: tuple[str, ...]   # names or ids, unresolved


# ---------------------------------------------------------------------------
# Deadline
# ---------------------------------------------------------------------------

class LoadDeadline:
    """
    Timeout + cooperative cancellation for one load attempt.
    check() raises LoadTimeoutError once the deadline passes or the
    cancel event is set.
    """

    def __init__(self, timeout: float | None = None, cancel_event: threading.Event | None = None):
        self.timeout = timeout
        self.cancel_event = cancel_event
        self._expires_at = time.monotonic() + timeout if timeout is not None else None

    def check(self, completed: int = 0) -> None:
        cancelled = self.cancel_event is not None and self.cancel_event.is_set()
        expired = self._expires_at is not None and time.monotonic() >= self._expires_at
        if cancelled or expired:
            raise LoadTimeoutError(self.timeout or 0.0, completed=completed)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def content_hash(sources: Iterable[RawSkillSource]) -> str:
    """SHA-256 over every source, order-independent. Keys the on-disk registry cache."""
    digest = hashlib.sha256()
    for source in sorted(sources, key=lambda s: (s.path, s.front_matter_yaml, s.body)):
        for part in (source.path, source.front_matter_yaml, source.body):
            digest.update(part.encode("utf-8"))
            digest.update(b"\0")
    return digest.hexdigest()


def _validate_skill_name(name: str) -> tuple[bool, str]:
    if len(name) > MAX_SKILL_NAME_LENGTH:
        return False, f"name exceeds {MAX_SKILL_NAME_LENGTH} characters"
    if not _NAME_RE.match(name):
        return False, "name should use lowercase alphanumerics and single hyphens"
    return True, ""


def _as_ref_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value).strip()]


def _reference_from_bullet(text: str) -> str | None:
    tick = _BACKTICK_RE.search(text)
    if tick:
        return tick.group(1).strip()
    link = _LINK_TEXT_RE.search(text)
    if link:
        return link.group(1).strip()
    token = _REF_TOKEN_RE.search(_SEE_PREFIX_RE.sub("", text.strip()))
    return token.group(0).rstrip(".") if token else None


def extract_related_section(body: str) -> list[str]:
    """
    Collect skill references from a "Related Skills" section.

      ## Related Skills
      - `elixir-otp` — supervision trees
      - See realtime-ux for presence
    """
    refs: list[str] = []
    in_section = False
    section_level = 0
    for line in body.splitlines():
        heading = _HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            title = heading.group(2).strip().lower()
            if title in ("related skills", "related skill", "related"):
                in_section, section_level = True, level
                continue
            if in_section and level <= section_level:
                break
            continue
        if not in_section:
            continue
        bullet = _BULLET_RE.match(line)
        if bullet:
            ref = _reference_from_bullet(bullet.group(1))
            if ref:
                refs.append(ref)
    return refs


def parse_source(source: RawSkillSource) -> ParsedSkill | MalformedSkillError:
    """Parse one source. Returns a MalformedSkillError instead of raising."""
    if not source.front_matter_yaml.strip():
        return MalformedSkillError(source.path, "no YAML front matter found")

    try:
        data = yaml.safe_load(source.front_matter_yaml)
    except yaml.YAMLError as exc:
        return MalformedSkillError(source.path, f"invalid YAML front matter: {exc}")

    if not isinstance(data, dict):
        return MalformedSkillError(source.path, "front matter is not a mapping")

    name = data.get("name")
    description = data.get("description")
    if name is None or not str(name).strip():
        return MalformedSkillError(source.path, "missing required 'name'")
    if description is None or not str(description).strip():
        return MalformedSkillError(source.path, "missing required 'description'")

    name = str(name).strip()
    is_valid, problem = _validate_skill_name(name)
    if not is_valid:
        logger.warning("Skill %r (%s) has a non-standard name: %s", name, source.path, problem)

    trigger_text = " ".join(str(description).split())
    if len(trigger_text) > MAX_SKILL_DESCRIPTION_LENGTH:
        logger.warning(
            "Description of %s exceeds %d characters, truncating",
            source.path,
            MAX_SKILL_DESCRIPTION_LENGTH,
        )
        trigger_text = trigger_text[:MAX_SKILL_DESCRIPTION_LENGTH]

    refs = _as_ref_list(data.get("related")) + extract_related_section(source.body)
    metadata = {
        str(k): str(v)
        for k, v in data.items()
        if k not in ("name", "description", "related") and v is not None
    }

    descriptor = SkillDescriptor.build(
        id=descriptor_id_for(source.path),
        name=name,
        trigger_text=trigger_text,
        body=source.body,
        source_path=source.path,
        metadata=metadata,
    )
    return ParsedSkill(descriptor=descriptor, related_refs=tuple(dict.fromkeys(refs)))


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _resolve_related(parsed: list[ParsedSkill]) -> list[SkillDescriptor]:
    by_id = {p.descriptor.id: p.descriptor for p in parsed}
    by_name: dict[str, list[SkillDescriptor]] = {}
    for p in parsed:
        by_name.setdefault(p.descriptor.name, []).append(p.descriptor)

    resolved = []
    for p in parsed:
        related_ids: list[str] = []
        for ref in p.related_refs:
            if ref in by_id:
                target = ref
            elif ref in by_name:
                target = pick_winner(by_name[ref]).id
            else:
                logger.warning(
                    "Skill %s references unknown related skill %r, dropping",
                    p.descriptor.id,
                    ref,
                )
                continue
            if target != p.descriptor.id and target not in related_ids:
                related_ids.append(target)
        resolved.append(p.descriptor.model_copy(update={"related_ids": tuple(related_ids)}))
    return resolved


def load(
    sources: Iterable[RawSkillSource],
    *,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> Registry:
    """
    Build a fresh Registry from raw sources.

    Malformed sources are logged and recorded on registry.load_errors.
    Raises EmptyRegistryError if nothing usable was loaded and
    LoadTimeoutError if the deadline passes or the load is cancelled.
    """
    sources = list(sources)
    deadline = LoadDeadline(timeout, cancel_event)

    parsed: list[ParsedSkill] = []
    errors: list[MalformedSkillError] = []
    seen_ids: set[str] = set()

    for index, source in enumerate(sources):
        deadline.check(completed=index)
        result = parse_source(source)
        if isinstance(result, MalformedSkillError):
            logger.warning("Skipping malformed skill source %s", result)
            errors.append(result)
            continue
        if result.descriptor.id in seen_ids:
            error = MalformedSkillError(source.path, f"duplicate id {result.descriptor.id!r}")
            logger.warning("Skipping malformed skill source %s", error)
            errors.append(error)
            continue
        seen_ids.add(result.descriptor.id)
        parsed.append(result)

    if not parsed:
        raise EmptyRegistryError(errors)

    registry = Registry(
        _resolve_related(parsed),
        load_errors=errors,
        content_hash=content_hash(sources),
    )
    logger.info(
        "Loaded %d skill descriptor(s) from %d source(s), %d malformed",
        len(registry),
        len(sources),
        len(errors),
    )
    return registry
