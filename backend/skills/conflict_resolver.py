"""
skills/conflict_resolver.py
---------------------------
Groups descriptors by declared name and picks one winner per duplicated name.

Winner rule (deterministic):
  1. Largest size_bytes — the most complete document wins.
  2. Ties broken by lexically smallest id.

Every other descriptor in the group is shadowed: kept in the registry for
audit, excluded from default matching. Conflicts are never errors; each
group is reported as a ConflictDetected event (logged, and passed to an
optional callback) and the load carries on.

Owner: Skills team
Depends on: skill_registry, core/models
Depended on by: skill_loader (related-name resolution), registry_store
"""

import logging
from collections.abc import Callable, Iterable

from core.models import ConflictDetected, ConflictGroup
from skills.base_skill import SkillDescriptor
from skills.skill_registry import Registry

logger = logging.getLogger(__name__)


def _precedence(descriptor: SkillDescriptor) -> tuple[int, str]:
    return (-descriptor.size_bytes, descriptor.id)


def pick_winner(descriptors: Iterable[SkillDescriptor]) -> SkillDescriptor:
    """Return the descriptor that wins a name conflict. Raises ValueError on an empty group."""
    ranked = sorted(descriptors, key=_precedence)
    if not ranked:
        raise ValueError("Cannot pick a winner from an empty group.")
    return ranked[0]


def find_conflicts(registry: Registry) -> list[ConflictGroup]:
    """Build a ConflictGroup for every name owned by more than one descriptor."""
    groups = []
    for name in registry.names:
        members = registry.find_by_name(name)
        if len(members) < 2:
            continue
        ranked = sorted(members, key=_precedence)
        groups.append(
            ConflictGroup(
                name=name,
                winner_id=ranked[0].id,
                shadowed_ids=tuple(d.id for d in ranked[1:]),
            )
        )
    return groups


def resolve(
    registry: Registry,
    on_conflict: Callable[[ConflictDetected], None] | None = None,
) -> Registry:
    """
    Return a new Registry decorated with conflict groups.
    Pure apart from the observability events: the same input always
    yields the same winners.
    """
    groups = find_conflicts(registry)
    for group in groups:
        event = ConflictDetected(
            name=group.name,
            winner_id=group.winner_id,
            shadowed_ids=group.shadowed_ids,
            sizes={did: registry.get(did).size_bytes for did in group.member_ids},
        )
        logger.info(
            "Conflict detected for skill name %r: winner=%s shadowed=%s",
            event.name,
            event.winner_id,
            ", ".join(event.shadowed_ids),
        )
        if on_conflict is not None:
            on_conflict(event)
    return registry.with_conflicts(groups)
