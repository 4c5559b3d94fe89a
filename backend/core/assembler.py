"""
core/assembler.py
-----------------
Greedy, byte-bounded selection of skills from ranked match candidates.

Pass 1 — primary:
  Walk candidates in score order. A descriptor is taken iff
  used_bytes + size_bytes <= max_bytes; otherwise it is skipped.
  Bodies are never truncated — a partial skill is worse than none.

Pass 2 — related:
  For each primary in selection order, walk its related_ids in reference
  order. A related descriptor that fits and is not already selected is
  placed directly after its referrer, marked reason="related".
  Primaries are never displaced.

The caller's Budget is copied, never mutated, so the same
(candidates, registry, budget) always yields the same selection.

When there are candidates but the bytes still free in the budget
(max_bytes - used_bytes) cannot hold the smallest of them, an empty
selection is returned together with a BudgetTooSmallError
warning. Nothing is raised.

Owner: Core team
Depends on: core/models, core/errors, skills/skill_registry
Depended on by: pipeline, API routes, scripts/skillctl
"""

import logging

from core.errors import BudgetTooSmallError
from core.models import AssemblyResult, Budget, MatchResult, SelectedSkill, SelectionReason
from skills.base_skill import SkillDescriptor
from skills.skill_registry import Registry

logger = logging.getLogger(__name__)


def _known_candidates(candidates: list[MatchResult], registry: Registry) -> list[tuple[MatchResult, SkillDescriptor]]:
    known = []
    seen: set[str] = set()
    for candidate in sorted(candidates, key=lambda r: (-r.score, r.name, r.descriptor_id)):
        if candidate.descriptor_id in seen:
            continue
        seen.add(candidate.descriptor_id)
        try:
            known.append((candidate, registry.get(candidate.descriptor_id)))
        except KeyError:
            logger.warning(
                "Candidate %s is not in the registry snapshot, skipping",
                candidate.descriptor_id,
            )
    return known


def assemble(candidates: list[MatchResult], registry: Registry, budget: Budget) -> AssemblyResult:
    """Select skills under budget. See module docstring for the two passes."""
    working = budget.model_copy()
    known = _known_candidates(candidates, registry)

    if not known:
        return AssemblyResult(selected=[], budget=working)

    smallest = min(descriptor.size_bytes for _, descriptor in known)
    if working.remaining_bytes < smallest:
        warning = BudgetTooSmallError(working.remaining_bytes, smallest)
        logger.warning("%s", warning.message)
        return AssemblyResult(selected=[], budget=working, warnings=[warning])

    # Pass 1: primary
    primaries: list[SelectedSkill] = []
    selected_ids: set[str] = set()
    for candidate, descriptor in known:
        if not working.fits(descriptor.size_bytes):
            logger.debug(
                "Skipping %s (%d bytes): %d of %d bytes used",
                descriptor.id,
                descriptor.size_bytes,
                working.used_bytes,
                working.max_bytes,
            )
            continue
        working.used_bytes += descriptor.size_bytes
        selected_ids.add(descriptor.id)
        primaries.append(
            SelectedSkill(descriptor=descriptor, reason=SelectionReason.PRIMARY, score=candidate.score)
        )

    # Pass 2: related, placed after each referrer
    selected: list[SelectedSkill] = []
    for primary in primaries:
        selected.append(primary)
        for related_id in primary.descriptor.related_ids:
            if related_id in selected_ids or related_id not in registry:
                continue
            related = registry.get(related_id)
            if not working.fits(related.size_bytes):
                continue
            working.used_bytes += related.size_bytes
            selected_ids.add(related_id)
            selected.append(SelectedSkill(descriptor=related, reason=SelectionReason.RELATED))

    return AssemblyResult(selected=selected, budget=working)
