"""
core/models.py
--------------
Pydantic models for everything that flows through one request:
Query → MatchResult → SelectedSkill → ContextBundle, plus the
conflict records attached to a resolved registry.

Models that cross the HTTP boundary serialise with camelCase aliases
(descriptorId, matchedTerms, totalBytes ...) and accept either spelling
on input.

Owner: Core team
Depends on: skills/base_skill, core/errors
Depended on by: matcher, assembler, context_emitter, pipeline, API routes
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.errors import BudgetTooSmallError
from skills.base_skill import SkillDescriptor


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectionReason(str, Enum):
    PRIMARY = "primary"   # selected on its own match score
    RELATED = "related"   # pulled in through a selected skill's related_ids


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictGroup(_CamelModel):
    """Descriptors sharing one name. winner_id is always a member; the rest are shadowed."""
    model_config = ConfigDict(frozen=True)

    name: str
    winner_id: str
    shadowed_ids: tuple[str, ...]

    @property
    def member_ids(self) -> tuple[str, ...]:
        return (self.winner_id, *self.shadowed_ids)


class ConflictDetected(_CamelModel):
    """Observability event emitted once per duplicated name."""
    model_config = ConfigDict(frozen=True)

    name: str
    winner_id: str
    shadowed_ids: tuple[str, ...]
    sizes: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

class Query(_CamelModel):
    text: str
    active_context_names: list[str] = Field(default_factory=list)
    requested_ids: list[str] = Field(default_factory=list)


class MatchWeights(BaseModel):
    """Scoring weights. Tunable; none of the values are load-bearing contracts."""
    phrase: float = 5.0      # per distinct trigger-phrase hit
    jaccard: float = 3.0     # multiplied by token Jaccard overlap (0..1)
    name: float = 2.0        # descriptor name appears literally in the query
    related: float = 1.0     # referenced by an already-active skill
    requested: float = 5.0   # id explicitly requested


class MatchResult(_CamelModel):
    descriptor_id: str
    name: str
    score: float
    matched_terms: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

class Budget(_CamelModel):
    max_bytes: int = Field(ge=0)
    used_bytes: int = Field(default=0, ge=0)

    @property
    def remaining_bytes(self) -> int:
        return max(0, self.max_bytes - self.used_bytes)

    def fits(self, size_bytes: int) -> bool:
        return self.used_bytes + size_bytes <= self.max_bytes


class SelectedSkill(BaseModel):
    descriptor: SkillDescriptor
    reason: SelectionReason
    score: float = 0.0


class AssemblyResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    selected: list[SelectedSkill]
    budget: Budget
    warnings: list[BudgetTooSmallError] = Field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(s.descriptor.size_bytes for s in self.selected)


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------

class IncludedSkill(_CamelModel):
    name: str
    id: str
    reason: SelectionReason


class ContextBundle(_CamelModel):
    text: str
    total_bytes: int
    included: list[IncludedSkill] = Field(default_factory=list)
