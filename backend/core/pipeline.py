"""
core/pipeline.py
----------------
Runs one request through Match → Assemble → Emit against a single
registry snapshot.

Request sequence:
  0. RegistryStore  — take the current snapshot once; every later step
                      reads that same snapshot even if a reload lands
  1. Matcher        — rank descriptors for the query
  2. Assembler      — greedy byte-bounded selection + related expansion
  3. Emitter        — provenance-headed context bundle

Load and Resolve happen on the store's reload path, not per request.

Owner: Core team
Depends on: registry_store, matcher, assembler, utilities/context_emitter
Depended on by: API routes, scripts/skillctl
"""

from pydantic import BaseModel, ConfigDict, Field

from core import assembler, matcher
from core.errors import BudgetTooSmallError, EmptyRegistryError
from core.models import Budget, ContextBundle, MatchResult, MatchWeights, Query
from core.registry_store import RegistryStore
from skills.skill_registry import Registry
from utilities import context_emitter


class AssemblyOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    bundle: ContextBundle
    candidates: list[MatchResult]
    warnings: list[BudgetTooSmallError] = Field(default_factory=list)


class SkillPipeline:
    def __init__(self, store: RegistryStore, weights: MatchWeights | None = None):
        self.store = store
        self.weights = weights or MatchWeights()

    def _snapshot(self) -> Registry:
        registry = self.store.current()
        if len(registry) == 0:
            raise EmptyRegistryError()
        return registry

    def match(self, query: Query) -> list[MatchResult]:
        """Ranked candidates for a query. Raises EmptyRegistryError when nothing is loaded."""
        return matcher.match(self._snapshot(), query, self.weights)

    def assemble(self, query: Query, max_bytes: int) -> AssemblyOutcome:
        """Match, select under max_bytes, and emit the bundle, all on one snapshot."""
        registry = self._snapshot()
        candidates = matcher.match(registry, query, self.weights)
        result = assembler.assemble(candidates, registry, Budget(max_bytes=max_bytes))
        return AssemblyOutcome(
            bundle=context_emitter.emit(result.selected),
            candidates=candidates,
            warnings=result.warnings,
        )
