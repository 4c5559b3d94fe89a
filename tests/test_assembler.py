import pytest

from core.assembler import assemble
from core.errors import BudgetTooSmallError
from core.matcher import match
from core.models import Budget, MatchResult, Query, SelectionReason
from skills.base_skill import SkillDescriptor
from skills.skill_registry import Registry

LIVEVIEW_QUERY = Query(text="Build a LiveView form with handle_event")


def _candidates(registry, text):
    return match(registry, Query(text=text))


@pytest.fixture
def sized_registry() -> Registry:
    return Registry([
        SkillDescriptor.build(id="a", name="a", trigger_text="t", body="a" * 100),
        SkillDescriptor.build(id="b", name="b", trigger_text="t", body="b" * 50),
        SkillDescriptor.build(id="c", name="c", trigger_text="t", body="c" * 30),
    ])


def _result(id: str, score: float) -> MatchResult:
    return MatchResult(descriptor_id=id, name=id, score=score)


class TestBudget:
    def test_zero_budget_returns_empty_with_warning(self, registry):
        candidates = _candidates(registry, "I need to add a typing indicator in a LiveView chat")
        assert candidates

        result = assemble(candidates, registry, Budget(max_bytes=0))

        assert result.selected == []
        assert result.total_bytes == 0
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert isinstance(warning, BudgetTooSmallError)
        assert warning.max_bytes == 0
        assert warning.smallest_bytes == min(
            registry.get(c.descriptor_id).size_bytes for c in candidates
        )

    def test_partly_used_budget_warns_when_nothing_fits_in_the_rest(self, sized_registry):
        budget = Budget(max_bytes=50, used_bytes=30)

        result = assemble([_result("c", 1)], sized_registry, budget)

        assert result.selected == []
        assert len(result.warnings) == 1
        assert result.warnings[0].max_bytes == budget.remaining_bytes == 20
        assert result.warnings[0].smallest_bytes == 30

    def test_partly_used_budget_selects_into_the_rest(self, sized_registry):
        result = assemble([_result("c", 1)], sized_registry, Budget(max_bytes=70, used_bytes=30))
        assert [s.descriptor.id for s in result.selected] == ["c"]
        assert result.budget.used_bytes == 60
        assert result.warnings == []

    def test_no_candidates_is_not_a_warning(self, registry):
        result = assemble([], registry, Budget(max_bytes=0))
        assert result.selected == []
        assert result.warnings == []

    def test_never_exceeds_budget(self, registry):
        candidates = _candidates(registry, "LiveView chat with presence, GenServer and Ecto changesets")
        everything = sum(d.size_bytes for d in registry)
        for max_bytes in range(0, everything + 64, 37):
            result = assemble(candidates, registry, Budget(max_bytes=max_bytes))
            assert result.total_bytes <= max_bytes
            assert result.budget.used_bytes == result.total_bytes

    def test_caller_budget_is_not_mutated(self, registry):
        budget = Budget(max_bytes=10_000)
        assemble(_candidates(registry, LIVEVIEW_QUERY.text), registry, budget)
        assert budget.used_bytes == 0

    def test_same_input_same_selection(self, registry):
        candidates = _candidates(registry, LIVEVIEW_QUERY.text)
        budget = Budget(max_bytes=500)
        first = assemble(candidates, registry, budget)
        second = assemble(candidates, registry, budget)
        assert [s.descriptor.id for s in first.selected] == [s.descriptor.id for s in second.selected]


class TestPrimarySelection:
    def test_oversized_candidate_is_skipped_not_truncated(self, sized_registry):
        candidates = [_result("a", 3), _result("b", 2), _result("c", 1)]
        result = assemble(candidates, sized_registry, Budget(max_bytes=90))
        assert [s.descriptor.id for s in result.selected] == ["b", "c"]
        assert result.total_bytes == 80
        assert all(s.descriptor.body == sized_registry.get(s.descriptor.id).body for s in result.selected)

    def test_candidates_taken_in_score_order(self, sized_registry):
        candidates = [_result("c", 1), _result("a", 3)]
        result = assemble(candidates, sized_registry, Budget(max_bytes=1000))
        assert [s.descriptor.id for s in result.selected] == ["a", "c"]
        assert [s.score for s in result.selected] == [3, 1]

    def test_unknown_candidate_is_skipped(self, sized_registry):
        result = assemble([_result("ghost", 9), _result("b", 1)], sized_registry, Budget(max_bytes=1000))
        assert [s.descriptor.id for s in result.selected] == ["b"]


class TestRelatedExpansion:
    def test_related_skill_follows_its_referrer(self, registry):
        candidates = _candidates(registry, LIVEVIEW_QUERY.text)
        assert candidates[0].descriptor_id == "elixir-liveview"
        assert "elixir-otp" not in {c.descriptor_id for c in candidates}

        result = assemble(candidates, registry, Budget(max_bytes=100_000))
        ids = [s.descriptor.id for s in result.selected]

        position = ids.index("elixir-liveview")
        assert ids[position + 1] == "elixir-otp"
        assert result.selected[position].reason == SelectionReason.PRIMARY
        assert result.selected[position + 1].reason == SelectionReason.RELATED

    def test_related_skill_dropped_when_it_does_not_fit(self, registry):
        candidates = _candidates(registry, LIVEVIEW_QUERY.text)
        liveview = registry.get("elixir-liveview")

        result = assemble(candidates, registry, Budget(max_bytes=liveview.size_bytes))

        assert [s.descriptor.id for s in result.selected] == ["elixir-liveview"]

    def test_related_skill_already_primary_is_not_duplicated(self):
        registry = Registry([
            SkillDescriptor.build(id="x", name="x", trigger_text="t", body="x", related_ids=("y",)),
            SkillDescriptor.build(id="y", name="y", trigger_text="t", body="y"),
        ])
        result = assemble([_result("x", 2), _result("y", 1)], registry, Budget(max_bytes=100))
        assert [(s.descriptor.id, s.reason) for s in result.selected] == [
            ("x", SelectionReason.PRIMARY),
            ("y", SelectionReason.PRIMARY),
        ]
