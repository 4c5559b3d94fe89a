import logging

import pytest

from conftest import make_source
from core.models import ConflictDetected
from skills.base_skill import SkillDescriptor
from skills.conflict_resolver import find_conflicts, pick_winner, resolve
from skills.skill_loader import load
from skills.skill_registry import Registry


def _descriptor(id: str, name: str, size: int) -> SkillDescriptor:
    return SkillDescriptor.build(id=id, name=name, trigger_text="t", body="x" * size)


class TestPickWinner:
    def test_largest_body_wins(self):
        small = _descriptor("react/realtime-ux", "realtime-ux", 4000)
        large = _descriptor("phoenix/realtime-ux", "realtime-ux", 9000)
        assert pick_winner([small, large]).id == "phoenix/realtime-ux"

    def test_tie_broken_by_id(self):
        a = _descriptor("b/skill", "skill", 100)
        b = _descriptor("a/skill", "skill", 100)
        assert pick_winner([a, b]).id == "a/skill"

    def test_empty_group_raises(self):
        with pytest.raises(ValueError):
            pick_winner([])


class TestResolve:
    def test_duplicate_names_produce_one_winner(self):
        sources = [
            make_source("react/realtime-ux/SKILL.md", "realtime-ux", "React realtime", "r" * 4000),
            make_source("phoenix/realtime-ux/SKILL.md", "realtime-ux", "Phoenix realtime", "p" * 9000),
        ]
        events: list[ConflictDetected] = []
        registry = resolve(load(sources), on_conflict=events.append)

        assert len(registry) == 2
        assert len(registry.conflicts) == 1
        group = registry.conflicts[0]
        assert group.winner_id == "phoenix/realtime-ux"
        assert group.shadowed_ids == ("react/realtime-ux",)
        assert registry.is_shadowed("react/realtime-ux")
        assert not registry.is_shadowed("phoenix/realtime-ux")

        assert len(events) == 1
        assert events[0].sizes == {"phoenix/realtime-ux": 9000, "react/realtime-ux": 4000}

    def test_every_duplicated_name_has_exactly_one_winner(self, registry):
        assert registry.is_resolved
        for name in registry.names:
            members = registry.ids_for_name(name)
            if len(members) < 2:
                assert registry.conflict_for(name) is None
                continue
            group = registry.conflict_for(name)
            assert set(group.member_ids) == set(members)
            assert group.winner_id not in group.shadowed_ids
            assert registry.winner_for(name).id == group.winner_id

    def test_deterministic_regardless_of_source_order(self, sample_sources):
        forward = resolve(load(sample_sources))
        backward = resolve(load(list(reversed(sample_sources))))
        assert {g.name: g.winner_id for g in forward.conflicts} == {
            g.name: g.winner_id for g in backward.conflicts
        }

    def test_resolve_does_not_mutate_input(self, sample_sources):
        loaded = load(sample_sources)
        resolved = resolve(loaded)
        assert loaded.conflicts == ()
        assert resolved is not loaded
        assert resolved.descriptors == loaded.descriptors

    def test_logs_each_conflict(self, sample_sources, caplog):
        with caplog.at_level(logging.INFO, logger="skills.conflict_resolver"):
            resolve(load(sample_sources))
        assert "realtime-ux" in caplog.text
        assert "component-design-system" in caplog.text

    def test_no_conflicts(self):
        registry = Registry([_descriptor("a", "a", 1), _descriptor("b", "b", 1)])
        assert find_conflicts(registry) == []
        assert resolve(registry).conflicts == ()
