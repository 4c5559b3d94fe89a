import logging
import os
import threading

import pytest

from core.errors import LoadTimeoutError
from skills.conflict_resolver import resolve
from skills.skill_loader import load
from utilities import source_collector
from utilities.source_collector import SourceCollector


class TestSourceCollector:
    def test_collects_relative_posix_paths_in_sorted_order(self, skills_dir, sample_sources):
        sources = SourceCollector(skills_dir).collect()
        assert [s.path for s in sources] == sorted(s.path for s in sample_sources)

    def test_splits_front_matter_and_body(self, skills_dir):
        sources = {s.path: s for s in SourceCollector(skills_dir).collect()}
        otp = sources["elixir-otp/SKILL.md"]
        assert "name: elixir-otp" in otp.front_matter_yaml
        assert otp.body.startswith("# Elixir OTP")

    def test_ignores_other_files(self, skills_dir):
        (skills_dir / "README.md").write_text("# not a skill", encoding="utf-8")
        paths = [s.path for s in SourceCollector(skills_dir).collect()]
        assert "README.md" not in paths

    def test_missing_directory_raises(self, tmp_path):
        collector = SourceCollector(tmp_path / "missing")
        assert collector.list_paths() == []
        with pytest.raises(FileNotFoundError):
            collector.collect()

    def test_oversized_file_is_skipped(self, skills_dir, monkeypatch, caplog):
        monkeypatch.setattr(source_collector, "MAX_SKILL_FILE_SIZE", 150)
        with caplog.at_level(logging.WARNING, logger="utilities.source_collector"):
            sources = SourceCollector(skills_dir).collect()
        assert "too large" in caplog.text
        assert len(sources) < 8

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_outside_root_is_skipped(self, skills_dir, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "SKILL.md").write_text("---\nname: evil\ndescription: d\n---\n", encoding="utf-8")
        (skills_dir / "linked").symlink_to(outside, target_is_directory=True)

        paths = [s.path for s in SourceCollector(skills_dir).collect()]
        assert "linked/SKILL.md" not in paths

    def test_cancel_event(self, skills_dir):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(LoadTimeoutError):
            SourceCollector(skills_dir).collect(cancel_event=cancel)


class TestBundledDefinitions:
    def test_bundled_library_loads_cleanly(self):
        registry = resolve(load(SourceCollector().collect()))

        assert not registry.is_partial
        assert registry.winner_for("realtime-ux").id == "phoenix/realtime-ux"
        assert registry.get("elixir-liveview").related_ids[0] == "elixir-otp"
        assert registry.get("design/component-design-system").related_ids == ("frontend-tailwind",)
