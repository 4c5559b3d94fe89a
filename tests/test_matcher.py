from core.matcher import content_tokens, match, tokenize, trigger_phrases
from core.models import MatchWeights, Query


class TestTokenizing:
    def test_tokenize_lowercases_and_splits(self):
        assert tokenize("Add a LiveView handle_event!") == ["add", "a", "liveview", "handle", "event"]

    def test_content_tokens_drop_stop_words(self):
        assert content_tokens("I need to add a typing indicator") == {"typing", "indicator"}

    def test_trigger_phrases(self):
        phrases = trigger_phrases('Use when adding "typing indicator", presence or LiveView streams.')
        assert phrases == ("typing indicator", "presence", "liveview streams")

    def test_long_chunks_are_not_phrases(self):
        phrases = trigger_phrases("Use when building realtime ux in phoenix liveview")
        assert phrases == ()


class TestMatch:
    def test_typing_indicator_request_ranks_realtime_ux_first(self, registry):
        results = match(registry, Query(text="I need to add a typing indicator in a LiveView chat"))

        assert results
        assert results[0].descriptor_id == "phoenix/realtime-ux"
        assert "typing indicator" in results[0].matched_terms
        assert "frontend-tailwind" not in [r.descriptor_id for r in results]

    def test_realtime_ux_outranks_tailwind_when_both_match(self, registry):
        results = match(registry, Query(text="I need to add a typing indicator in a LiveView chat styled with Tailwind"))
        scores = {r.descriptor_id: r.score for r in results}

        assert scores["frontend-tailwind"] > 0
        assert scores["phoenix/realtime-ux"] > scores["frontend-tailwind"]
        assert results[0].descriptor_id == "phoenix/realtime-ux"

    def test_zero_score_descriptors_are_omitted(self, registry):
        results = match(registry, Query(text="I need to add a typing indicator in a LiveView chat"))
        ids = {r.descriptor_id for r in results}
        assert "elixir-ecto" not in ids
        assert all(r.score > 0 for r in results)

    def test_no_match(self, registry):
        assert match(registry, Query(text="quarterly tax filing")) == []

    def test_results_sorted_by_score_then_name(self, registry):
        results = match(registry, Query(text="LiveView chat with presence, GenServer and Ecto changesets"))
        keys = [(-r.score, r.name, r.descriptor_id) for r in results]
        assert keys == sorted(keys)

    def test_shadowed_descriptor_excluded(self, registry):
        results = match(registry, Query(text="React websocket reconnection and typing indicators"))
        assert "react/realtime-ux" not in {r.descriptor_id for r in results}

    def test_shadowed_descriptor_included_when_requested(self, registry):
        query = Query(text="websocket reconnection", requested_ids=["react/realtime-ux"])
        results = match(registry, query)
        react = next(r for r in results if r.descriptor_id == "react/realtime-ux")
        assert "id:react/realtime-ux" in react.matched_terms
        assert react.score >= MatchWeights().requested

    def test_name_in_query_scores(self, registry):
        results = match(registry, Query(text="follow elixir-ecto conventions"))
        ecto = next(r for r in results if r.descriptor_id == "elixir-ecto")
        assert "name:elixir-ecto" in ecto.matched_terms

    def test_active_skills_not_returned_and_their_related_boosted(self, registry):
        query = Query(text="LiveView forms", active_context_names=["elixir-liveview"])
        results = match(registry, query)
        ids = [r.descriptor_id for r in results]
        assert "elixir-liveview" not in ids
        otp = next(r for r in results if r.descriptor_id == "elixir-otp")
        assert otp.matched_terms == ["related:elixir-liveview"]
        assert otp.score == MatchWeights().related

    def test_custom_weights(self, registry):
        weights = MatchWeights(phrase=0, jaccard=0, name=0, related=0, requested=0)
        assert match(registry, Query(text="typing indicator in LiveView"), weights) == []

    def test_match_is_pure(self, registry):
        query = Query(text="I need to add a typing indicator in a LiveView chat")
        assert match(registry, query) == match(registry, query)
