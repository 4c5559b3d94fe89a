"""
core/matcher.py
---------------
Scores every eligible descriptor against a Query and returns a sparse,
ranked list of MatchResults.

Score components (weights from MatchWeights, defaults shown):
  phrase    5 × distinct trigger-phrase hits in the query
  jaccard   3 × token overlap |Q ∩ T| / |Q ∪ T| between query and trigger text
  name      2 if the descriptor name appears literally in the query
  related   1 if an active skill lists the descriptor in its related_ids
  requested 5 if the descriptor id is in query.requested_ids

Eligibility:
  - shadowed descriptors only when their id is explicitly requested
  - descriptors already active (by name) are not returned again

Zero-score descriptors are omitted. Results are sorted by score (desc),
then name, then id. matched_terms always explains the score.

Owner: Core team
Depends on: core/models, skills/skill_registry
Depended on by: pipeline, API routes, scripts/skillctl
"""

import re
from functools import lru_cache

from core.models import MatchResult, MatchWeights, Query
from skills.base_skill import SkillDescriptor
from skills.skill_registry import Registry


_TOKEN_RE = re.compile(r"[a-z0-9]+")
_QUOTED_RE = re.compile(r"[\"“”]([^\"“”]{2,80})[\"“”]")
_PHRASE_SPLIT_RE = re.compile(r"[,;:.!?()\[\]{}\"“”/\n]|\s[-–—]\s|\b(?:and|or|e\.g|i\.e|etc)\b")

MAX_PHRASE_TOKENS = 4

STOP_WORDS = frozenset({
    "a", "about", "all", "also", "an", "any", "are", "as", "at", "be", "by", "can",
    "do", "does", "for", "from", "has", "have", "how", "i", "if", "in", "into", "is",
    "it", "its", "me", "my", "need", "needs", "of", "on", "or", "our", "should",
    "so", "some", "such", "that", "the", "their", "them", "then", "there", "these",
    "they", "this", "to", "up", "us", "use", "used", "using", "want", "was", "we",
    "what", "when", "whenever", "where", "which", "while", "who", "will", "with",
    "would", "you", "your", "skill", "skills", "user", "users", "asks", "ask",
    "like", "including", "includes", "working", "add", "adding",
})


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens in order, stop words included."""
    return _TOKEN_RE.findall(text.lower())


def content_tokens(text: str) -> frozenset[str]:
    """Token set with stop words removed — the Jaccard vocabulary."""
    return frozenset(t for t in tokenize(text) if t not in STOP_WORDS)


def _trim_stop_words(tokens: list[str]) -> list[str]:
    start, end = 0, len(tokens)
    while start < end and tokens[start] in STOP_WORDS:
        start += 1
    while end > start and tokens[end - 1] in STOP_WORDS:
        end -= 1
    return tokens[start:end]


@lru_cache(maxsize=1024)
def trigger_phrases(trigger_text: str) -> tuple[str, ...]:
    """
    Activation phrases of a trigger description, normalised to
    space-joined lowercase tokens.

      'Use when adding "typing indicator", presence or LiveView streams.'
        → ("typing indicator", "presence", "liveview streams")

    Quoted strings are kept whole; list items are trimmed of stop words and
    kept when they are 1–4 tokens long.
    """
    phrases: list[str] = []
    for quoted in _QUOTED_RE.findall(trigger_text):
        tokens = _trim_stop_words(tokenize(quoted))
        if tokens:
            phrases.append(" ".join(tokens))
    for chunk in _PHRASE_SPLIT_RE.split(trigger_text.lower()):
        tokens = _trim_stop_words(tokenize(chunk))
        if 0 < len(tokens) <= MAX_PHRASE_TOKENS:
            phrases.append(" ".join(tokens))
    return tuple(dict.fromkeys(phrases))


def _contains_phrase(haystack: str, phrase: str) -> bool:
    """Whole-word containment on space-joined token strings."""
    return f" {phrase} " in haystack


def _name_in_text(name: str, text: str) -> bool:
    pattern = r"(?<![A-Za-z0-9-])" + re.escape(name.lower()) + r"(?![A-Za-z0-9-])"
    return re.search(pattern, text.lower()) is not None


def _related_to_active(registry: Registry, active_names: list[str]) -> dict[str, str]:
    """descriptor id → name of the active skill that references it."""
    related: dict[str, str] = {}
    for name in active_names:
        active = registry.winner_for(name)
        if active is None:
            continue
        for rid in active.related_ids:
            related.setdefault(rid, active.name)
    return related


def score_descriptor(
    descriptor: SkillDescriptor,
    query: Query,
    weights: MatchWeights,
    *,
    query_haystack: str,
    query_tokens: frozenset[str],
    related_via: str | None = None,
) -> MatchResult:
    """Score one descriptor. Callers pre-compute the query's token forms once per query."""
    matched: list[str] = []
    score = 0.0

    hits = [p for p in trigger_phrases(descriptor.trigger_text) if _contains_phrase(query_haystack, p)]
    if hits:
        score += weights.phrase * len(hits)
        matched.extend(hits)

    trigger_tokens = content_tokens(descriptor.trigger_text)
    overlap = query_tokens & trigger_tokens
    if overlap:
        score += weights.jaccard * len(overlap) / len(query_tokens | trigger_tokens)
        matched.extend(t for t in sorted(overlap) if t not in matched)

    if _name_in_text(descriptor.name, query.text):
        score += weights.name
        matched.append(f"name:{descriptor.name}")

    if related_via is not None:
        score += weights.related
        matched.append(f"related:{related_via}")

    if descriptor.id in query.requested_ids:
        score += weights.requested
        matched.append(f"id:{descriptor.id}")

    return MatchResult(
        descriptor_id=descriptor.id,
        name=descriptor.name,
        score=round(score, 6),
        matched_terms=matched,
    )


def match(registry: Registry, query: Query, weights: MatchWeights | None = None) -> list[MatchResult]:
    """Rank the registry against a query. Pure; safe to call concurrently on one snapshot."""
    weights = weights or MatchWeights()
    query_haystack = f" {' '.join(tokenize(query.text))} "
    query_tokens = content_tokens(query.text)
    requested = set(query.requested_ids)
    active_names = set(query.active_context_names)
    related = _related_to_active(registry, query.active_context_names)

    results = []
    for descriptor in registry:
        explicitly_requested = descriptor.id in requested
        if registry.is_shadowed(descriptor.id) and not explicitly_requested:
            continue
        if descriptor.name in active_names and not explicitly_requested:
            continue
        result = score_descriptor(
            descriptor,
            query,
            weights,
            query_haystack=query_haystack,
            query_tokens=query_tokens,
            related_via=related.get(descriptor.id),
        )
        if result.score > 0:
            results.append(result)

    results.sort(key=lambda r: (-r.score, r.name, r.descriptor_id))
    return results
