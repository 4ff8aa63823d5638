"""
Fuzzy Entity Resolver: finds the entity a natural-language name refers to.

Behavioral Contract:
- Tiers are tried in order and the first tier with results wins:
  exact (case-insensitive) → substring either direction → token overlap →
  normalised edit-distance similarity
- A unique exact/substring/token match is authoritative
- Several matches in one of the first three tiers are returned as
  ambiguous_matches and never auto-selected
- The similarity tier only ever offers alternatives (ranked, capped)
- Nothing above the similarity floor yields no match and no alternatives
"""

from typing import Iterable, List, Tuple

from entity_kernel.models.operation import EntityCandidate, EntityType
from entity_kernel.models.pipeline import MatchTier, ResolutionResult


def levenshtein_distance(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance / max length. Both empty is 1.0, one empty is 0.0."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


class FuzzyEntityResolver:
    """Resolves a name query against a user's existing entities."""

    def __init__(self, similarity_threshold: float = 0.3, max_alternatives: int = 3):
        self.similarity_threshold = similarity_threshold
        self.max_alternatives = max_alternatives

    def resolve(
        self,
        entity_type: EntityType,
        name_query: str,
        candidates: Iterable[EntityCandidate],
    ) -> ResolutionResult:
        pool = [c for c in candidates if c.entity_type == entity_type]
        query = _normalize(name_query or "")
        if not query or not pool:
            return ResolutionResult()

        tiers = (
            (MatchTier.EXACT, self._exact),
            (MatchTier.SUBSTRING, self._substring),
            (MatchTier.TOKEN, self._token_overlap),
        )
        for tier, matcher in tiers:
            matches = matcher(query, pool)
            if len(matches) == 1:
                return ResolutionResult(match=matches[0], tier=tier)
            if matches:
                ranked = self._rank(query, matches)
                return ResolutionResult(tier=tier, ambiguous_matches=ranked)

        alternatives = self._similar(query, pool)
        if alternatives:
            return ResolutionResult(tier=MatchTier.SIMILARITY, alternatives=alternatives)
        return ResolutionResult()

    def _exact(self, query: str, pool: List[EntityCandidate]) -> List[EntityCandidate]:
        return [c for c in pool if _normalize(c.name) == query]

    def _substring(self, query: str, pool: List[EntityCandidate]) -> List[EntityCandidate]:
        matches = []
        for c in pool:
            name = _normalize(c.name)
            if name and (query in name or name in query):
                matches.append(c)
        return matches

    def _token_overlap(self, query: str, pool: List[EntityCandidate]) -> List[EntityCandidate]:
        query_tokens = query.split()
        matches = []
        for c in pool:
            name_tokens = _normalize(c.name).split()
            if any(qt in nt for qt in query_tokens for nt in name_tokens):
                matches.append(c)
        return matches

    def _similar(self, query: str, pool: List[EntityCandidate]) -> List[EntityCandidate]:
        scored: List[Tuple[float, EntityCandidate]] = []
        for c in pool:
            score = similarity(query, _normalize(c.name))
            if score >= self.similarity_threshold:
                scored.append((score, c))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [c for _, c in scored[: self.max_alternatives]]

    def _rank(self, query: str, matches: List[EntityCandidate]) -> List[EntityCandidate]:
        """Closest names first; stable for equal scores."""
        return sorted(matches, key=lambda c: similarity(query, _normalize(c.name)), reverse=True)

