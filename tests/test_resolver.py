"""Tests for the Fuzzy Entity Resolver."""

from entity_kernel.models.operation import EntityCandidate, EntityType
from entity_kernel.models.pipeline import MatchTier
from entity_kernel.resolution.resolver import (
    FuzzyEntityResolver,
    levenshtein_distance,
    similarity,
)


def _habits(*names):
    return [
        EntityCandidate(id=f"habit_{i}", name=name, entity_type=EntityType.HABIT)
        for i, name in enumerate(names)
    ]


class TestDistance:
    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_edges(self):
        assert similarity("", "") == 1.0
        assert similarity("abc", "") == 0.0
        assert similarity("habbit", "habit") > 0.8


class TestFuzzyEntityResolver:
    def setup_method(self):
        self.resolver = FuzzyEntityResolver()

    def test_exact_match_case_insensitive(self):
        result = self.resolver.resolve(EntityType.HABIT, "exercise", _habits("Exercise", "Reading"))
        assert result.match.name == "Exercise"
        assert result.tier == MatchTier.EXACT

    def test_unique_substring_is_authoritative(self):
        result = self.resolver.resolve(EntityType.HABIT, "reading", _habits("Reading", "Meditation"))
        assert result.match.name == "Reading"

    def test_substring_either_direction(self):
        result = self.resolver.resolve(EntityType.HABIT, "morning run today", _habits("Morning run", "Yoga"))
        assert result.match.name == "Morning run"
        assert result.tier == MatchTier.SUBSTRING

    def test_exact_beats_substring(self):
        result = self.resolver.resolve(EntityType.HABIT, "run", _habits("Morning run", "Run"))
        assert result.match.name == "Run"

    def test_multiple_substring_matches_are_ambiguous(self):
        result = self.resolver.resolve(
            EntityType.HABIT, "read", _habits("Read news", "Read books", "Yoga")
        )
        assert result.match is None
        assert result.is_ambiguous
        assert {c.name for c in result.ambiguous_matches} == {"Read news", "Read books"}

    def test_token_overlap(self):
        result = self.resolver.resolve(EntityType.HABIT, "water plants", _habits("Drink water", "Yoga"))
        assert result.match.name == "Drink water"
        assert result.tier == MatchTier.TOKEN

    def test_similarity_only_offers_alternatives(self):
        result = self.resolver.resolve(EntityType.HABIT, "exercize", _habits("Exercise", "Yoga"))
        assert result.match is None
        assert result.tier == MatchTier.SIMILARITY
        assert result.alternatives[0].name == "Exercise"

    def test_alternatives_capped_and_ranked(self):
        resolver = FuzzyEntityResolver(similarity_threshold=0.1, max_alternatives=2)
        result = resolver.resolve(EntityType.HABIT, "zzzz", _habits("zzza", "zzab", "zabc", "abcd"))
        assert [c.name for c in result.alternatives] == ["zzza", "zzab"]

    def test_nothing_close_enough(self):
        result = self.resolver.resolve(EntityType.HABIT, "xylophone", _habits("Tea"))
        assert result.match is None
        assert result.alternatives == []
        assert result.tier == MatchTier.NONE

    def test_other_entity_types_ignored(self):
        goal = EntityCandidate(id="goal_1", name="Reading", entity_type=EntityType.GOAL)
        result = self.resolver.resolve(EntityType.HABIT, "Reading", [goal])
        assert result.match is None
