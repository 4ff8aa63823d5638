"""Tests for the Parameter Validator."""

from entity_kernel.models.operation import EntityType, Intent, ParsedEntityOperation
from entity_kernel.validation.validator import ParameterValidator, required_fields


class TestRequiredFields:
    def setup_method(self):
        self.validator = ParameterValidator()

    def test_habit_name_required_on_create(self):
        result = self.validator.validate(EntityType.HABIT, {})
        assert not result.is_valid
        assert any(e.startswith("name:") for e in result.errors)
        assert "name" in result.fields

    def test_blank_name_counts_as_missing(self):
        result = self.validator.validate(EntityType.HABIT, {"name": "   "})
        assert not result.is_valid
        assert result.errors == ["name: Field required"]

    def test_journal_content_required(self):
        result = self.validator.validate(EntityType.JOURNAL, {"title": "Monday"})
        assert not result.is_valid
        assert "content" in result.fields

    def test_mood_has_no_required_fields(self):
        assert self.validator.validate(EntityType.MOOD, {}).is_valid

    def test_synchronicity_needs_title_or_description(self):
        assert not self.validator.validate(EntityType.SYNCHRONICITY, {}).is_valid
        assert self.validator.validate(EntityType.SYNCHRONICITY, {"description": "11:11 again"}).is_valid

    def test_targeted_intent_needs_reference_without_id(self):
        result = self.validator.validate(EntityType.HABIT, {}, intent=Intent.DELETE)
        assert not result.is_valid
        assert self.validator.validate(
            EntityType.HABIT, {}, intent=Intent.DELETE, has_entity_id=True
        ).is_valid

    def test_view_requires_nothing(self):
        assert required_fields(EntityType.GOAL, Intent.VIEW) == []

    def test_journal_targets_latest_without_reference(self):
        assert self.validator.validate(EntityType.JOURNAL, {}, intent=Intent.DELETE).is_valid


class TestTypesAndRanges:
    def setup_method(self):
        self.validator = ParameterValidator()

    def test_mood_rating_out_of_range(self):
        result = self.validator.validate(EntityType.MOOD, {"mood_rating": 11})
        assert not result.is_valid
        assert result.fields == ["mood_rating"]

    def test_reports_every_violation(self):
        result = self.validator.validate(
            EntityType.MOOD, {"mood_rating": 0, "energy_level": 12}
        )
        assert not result.is_valid
        assert set(result.fields) == {"mood_rating", "energy_level"}
        assert len(result.errors) == 2

    def test_missing_and_invalid_reported_together(self):
        result = self.validator.validate(EntityType.HABIT, {"frequency": "hourly"})
        assert set(result.fields) == {"name", "frequency"}

    def test_confirmed_must_be_boolean(self):
        result = self.validator.validate(
            EntityType.HABIT, {"name": "Run", "confirmed": "yes"}
        )
        assert not result.is_valid
        assert "confirmed" in result.fields

    def test_unknown_parameters_allowed(self):
        assert self.validator.validate(
            EntityType.HABIT, {"name": "Run", "show_streaks": True}
        ).is_valid

    def test_errors_name_the_field(self):
        result = self.validator.validate(EntityType.GOAL, {"title": "Read", "priority": "urgent"})
        assert result.errors[0].startswith("priority:")

    def test_validate_operation(self):
        op = ParsedEntityOperation(
            entity_type=EntityType.HABIT,
            intent=Intent.COMPLETE,
            entity_id="habit_1",
        )
        assert self.validator.validate_operation(op).is_valid
