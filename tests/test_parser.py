"""Tests for the rule-based Message Parser."""

import pytest

from entity_kernel.models.operation import EntityType, Intent
from entity_kernel.parsing.parser import RuleBasedOperationParser


class TestRuleBasedOperationParser:
    def setup_method(self):
        self.parser = RuleBasedOperationParser()

    def test_delete_called(self):
        op = self.parser.parse("delete habit called Exercise")
        assert op.entity_type == EntityType.HABIT
        assert op.intent == Intent.DELETE
        assert op.parameters == {"name": "Exercise"}
        assert op.confidence == 0.9
        assert op.original_message == "delete habit called Exercise"

    def test_bare_complete_defaults_to_habit(self):
        op = self.parser.parse("complete reading")
        assert op.entity_type == EntityType.HABIT
        assert op.intent == Intent.COMPLETE
        assert op.parameters["name"] == "reading"
        assert op.confidence == 0.7

    def test_mark_as_done(self):
        op = self.parser.parse("mark meditation as done")
        assert op.intent == Intent.COMPLETE
        assert op.parameters["name"] == "meditation"

    @pytest.mark.parametrize("message", ["asdf", "", "   "])
    def test_unrecognized(self, message):
        assert self.parser.parse(message) is None

    def test_create_habit_with_frequency(self):
        op = self.parser.parse("add habit drink water daily")
        assert op.intent == Intent.CREATE
        assert op.parameters == {"name": "drink water", "frequency": "daily"}

    def test_quoted_name(self):
        op = self.parser.parse('delete habit "Morning run"')
        assert op.parameters["name"] == "Morning run"

    def test_rename(self):
        op = self.parser.parse("rename habit Run to Jog")
        assert op.intent == Intent.UPDATE
        assert op.parameters["name"] == "Run"
        assert op.parameters["new_name"] == "Jog"

    def test_view_streaks(self):
        op = self.parser.parse("show my habit streaks")
        assert op.intent == Intent.VIEW
        assert op.parameters == {"show_streaks": True}

    def test_goal_progress(self):
        op = self.parser.parse("update goal marathon to 50%")
        assert op.entity_type == EntityType.GOAL
        assert op.intent == Intent.UPDATE
        assert op.parameters["title"] == "marathon"
        assert op.parameters["progress_percentage"] == 50.0

    def test_goal_view_status(self):
        op = self.parser.parse("show completed goals")
        assert op.intent == Intent.VIEW
        assert op.parameters == {"status": "completed"}

    def test_journal_colon_entry(self):
        op = self.parser.parse("Journal: today I did something great")
        assert op.entity_type == EntityType.JOURNAL
        assert op.intent == Intent.CREATE
        assert op.parameters["content"] == "today I did something great"

    def test_journal_delete_about(self):
        op = self.parser.parse("delete my journal entry about the beach")
        assert op.intent == Intent.DELETE
        assert op.parameters == {"search": "beach"}

    def test_journal_view_timeframe(self):
        op = self.parser.parse("show my journal this week")
        assert op.parameters["timeframe"] == "week"

    def test_mood_without_action_is_logged(self):
        op = self.parser.parse("feeling great, energy 8")
        assert op.entity_type == EntityType.MOOD
        assert op.intent == Intent.CREATE
        assert op.parameters == {"energy_level": 8}

    def test_mood_rating(self):
        op = self.parser.parse("mood 7/10")
        assert op.parameters["mood_rating"] == 7

    def test_mood_trend_view(self):
        op = self.parser.parse("how has my mood been this week")
        assert op.intent == Intent.VIEW
        assert op.parameters == {"days": 7}

    def test_routine(self):
        op = self.parser.parse("create a morning routine")
        assert op.entity_type == EntityType.ROUTINE
        assert op.parameters["name"] == "morning"

    def test_belief(self):
        op = self.parser.parse("add belief: I am worthy")
        assert op.entity_type == EntityType.BELIEF
        assert op.intent == Intent.CREATE
        assert op.parameters["statement"] == "I am worthy"

    def test_synchronicity(self):
        op = self.parser.parse("log synch: saw 11:11 three times")
        assert op.entity_type == EntityType.SYNCHRONICITY
        assert op.intent == Intent.CREATE
        assert op.parameters["title"] == "saw 11:11 three times"
        assert op.parameters["description"] == "saw 11:11 three times"
