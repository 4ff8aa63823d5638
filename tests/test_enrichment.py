"""Tests for the enrichment heuristics."""

from entity_kernel.enrichment.extraction import (
    extract_belief_statement,
    extract_mood_context,
    extract_routine_name,
    extract_synchronicity_details,
    generate_affirmations,
    generate_basic_steps,
    generate_title_from_content,
    infer_routine_category,
    normalize_belief_statement,
)
from entity_kernel.enrichment.sentiment import (
    analyze_journal_content,
    analyze_mood_from_message,
    infer_category,
    is_mood_trend_query,
    sentiment_scores,
    trend_direction,
)


class TestJournalAnalysis:
    def test_positive_entry(self):
        analysis = analyze_journal_content("Had a great day, I feel grateful and happy")
        assert analysis.sentiment == "positive"
        assert analysis.suggested_mood == 9
        assert "positive" in analysis.suggested_tags

    def test_negative_entry(self):
        analysis = analyze_journal_content("Stressed and tired after the deadline at work")
        assert analysis.sentiment == "negative"
        assert analysis.suggested_mood == 3
        assert analysis.category == "work"
        assert "challenging" in analysis.suggested_tags

    def test_neutral_entry(self):
        analysis = analyze_journal_content("Went to the store")
        assert analysis.suggested_mood == 5
        assert analysis.mood == "neutral"

    def test_hashtags_become_tags(self):
        analysis = analyze_journal_content("Quiet evening #reading")
        assert "reading" in analysis.suggested_tags
        assert "evening" in analysis.suggested_tags

    def test_tags_capped(self):
        text = "#a #b #c #d #e #f #g great morning weekend"
        assert len(analyze_journal_content(text).suggested_tags) == 5

    def test_scores_and_category(self):
        assert sentiment_scores("happy but tired") == {"positive": 1, "negative": 1}
        assert infer_category("booked a flight for the trip") == "travel"
        assert infer_category("nothing in particular") is None


class TestMoodAnalysis:
    def test_emotion_and_energy(self):
        analysis = analyze_mood_from_message("Feeling great today, very energetic")
        assert analysis.suggested_mood == 8
        assert analysis.detected_emotion == "great"
        assert analysis.suggested_energy == 9

    def test_nothing_inferred(self):
        analysis = analyze_mood_from_message("mood check")
        assert analysis.suggested_mood is None
        assert analysis.suggested_energy is None

    def test_tags(self):
        analysis = analyze_mood_from_message("stressed about work")
        assert "work" in analysis.suggested_tags
        assert "stress" in analysis.suggested_tags

    def test_trend_query(self):
        assert is_mood_trend_query("How has my mood been this week?")
        assert not is_mood_trend_query("feeling good")

    def test_trend_direction(self):
        assert trend_direction([3, 4, 7, 8]) == "improving"
        assert trend_direction([8, 8, 4, 3]) == "declining"
        assert trend_direction([5, 5, 5, 5]) == "stable"
        assert trend_direction([5]) == "stable"

    def test_mood_context(self):
        context = extract_mood_context("Slept 7 hours of sleep, went for a run before work, sunny out")
        assert context["sleep_hours"] == 7
        assert context["exercise"] is True
        assert context["activities"] == ["work"]
        assert context["weather"] == "sunny"


class TestTitles:
    def test_title_from_first_sentence(self):
        assert generate_title_from_content("Journal: had a long walk by the river. Cold.") == "Long walk by the river"

    def test_default_title(self):
        assert generate_title_from_content("") == "Journal Entry"

    def test_long_title_truncated(self):
        title = generate_title_from_content("word " * 30)
        assert len(title) == 50
        assert title.endswith("...")


class TestRoutines:
    def test_name_and_category(self):
        assert extract_routine_name("create a morning routine") == "morning"
        assert infer_routine_category("evening wind down") == "Evening"
        assert infer_routine_category("something else") == "General"

    def test_basic_steps(self):
        steps = generate_basic_steps("morning")
        assert [s["order"] for s in steps] == [1, 2, 3]
        assert steps[0]["name"] == "Wake up"
        assert all(s["id"].startswith("step_") for s in steps)


class TestBeliefs:
    def test_normalize(self):
        assert normalize_belief_statement("confident.") == "I am confident"
        assert normalize_belief_statement("i deserve rest!") == "I deserve rest"

    def test_extract(self):
        assert extract_belief_statement("add belief: worthy of love") == "I am worthy of love"
        assert extract_belief_statement("hello") is None

    def test_affirmations(self):
        affirmations = generate_affirmations("I am capable")
        assert affirmations[0] == "I am capable"
        assert affirmations[1] == "I believe i am capable"
        assert len(affirmations) == 3


class TestSynchronicity:
    def test_details(self):
        details = extract_synchronicity_details("log synch: saw 11:11 again, wow, 9/10")
        assert details.title == "saw 11:11 again, wow, 9/10"
        assert details.significance == 9
        assert "numbers" in details.tags
        assert details.emotions == ["amazed", "wonder"]

    def test_defaults_left_to_caller(self):
        details = extract_synchronicity_details("something odd")
        assert details.significance is None
        assert details.emotions is None
