"""Tests for concept classification and labelling."""

import pytest

from memory_graph.core.classifier import (
    CONCEPT_RULES,
    FALLBACK_KIND,
    ConceptKind,
    infer_concept_kind,
    to_concept_label,
)


class TestInferConceptKind:
    """Each rule on its own, then inputs that match several rules."""

    @pytest.mark.parametrize("text,expected", [
        ("Prefers short answers", ConceptKind("profile", "captures_preference")),
        ("Never deploy on Fridays", ConceptKind("profile", "captures_preference")),
        ("TODO: rotate the API keys", ConceptKind("task", "action_item")),
        ("Next step is the migration", ConceptKind("task", "action_item")),
        ("Dashboard runs on port 3000", ConceptKind("project", "project_signal")),
        ("Ping @sam on Mondays", ConceptKind("person", "about_entity")),
        ("The sky was clear", FALLBACK_KIND),
    ])
    def test_single_rule(self, text, expected):
        assert infer_concept_kind(text) == expected

    def test_topic_counts(self):
        assert infer_concept_kind("Lives in Berlin", "Human") == ConceptKind("person", "about_entity")

    def test_preference_beats_project(self):
        assert infer_concept_kind("Project style guide uses tabs").kind == "profile"

    def test_task_beats_project(self):
        assert infer_concept_kind("Follow up on the dashboard setup").kind == "task"

    def test_project_beats_person(self):
        assert infer_concept_kind("Ask @max about the integration").kind == "project"

    def test_rule_order(self):
        assert [r.name for r in CONCEPT_RULES] == ["preference", "task", "project", "person"]

    def test_case_insensitive(self):
        assert infer_concept_kind("PREFERS TEA").kind == "profile"


class TestToConceptLabel:

    def test_key_value_uses_key(self):
        assert to_concept_label("Timezone: Europe/Berlin") == "Timezone"

    def test_strips_list_marker_and_markup(self):
        assert to_concept_label("- **Timezone**: UTC") == "Timezone"

    def test_title_cases_long_words_only(self):
        assert to_concept_label("prefers dark mode in the editor") == "Prefers Dark Mode in the Editor"

    def test_first_sentence_only(self):
        assert to_concept_label("Uses vim daily. Also likes tea.") == "Uses vim Daily"

    def test_truncates_to_seven_words(self):
        label = to_concept_label("one two three four five six seven eight nine")
        assert label == "one two Three Four Five six Seven..."

    def test_empty_is_untitled(self):
        assert to_concept_label("") == "Untitled"
        assert to_concept_label("-  ") == "Untitled"
