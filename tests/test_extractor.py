"""Tests for heuristic fact extraction."""

from memory_graph.core.extractor import extract_facts, split_lines


def test_split_lines_any_newline():
    assert split_lines("a\r\nb\rc\nd") == ["a", "b", "c", "d"]


class TestExtractFacts:

    def test_duplicate_bullet_emitted_once(self):
        result = extract_facts("## Preferences\n- Prefers dark mode\n- Prefers dark mode\n")
        assert result.topics == ["Preferences"]
        assert len(result.facts) == 1
        fact = result.facts[0]
        assert fact["topic"] == "Preferences"
        assert fact["text"] == "Prefers dark mode"
        assert fact["kind"] == "profile"
        assert fact["relation"] == "captures_preference"

    def test_same_text_under_different_topics_kept(self):
        result = extract_facts("# A\n- same\n# B\n- same\n")
        assert [f["topic"] for f in result.facts] == ["A", "B"]

    def test_facts_before_heading_are_general(self):
        result = extract_facts("- loose fact\n## Later\n- other")
        assert result.facts[0]["topic"] == "General"
        assert result.topics == ["General", "Later"]

    def test_key_value_and_numbered_lines(self):
        result = extract_facts("Name: Max\n1. Ship the release\nplain paragraph text\n")
        texts = [f["text"] for f in result.facts]
        assert texts == ["Name: Max", "Ship the release"]
        assert result.facts[0]["label"] == "Name"
        assert result.facts[0]["kind"] == "person"

    def test_urls_are_not_key_values(self):
        assert extract_facts("https://example.com/path\n").facts == []

    def test_markup_removed(self):
        result = extract_facts("- Uses **uv** for `installs`")
        assert result.facts[0]["text"] == "Uses uv for installs"

    def test_cap(self):
        content = "\n".join(f"- fact number {i}" for i in range(40))
        assert len(extract_facts(content, max_facts=5).facts) == 5
        assert len(extract_facts(content).facts) == 22

    def test_topics_case_insensitive(self):
        result = extract_facts("## Projects\n- a\n## projects\n- b\n")
        assert result.topics == ["Projects"]

    def test_empty(self):
        result = extract_facts("")
        assert result.topics == []
        assert result.facts == []
