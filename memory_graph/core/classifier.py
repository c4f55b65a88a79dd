"""Concept classification for extracted facts.

Kinds are inferred with an ordered list of keyword rules. The first rule
that matches wins, so moving a rule changes results for any fact that
matches more than one of them.
"""

import re
from dataclasses import dataclass
from typing import NamedTuple

from .constants import CONCEPT_LABEL_MAX_CHARS, CONCEPT_LABEL_MAX_WORDS
from .utils import clean_inline, ellipsize

_LIST_MARKER = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_KEY_VALUE = re.compile(r"^([^:]{1,48}):\s*(.+)$")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


class ConceptKind(NamedTuple):
    """Semantic kind of a fact and the relation verb that links it."""
    kind: str
    relation: str


@dataclass(frozen=True)
class ConceptRule:
    """Substring rule: matches when any keyword occurs in the haystack."""
    name: str
    keywords: tuple[str, ...]
    outcome: ConceptKind

    def matches(self, haystack: str) -> bool:
        return any(keyword in haystack for keyword in self.keywords)


CONCEPT_RULES: tuple[ConceptRule, ...] = (
    ConceptRule(
        "preference",
        ("prefer", "preference", "tone", "style", "rule", "never "),
        ConceptKind("profile", "captures_preference"),
    ),
    ConceptRule(
        "task",
        ("follow-up", "follow up", "todo", "to-do", "next step"),
        ConceptKind("task", "action_item"),
    ),
    ConceptRule(
        "project",
        ("project", "setup", "config", "dashboard", "integration"),
        ConceptKind("project", "project_signal"),
    ),
    ConceptRule(
        "person",
        ("@", "name", "human", "assistant"),
        ConceptKind("person", "about_entity"),
    ),
)

FALLBACK_KIND = ConceptKind("fact", "supports")


def infer_concept_kind(text: str, topic: str = "") -> ConceptKind:
    """Classify a fact by its topic and text."""
    haystack = f"{topic} {text}".lower()
    for rule in CONCEPT_RULES:
        if rule.matches(haystack):
            return rule.outcome
    return FALLBACK_KIND


def _title_word(word: str) -> str:
    if len(word) <= 3:
        return word.lower()
    return word[:1].upper() + word[1:]


def to_concept_label(raw_fact: str) -> str:
    """Short display label for a fact.

    "Key: value" facts are labelled by their key. Anything else is labelled
    by the first seven title-cased words of its first sentence.
    """
    text = clean_inline(_LIST_MARKER.sub("", raw_fact or ""))
    if not text:
        return "Untitled"

    kv = _KEY_VALUE.match(text)
    if kv and kv.group(1).strip():
        return ellipsize(kv.group(1).strip(), CONCEPT_LABEL_MAX_CHARS)

    sentence = _SENTENCE_END.split(text, maxsplit=1)[0].rstrip(".!?")
    words = sentence.split()
    if not words:
        return "Untitled"
    label = " ".join(_title_word(w) for w in words[:CONCEPT_LABEL_MAX_WORDS])
    if len(words) > CONCEPT_LABEL_MAX_WORDS:
        label += "..."
    return label
