"""Heuristic fact extraction from markdown documents."""

import re
from typing import NamedTuple

from .classifier import infer_concept_kind, to_concept_label
from .constants import MAX_FACTS_PER_EXTRACTION
from .types import ExtractedFact
from .utils import clean_inline, normalize_topic

HEADING = re.compile(r"^#{1,4}\s+(.+)")
BULLET = re.compile(r"^(?:[-*]|\d+[.)])\s+(.+)")
KEY_VALUE = re.compile(r"^([A-Za-z][^:]{1,48}):\s+(.+)")


class ExtractionResult(NamedTuple):
    """Topics (in order of first appearance) and facts from one document."""
    topics: list[str]
    facts: list[ExtractedFact]


def split_lines(content: str) -> list[str]:
    """Split text on any newline convention."""
    return content.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def extract_facts(content: str, max_facts: int = MAX_FACTS_PER_EXTRACTION) -> ExtractionResult:
    """
    Walk a document line by line and collect (topic, fact) pairs.

    Headings set the current topic. Bullets, numbered items and
    "Label: value" lines become facts. The same fact under the same topic
    is only emitted once per document.
    """
    topics: list[str] = []
    seen_topics: set[str] = set()
    facts: list[ExtractedFact] = []
    seen_facts: set[str] = set()
    topic = "General"

    def note_topic(name: str):
        key = name.lower()
        if key not in seen_topics:
            seen_topics.add(key)
            topics.append(name)

    for raw in split_lines(content or ""):
        if len(facts) >= max_facts:
            break
        line = raw.strip()
        if not line:
            continue

        heading = HEADING.match(line)
        if heading:
            topic = normalize_topic(heading.group(1))
            note_topic(topic)
            continue

        bullet = BULLET.match(line)
        if bullet:
            text = clean_inline(bullet.group(1))
        else:
            kv = KEY_VALUE.match(line)
            if not kv:
                continue
            text = clean_inline(f"{kv.group(1)}: {kv.group(2)}")
        if not text:
            continue

        key = f"{topic.lower()}::{text.lower()}"
        if key in seen_facts:
            continue
        seen_facts.add(key)
        note_topic(topic)

        concept = infer_concept_kind(text, topic)
        facts.append({
            "topic": topic,
            "text": text,
            "label": to_concept_label(text),
            "kind": concept.kind,
            "relation": concept.relation,
        })
        if len(facts) >= max_facts:
            break

    return ExtractionResult(topics, facts)
