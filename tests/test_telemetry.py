"""Tests for the read-only evidence attached to graph reads."""

import asyncio
import os

from conftest import FakeTransport

from memory_graph.core.normalizer import normalize_graph
from memory_graph.sources.telemetry import (
    build_telemetry,
    collect_source_hints,
    extract_evidence,
    extract_message_text,
    read_recent_chat_messages,
    read_source_documents,
)


class TestExtractEvidence:

    def test_chunks_and_facts(self):
        chunks, facts = extract_evidence("# Setup\nSome paragraph.\n- Uses uv\nOwner: Sam\n")
        assert [(c["kind"], c["startLine"]) for c in chunks] == [
            ("heading", 1), ("paragraph", 2), ("bullet", 3), ("bullet", 4),
        ]
        assert chunks[0]["text"] == "Setup"
        assert [f["statement"] for f in facts] == ["Uses uv", "Owner: Sam"]
        assert facts[0]["topic"] == "Setup"
        assert facts[0]["line"] == 3
        assert facts[0]["confidenceHint"] == 0.72
        assert facts[1]["confidenceHint"] == 0.8

    def test_facts_deduped_on_canonical_form(self):
        _, facts = extract_evidence("- Prefers the dark mode\n- prefers dark mode!\n")
        assert len(facts) == 1
        assert facts[0]["canonical"] == "prefers dark mode"

    def test_caps(self):
        content = "\n".join(f"- fact {i}" for i in range(200))
        chunks, facts = extract_evidence(content, max_chunks=10, max_facts=5)
        assert len(chunks) == 10
        assert len(facts) == 5


class TestSourceDocuments:

    def test_hints(self):
        graph = normalize_graph({
            "nodes": [
                {"id": "a", "source": "notes.md", "tags": ["file:SOUL.md"]},
                {"id": "b", "source": "bootstrap"},
            ],
            "edges": [{"source": "a", "target": "b", "evidence": "2024-01-01.md"}],
        })
        assert collect_source_hints(graph) == {"memory.md", "notes.md", "soul.md", "2024-01-01.md"}

    def test_hinted_documents_first(self, paths):
        paths.memory_md.write_text("# Memory\n- a\n", encoding="utf-8")
        old = paths.memory_dir / "old.md"
        new = paths.memory_dir / "new.md"
        old.write_text("- old", encoding="utf-8")
        new.write_text("- new", encoding="utf-8")
        os.utime(old, (1_000, 1_000))
        os.utime(new, (2_000, 2_000))
        os.utime(paths.memory_md, (3_000, 3_000))

        graph = normalize_graph({"nodes": [{"id": "x", "source": "old.md"}]})
        docs = read_source_documents(paths, graph)
        assert [d["name"] for d in docs] == ["MEMORY.md", "old.md", "new.md"]
        assert docs[1]["source"] == "memory"
        assert docs[0]["facts"][0]["statement"] == "a"

    def test_limit(self, paths):
        for i in range(5):
            (paths.memory_dir / f"n{i}.md").write_text("- x", encoding="utf-8")
        assert len(read_source_documents(paths, normalize_graph({}), limit=3)) == 3


class TestRecentChat:

    def test_message_text(self):
        message = {"content": [{"type": "text", "text": "hi"}, {"type": "image"}, {"type": "text", "text": "there"}]}
        assert extract_message_text(message) == "hi\nthere"
        assert extract_message_text({"content": "plain"}) == ""

    def test_agent_sessions_newest_first(self):
        histories = {
            "agent:main:1": [
                {"role": "user", "timestamp": 1_700_000_001, "content": [{"type": "text", "text": "older"}]},
                {"role": "assistant", "timestamp": 1_700_000_003_000, "content": [{"type": "text", "text": "newest"}]},
            ],
            "agent:main:2": [
                {"role": "user", "timestamp": 1_700_000_002_000, "content": [{"type": "text", "text": "middle"}]},
                {"role": "user", "timestamp": 1_700_000_004_000, "content": []},
            ],
        }
        client = FakeTransport(gateway={
            "sessions.list": {"sessions": [
                {"key": "agent:main:1", "updatedAt": 10},
                {"key": "cron:nightly", "updatedAt": 30},
                {"key": "agent:main:2", "updatedAt": 20},
            ]},
            "chat.history": lambda params: {"messages": histories[params["sessionKey"]]},
        })

        messages = asyncio.run(read_recent_chat_messages(client, timeout=5))
        assert [m["text"] for m in messages] == ["newest", "middle", "older"]
        assert messages[2]["timestampMs"] == 1_700_000_001_000
        assert ("gateway", "chat.history") in client.calls
        assert all(m["sessionKey"].startswith("agent:") for m in messages)

    def test_gateway_down(self):
        assert asyncio.run(read_recent_chat_messages(FakeTransport(), timeout=5)) == []

    def test_one_history_failing(self):
        def history(params):
            if params["sessionKey"] == "agent:b":
                return "not a dict"
            return {"messages": [{"role": "user", "timestamp": 5, "content": [{"type": "text", "text": "ok"}]}]}

        client = FakeTransport(gateway={
            "sessions.list": {"sessions": [{"key": "agent:a"}, {"key": "agent:b"}]},
            "chat.history": history,
        })
        messages = asyncio.run(read_recent_chat_messages(client, timeout=5))
        assert [m["text"] for m in messages] == ["ok"]


def test_build_telemetry():
    telemetry = build_telemetry([], [])
    assert telemetry["sourceDocuments"] == []
    assert telemetry["recentChatMessages"] == []
    assert telemetry["generatedAt"].endswith("Z")
