import json
from datetime import timedelta

import pytest

from clearhead.analysis.insights import (
    DEFAULT_ICON,
    INSIGHT_CACHE_KEY,
    PatternInsightAnalyzer,
    build_entry_summaries,
)
from clearhead.components.llm import ChatCompletionError
from clearhead.stores.journal_store import JournalEntry

from conftest import FakeChatClient

REPLY = json.dumps({
    "insights": [
        {"type": "theme", "title": "Work keeps coming up", "description": "You write about work often.",
         "icon": "Briefcase"},
        {"type": "emotion", "title": "Evenings feel calmer", "description": "You sound calmer at night.",
         "icon": "Rocket"},
        {"type": "prediction", "title": "Dropped", "description": "Unknown type."},
        {"type": "observation", "title": "", "description": "Missing title."},
    ]
})


def make_entries(clock, count, days_apart=1):
    return [
        JournalEntry(
            id=f"entry_{i}",
            content=f"Entry number {i} about my day",
            created_at=clock.now - timedelta(days=i * days_apart),
            updated_at=clock.now - timedelta(days=i * days_apart),
        )
        for i in range(count)
    ]


@pytest.fixture
def analyzer(storage, clock):
    def factory(*replies):
        return PatternInsightAnalyzer(storage, chat_client=FakeChatClient(*replies), clock=clock)
    return factory


def test_too_few_entries(analyzer, clock):
    insights = analyzer(REPLY)
    assert insights.analyze(make_entries(clock, 9)) == []
    assert insights.chat_client.calls == []


def test_parses_and_filters_insights(analyzer, clock, storage):
    insights = analyzer(REPLY).analyze(make_entries(clock, 12))
    assert [i.type for i in insights] == ["theme", "emotion"]
    assert insights[0].icon == "Briefcase"
    assert insights[1].icon == DEFAULT_ICON
    assert insights[0].id.startswith("insight_") and insights[0].id.endswith("_0")
    cached = json.loads(storage.data[INSIGHT_CACHE_KEY])
    assert cached["entryCount"] == 12
    assert len(cached["insights"]) == 2


def test_cache_reused_within_a_day(analyzer, clock):
    entries = make_entries(clock, 12)
    first = analyzer(REPLY)
    expected = first.analyze(entries)

    clock.advance(hours=23)
    second = analyzer(REPLY)
    assert second.analyze(entries) == expected
    assert second.chat_client.calls == []


def test_cache_expires_after_a_day(analyzer, clock):
    entries = make_entries(clock, 12)
    analyzer(REPLY).analyze(entries)

    clock.advance(hours=25)
    fresh = analyzer(REPLY)
    fresh.analyze(entries)
    assert len(fresh.chat_client.calls) == 1


def test_cache_invalidated_by_new_entry(analyzer, clock):
    entries = make_entries(clock, 12)
    analyzer(REPLY).analyze(entries)

    fresh = analyzer(REPLY)
    fresh.analyze(make_entries(clock, 13))
    assert len(fresh.chat_client.calls) == 1


@pytest.mark.parametrize("reply", ["not json", '{"insights": "nope"}', ChatCompletionError("down")])
def test_failures_return_empty_and_skip_cache(analyzer, clock, storage, reply):
    assert analyzer(reply).analyze(make_entries(clock, 12)) == []
    assert INSIGHT_CACHE_KEY not in storage.data


def test_window_requires_recent_entries(analyzer, clock):
    # 12 entries, but only 8 within the last 30 days
    insights = analyzer(REPLY)
    assert insights.analyze(make_entries(clock, 12, days_apart=4)) == []
    assert insights.chat_client.calls == []


def test_window_limits_and_orders(storage, clock):
    analyzer = PatternInsightAnalyzer(storage, clock=clock)
    entries = list(reversed(make_entries(clock, 60, days_apart=0)))
    window = analyzer.select_window(entries)
    assert len(window) == 50
    assert window == sorted(window, key=lambda e: e.created_at, reverse=True)


def test_entry_summaries_label(clock):
    entry = make_entries(clock, 1)[0]
    assert build_entry_summaries([entry]) == "[Tue, Mar 10]: Entry number 0 about my day"


def test_clear_cache(analyzer, clock, storage):
    insights = analyzer(REPLY)
    insights.analyze(make_entries(clock, 12))
    insights.clear_cache()
    assert INSIGHT_CACHE_KEY not in storage.data
