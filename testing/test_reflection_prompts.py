from datetime import timedelta

import pytest

from clearhead.analysis.reflection_prompts import ReflectionPromptGenerator
from clearhead.components.llm import ChatCompletionError
from clearhead.stores.journal_store import JournalEntry

from conftest import FakeChatClient


def entry_at(clock, days_ago, content="Thinking about the new job and what it means for me", entry_id=None):
    created = clock.now - timedelta(days=days_ago, hours=1)
    return JournalEntry(
        id=entry_id or f"entry_{days_ago}",
        content=content,
        created_at=created,
        updated_at=created,
    )


def recent_entries(clock, count):
    return [entry_at(clock, 0, content=f"note {i}", entry_id=f"recent_{i}") for i in range(count)]


def test_too_few_entries(clock):
    generator = ReflectionPromptGenerator(clock=clock)
    assert generator.generate(recent_entries(clock, 2)) == []


@pytest.mark.parametrize("count,expected", [(24, False), (25, True), (26, False), (10, True)])
def test_milestones(clock, count, expected):
    prompts = ReflectionPromptGenerator(clock=clock).generate(recent_entries(clock, count))
    ids = [p.id for p in prompts]
    assert (f"milestone_{count}" in ids) is expected


def test_two_week_look_back(clock):
    entries = recent_entries(clock, 3) + [entry_at(clock, 14)]
    prompts = ReflectionPromptGenerator(clock=clock).generate(entries)
    assert len(prompts) == 1
    prompt = prompts[0]
    assert prompt.id == "reflection_entry_14_2w"
    assert prompt.type == "follow-up"
    assert prompt.prompt.startswith('2 weeks ago you wrote: "Thinking about the new job')
    assert prompt.related_entry_id == "entry_14"
    assert prompt.related_entry_date == "Feb 24"


def test_one_month_look_back(clock):
    entries = recent_entries(clock, 3) + [entry_at(clock, 30)]
    prompts = ReflectionPromptGenerator(clock=clock).generate(entries)
    assert [p.id for p in prompts] == ["reflection_entry_30_1m"]
    assert prompts[0].prompt.startswith("About a month ago you reflected on:")


@pytest.mark.parametrize("days_ago", [11, 20, 27, 36])
def test_outside_windows(clock, days_ago):
    entries = recent_entries(clock, 3) + [entry_at(clock, days_ago)]
    assert ReflectionPromptGenerator(clock=clock).generate(entries) == []


def test_preview_is_truncated(clock):
    long_text = "x" * 100
    entries = recent_entries(clock, 3) + [entry_at(clock, 15, content=long_text)]
    prompt = ReflectionPromptGenerator(clock=clock).generate(entries)[0]
    assert prompt.related_entry_preview == "x" * 60


def test_ai_prompt(clock):
    chat = FakeChatClient("  What has surprised you lately?  ")
    prompts = ReflectionPromptGenerator(chat_client=chat, clock=clock).generate(recent_entries(clock, 12))
    assert prompts[-1].type == "pattern"
    assert prompts[-1].prompt == "What has surprised you lately?"
    assert prompts[-1].id.startswith("ai_reflection_")
    summaries = chat.calls[0]["messages"][1]["content"]
    assert summaries.count("\n---\n") == 9


def test_ai_prompt_needs_five_entries(clock):
    chat = FakeChatClient("unused")
    ReflectionPromptGenerator(chat_client=chat, clock=clock).generate(recent_entries(clock, 4))
    assert chat.calls == []


def test_ai_failure_is_skipped(clock):
    chat = FakeChatClient(ChatCompletionError("down"))
    prompts = ReflectionPromptGenerator(chat_client=chat, clock=clock).generate(recent_entries(clock, 10))
    assert [p.id for p in prompts] == ["milestone_10"]
