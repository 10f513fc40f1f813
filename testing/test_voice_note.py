import pytest

from clearhead.activities.voice_note import (
    FOLLOW_UP_SEPARATOR,
    VoiceNoteActivity,
    format_duration,
    transcription_unavailable_text,
)
from clearhead.components.formatting import simple_format
from clearhead.components.stt import TranscriptionError
from clearhead.stores.journal_store import EntryType

from conftest import FakeSTT, FakeTTS


class StubRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


ALWAYS = StubRandom(0.0)
NEVER = StubRandom(0.99)


def record_note(activity):
    activity.start_recording()
    return activity.save_note()


def test_format_duration():
    assert format_duration(0) == "0:00"
    assert format_duration(65) == "1:05"
    assert format_duration(600) == "10:00"


def test_failed_transcription_saves_placeholder(store, audio_manager):
    activity = VoiceNoteActivity(store, audio_manager, FakeSTT(TranscriptionError("offline")))
    entry = record_note(activity)
    assert entry.content == transcription_unavailable_text(5)
    assert "0:05" in entry.content
    assert entry.type == EntryType.VOICE
    assert entry.voice_duration == 5
    assert activity.follow_up_question is None


def test_long_note_without_chat_client_gets_paragraphs(store, audio_manager):
    raw = (
        "I went to work. It was busy. My boss was nice. Also I saw an old friend at lunch today "
        "and we talked for a long time about everything. Then I went home."
    )
    entry = record_note(VoiceNoteActivity(store, audio_manager, FakeSTT(raw)))
    assert entry.content == simple_format(raw)
    assert entry.content.startswith("I went to work. It was busy. My boss was nice.\n\nAlso I saw")


def test_short_note_without_chat_client_is_kept_verbatim(store, audio_manager):
    entry = record_note(VoiceNoteActivity(store, audio_manager, FakeSTT("Quick one. Feeling fine.")))
    assert entry.content == "Quick one. Feeling fine."


def test_first_note_never_gets_follow_up(store, audio_manager):
    tts = FakeTTS()
    activity = VoiceNoteActivity(store, audio_manager, FakeSTT("I'm stressed about work again"),
                                 tts_service=tts, rng=ALWAYS)
    record_note(activity)
    assert activity.follow_up_question is None
    assert tts.spoken == []


def test_follow_up_answer_is_appended(store, audio_manager):
    store.add_entry("an earlier entry")
    tts = FakeTTS()
    activity = VoiceNoteActivity(
        store, audio_manager,
        FakeSTT("I'm stressed about work again", "Mostly the deadlines"),
        tts_service=tts, rng=ALWAYS,
    )
    entry = record_note(activity)
    assert activity.follow_up_question is not None
    assert tts.spoken == [activity.follow_up_question]

    activity.respond_to_follow_up()
    assert activity.save_follow_up() is True
    updated = store.get_entry(entry.id)
    assert updated.content == f"I'm stressed about work again{FOLLOW_UP_SEPARATOR}Mostly the deadlines"
    assert updated.tags == entry.tags


def test_follow_up_skipped_by_chance(store, audio_manager):
    store.add_entry("an earlier entry")
    activity = VoiceNoteActivity(store, audio_manager, FakeSTT("I'm stressed about work again"), rng=NEVER)
    record_note(activity)
    assert activity.follow_up_question is None
    with pytest.raises(RuntimeError):
        activity.respond_to_follow_up()


def test_failed_follow_up_answer_leaves_entry(store, audio_manager):
    store.add_entry("an earlier entry")
    activity = VoiceNoteActivity(
        store, audio_manager,
        FakeSTT("I'm stressed about work again", TranscriptionError("offline")),
        rng=ALWAYS,
    )
    entry = record_note(activity)
    activity.respond_to_follow_up()
    assert activity.save_follow_up() is False
    assert store.get_entry(entry.id).content == "I'm stressed about work again"


def test_tts_failure_does_not_lose_note(store, audio_manager):
    store.add_entry("an earlier entry")
    activity = VoiceNoteActivity(store, audio_manager, FakeSTT("I'm stressed about work again"),
                                 tts_service=FakeTTS(fail=True), rng=ALWAYS)
    entry = record_note(activity)
    assert store.get_entry(entry.id) is not None
    assert activity.follow_up_question is not None
