"""
Shared fakes for the ClearHead tests.

No network or audio device is touched: the chat client, speech services,
microphone and speaker are all replaced by in-memory fakes that record what
was asked of them.
"""

import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from clearhead.components.conversation_audio_manager import ConversationAudioManager
from clearhead.components.llm import ChatCompletionError, parse_json_reply
from clearhead.components.stt import TranscriptionError
from clearhead.components.tts import SpeechSynthesisError
from clearhead.stores.journal_store import JournalStore


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


class MemoryStorage:
    def __init__(self, fail_writes: bool = False):
        self.data = {}
        self.fail_writes = fail_writes
        self.writes = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_writes:
            return False
        self.data[key] = value
        self.writes.append((key, value))
        return True

    def remove(self, key):
        self.data.pop(key, None)
        return True


class FakeChatClient:
    """
    Returns queued replies in order. An Exception instance in the queue is
    raised instead of returned.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def chat(self, messages, temperature=None, max_tokens=None):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if not self.replies:
            raise ChatCompletionError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def chat_json(self, messages, temperature=None, max_tokens=None):
        return parse_json_reply(self.chat(messages, temperature=temperature, max_tokens=max_tokens))


class FakeSTT:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def transcribe(self, audio):
        self.calls.append(audio)
        if not self.results:
            raise TranscriptionError("no transcript queued")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeTTS:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.spoken = []

    def synthesize(self, text):
        self.spoken.append(text)
        if self.fail:
            raise SpeechSynthesisError("tts down")
        return b"\x01\x02" * 10


class FakeMic:
    def __init__(self, log, audio=b"pcm-audio", duration=5):
        self.log = log
        self.audio = audio
        self.duration = duration

    def start(self):
        self.log.append("mic.start")

    def stop(self):
        self.log.append("mic.stop")

    def unload(self):
        self.log.append("mic.unload")

    def get_audio(self):
        return self.audio

    def duration_seconds(self):
        return self.duration


class FakePlayer:
    def __init__(self, log):
        self.log = log

    def play(self, chunks):
        self.log.append("player.play")
        for _ in chunks:
            pass
        return True

    def stop(self):
        self.log.append("player.stop")

    def unload(self):
        self.log.append("player.unload")


class BlockingPlayer(FakePlayer):
    """Plays until stop() is called."""

    def __init__(self, log):
        super().__init__(log)
        self.started = threading.Event()
        self.stopped = threading.Event()

    def play(self, chunks):
        self.log.append("player.play")
        self.started.set()
        self.stopped.wait(5)
        return False

    def stop(self):
        super().stop()
        self.stopped.set()


@pytest.fixture
def clock():
    # 10:00 local time in a fixed zone
    return FixedClock(datetime(2026, 3, 10, 10, 0, tzinfo=timezone(timedelta(hours=-5))))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, clock):
    journal = JournalStore(storage, clock=clock)
    journal.hydrate()
    yield journal
    journal.close()


@pytest.fixture
def audio_log():
    return []


@pytest.fixture
def audio_manager(audio_log):
    return ConversationAudioManager(
        mic_factory=lambda: FakeMic(audio_log),
        player_factory=lambda: FakePlayer(audio_log),
    )


@pytest.fixture
def rng():
    return random.Random(7)
