import threading

import pytest

from clearhead.activities.voice_coach import CoachPhase, CoachStateError, VoiceCoachSession
from clearhead.components.coach_dialogue import (
    CLOSING_LINES,
    CONTINUE_PROMPTS,
    FALLBACK_FOLLOW_UPS,
    OPENING_QUESTIONS,
)
from clearhead.components.conversation_audio_manager import ConversationAudioManager
from clearhead.components.llm import ChatCompletionError
from clearhead.components.stt import TranscriptionError
from clearhead.components.ui_interface import CoachListener
from clearhead.stores.journal_store import EntryType

from conftest import BlockingPlayer, FakeChatClient, FakeMic, FakePlayer, FakeSTT, FakeTTS


class RecordingListener(CoachListener):
    def __init__(self):
        self.phases = []
        self.coach_text = []
        self.saved = []

    def on_phase_change(self, old_phase, new_phase):
        self.phases.append(new_phase)

    def on_coach_text(self, text):
        self.coach_text.append(text)

    def on_entry_saved(self, entry):
        self.saved.append(entry)


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def make_session(store, audio_manager, clock, rng, listener):
    def factory(*transcripts, tts=None, chat=None):
        return VoiceCoachSession(
            store=store,
            audio_manager=audio_manager,
            stt_service=FakeSTT(*transcripts),
            tts_service=tts or FakeTTS(),
            chat_client=chat,
            listener=listener,
            clock=clock,
            rng=rng,
        )
    return factory


def answer(session):
    session.start_recording()
    return session.stop_recording()


class TestConversationFlow:
    def test_full_conversation_is_saved_once(self, make_session, store, listener):
        chat = FakeChatClient("What made it feel heavy?", "And how are you now?")
        session = make_session("Work was rough today", "Better after a walk", chat=chat)

        session.start()
        assert session.phase == CoachPhase.LISTENING
        assert session.context.messages[0].content in OPENING_QUESTIONS["morning"]

        assert answer(session) == "Work was rough today"
        assert session.phase == CoachPhase.ASK_CONTINUE
        reply = session.context.messages[-1].content
        assert reply.startswith("What made it feel heavy? ")
        assert reply[len("What made it feel heavy? "):] in CONTINUE_PROMPTS

        session.continue_session()
        assert session.phase == CoachPhase.LISTENING
        assert session.stop_recording() == "Better after a walk"

        entry = session.finish()
        assert session.phase == CoachPhase.DONE
        assert entry.type == EntryType.VOICE
        assert entry.voice_duration == 10
        assert entry.content.startswith("**Coach:** ")
        assert "\n\nWork was rough today\n\n" in entry.content
        assert not any(line in entry.content for line in CLOSING_LINES)
        assert listener.coach_text[-1] in CLOSING_LINES

        assert session.close() is entry
        assert store.entry_count == 1
        assert listener.saved == [entry]
        assert listener.phases == [
            CoachPhase.LISTENING, CoachPhase.PROCESSING, CoachPhase.RESPONDING, CoachPhase.ASK_CONTINUE,
            CoachPhase.LISTENING, CoachPhase.PROCESSING, CoachPhase.RESPONDING, CoachPhase.ASK_CONTINUE,
            CoachPhase.DONE,
        ]

    def test_history_sent_to_chat_without_duplicates(self, make_session):
        chat = FakeChatClient("Tell me more?")
        session = make_session("I feel stuck", chat=chat)
        session.start()
        answer(session)
        messages = chat.calls[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "assistant", "user"]
        assert messages[-1]["content"] == "I feel stuck"
        assert chat.calls[0]["temperature"] == 0.8

    @pytest.mark.parametrize("chat", [None, FakeChatClient(ChatCompletionError("down")), FakeChatClient("  ")])
    def test_fallback_follow_up(self, make_session, chat):
        session = make_session("Long day", chat=chat)
        session.start()
        answer(session)
        reply = session.context.messages[-1].content
        assert any(reply.startswith(f"{line} ") for line in FALLBACK_FOLLOW_UPS)


class TestFailures:
    def test_tts_failure_never_blocks_progress(self, make_session, store):
        session = make_session("First answer", "Second answer", tts=FakeTTS(fail=True))
        session.start()
        assert session.phase == CoachPhase.LISTENING
        answer(session)
        assert session.phase == CoachPhase.ASK_CONTINUE
        session.continue_session()
        session.stop_recording()
        assert session.phase == CoachPhase.ASK_CONTINUE
        assert session.finish() is not None
        assert store.entry_count == 1

    @pytest.mark.parametrize("failure", [TranscriptionError("no speech"), "   "])
    def test_transcription_failure_returns_to_listening(self, make_session, failure):
        session = make_session(failure, "Second try worked")
        session.start()
        assert answer(session) is None
        assert session.phase == CoachPhase.LISTENING
        assert not session.context.has_user_message()
        assert answer(session) == "Second try worked"
        assert session.phase == CoachPhase.ASK_CONTINUE
        assert session.context.total_duration == 10


class TestEarlyExit:
    def test_close_after_one_answer_saves(self, make_session, store):
        session = make_session("Just one thing to say")
        session.start()
        answer(session)
        entry = session.close()
        assert session.phase == CoachPhase.CLOSED
        assert "Just one thing to say" in entry.content
        assert store.entry_count == 1

    def test_close_without_answers_saves_nothing(self, make_session, store, audio_log):
        session = make_session()
        session.start()
        session.start_recording()
        assert session.close() is None
        assert store.entry_count == 0
        assert audio_log[-2:] == ["mic.stop", "mic.unload"]

    def test_close_during_transcription_discards_transcript(self, make_session, store):
        session = make_session()

        class ClosingSTT:
            def transcribe(self, audio):
                session.close()
                return "arrived too late"

        session.stt = ClosingSTT()
        session.start()
        assert answer(session) is None
        assert session.phase == CoachPhase.CLOSED
        assert store.entry_count == 0

    def test_no_speech_after_close(self, make_session):
        tts = FakeTTS()
        session = make_session("hello there")
        session.tts = tts
        session.start()
        session.close()
        with pytest.raises(CoachStateError):
            session.start_recording()
        assert len(tts.spoken) == 1


class TestIllegalOperations:
    def test_start_twice(self, make_session):
        session = make_session()
        session.start()
        with pytest.raises(CoachStateError):
            session.start()

    def test_stop_without_recording(self, make_session):
        session = make_session()
        with pytest.raises(CoachStateError):
            session.stop_recording()
        session.start()
        with pytest.raises(CoachStateError):
            session.stop_recording()

    def test_finish_only_from_ask_continue(self, make_session):
        session = make_session()
        session.start()
        with pytest.raises(CoachStateError):
            session.finish()

    def test_recording_twice(self, make_session):
        session = make_session()
        session.start()
        session.start_recording()
        with pytest.raises(CoachStateError):
            session.start_recording()


def test_speech_and_recording_never_overlap(make_session, audio_log):
    session = make_session("An answer")
    session.start()
    answer(session)
    session.finish()
    open_player = False
    for event in audio_log:
        if event == "player.play":
            open_player = True
        elif event == "player.unload":
            open_player = False
        elif event == "mic.start":
            assert not open_player


class TestCloseDuringSpeech:
    @pytest.fixture
    def spoken_session(self, store, clock, rng, audio_log):
        """Started session; later players are built by the callables queued in `players`."""
        players = []

        def player_factory():
            if not players:
                return FakePlayer(audio_log)
            return players.pop(0)()

        manager = ConversationAudioManager(
            mic_factory=lambda: FakeMic(audio_log),
            player_factory=player_factory,
        )
        session = VoiceCoachSession(
            store=store,
            audio_manager=manager,
            stt_service=FakeSTT("Work was a lot today"),
            tts_service=FakeTTS(),
            clock=clock,
            rng=rng,
        )
        session.start()
        return session, players

    def test_close_stops_the_reply_before_returning(self, spoken_session, store, audio_log):
        session, players = spoken_session
        reply_player = BlockingPlayer(audio_log)
        players.append(lambda: reply_player)

        worker = threading.Thread(target=answer, args=(session,))
        worker.start()
        assert reply_player.started.wait(5)
        assert session.phase == CoachPhase.RESPONDING

        entry = session.close()
        audio_log.append("close returned")
        worker.join(5)
        assert not worker.is_alive()

        assert audio_log[-4:] == ["player.play", "player.stop", "player.unload", "close returned"]
        assert session.phase == CoachPhase.CLOSED
        assert "Work was a lot today" in entry.content
        assert store.entry_count == 1

    def test_close_while_the_reply_player_is_opening(self, spoken_session, store, audio_log):
        session, players = spoken_session

        def open_player_after_close():
            closer = threading.Thread(target=session.close)
            closer.start()
            closer.join(5)
            audio_log.append("close returned")
            return FakePlayer(audio_log)

        players.append(open_player_after_close)
        answer(session)

        tail = audio_log[audio_log.index("close returned"):]
        assert tail == ["close returned", "player.unload"]
        assert session.phase == CoachPhase.CLOSED
        assert store.entry_count == 1
