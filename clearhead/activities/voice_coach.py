"""
Voice Coach Activity

A spoken, multi-turn journaling conversation. The coach opens with a question,
the user records an answer, the answer is transcribed and the coach replies
with one follow-up question and asks whether to keep going. When the user
finishes (or closes early after at least one answer) the conversation is saved
as a single voice entry.

All blocking work (speech, transcription, chat calls) runs on the calling
thread. close() may be called from another thread at any time; work that
completes after close is discarded.
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from ..components.coach_dialogue import (
    generate_coach_response,
    get_closing_line,
    get_continue_prompt,
    get_opening_question,
)
from ..components.ui_interface import CoachEventBus, CoachListener
from ..stores.journal_store import EntryType, JournalEntry

logger = logging.getLogger(__name__)


class CoachPhase(Enum):
    GREETING = "greeting"
    LISTENING = "listening"
    PROCESSING = "processing"
    RESPONDING = "responding"
    ASK_CONTINUE = "ask_continue"
    DONE = "done"
    CLOSED = "closed"


ALLOWED_TRANSITIONS: Dict[CoachPhase, FrozenSet[CoachPhase]] = {
    CoachPhase.GREETING: frozenset({CoachPhase.LISTENING, CoachPhase.CLOSED}),
    CoachPhase.LISTENING: frozenset({CoachPhase.PROCESSING, CoachPhase.CLOSED}),
    CoachPhase.PROCESSING: frozenset({CoachPhase.RESPONDING, CoachPhase.LISTENING, CoachPhase.CLOSED}),
    CoachPhase.RESPONDING: frozenset({CoachPhase.ASK_CONTINUE, CoachPhase.CLOSED}),
    CoachPhase.ASK_CONTINUE: frozenset({CoachPhase.LISTENING, CoachPhase.DONE, CoachPhase.CLOSED}),
    CoachPhase.DONE: frozenset(),
    CoachPhase.CLOSED: frozenset(),
}

TERMINAL_PHASES = frozenset({CoachPhase.DONE, CoachPhase.CLOSED})


class CoachStateError(Exception):
    """Raised when a session operation is not allowed in the current phase"""
    pass


@dataclass
class CoachMessage:
    role: str  # "coach" or "user"
    content: str
    timestamp: datetime


@dataclass
class ConversationContext:
    messages: List[CoachMessage] = field(default_factory=list)
    total_duration: int = 0

    def has_user_message(self) -> bool:
        return any(m.role == "user" for m in self.messages)

    def flatten(self) -> str:
        """Coach lines prefixed with **Coach:**, user lines as spoken."""
        return "\n\n".join(
            f"**Coach:** {m.content}" if m.role == "coach" else m.content
            for m in self.messages
        )


class VoiceCoachSession:
    """
    Explicit state machine for one coach conversation.

    greeting -> listening -> processing -> responding -> ask_continue -> done,
    with closed reachable from every non-terminal phase.
    """

    def __init__(
        self,
        store,
        audio_manager,
        stt_service,
        tts_service,
        chat_client=None,
        listener: Optional[CoachListener] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            store: JournalStore that receives the finished conversation
            audio_manager: ConversationAudioManager owning mic and speaker
            stt_service: object with transcribe(audio: bytes) -> str
            tts_service: object with synthesize(text) -> bytes
            chat_client: ChatCompletionClient, or None to always use fallbacks
            listener: receives phase, text and speaking updates
            clock: returns the current local time
            rng: random source for question selection
        """
        self.store = store
        self.audio_manager = audio_manager
        self.stt = stt_service
        self.tts = tts_service
        self.chat_client = chat_client
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._rng = rng or random.Random()

        self.events = CoachEventBus()
        if listener is not None:
            self.events.register_listener(listener)

        self._lock = threading.RLock()
        self._phase = CoachPhase.GREETING
        self._started = False
        self._saved = False
        self._shutdown = threading.Event()
        self.context = ConversationContext()
        self.saved_entry: Optional[JournalEntry] = None

        logger.info("VoiceCoachSession initialized")

    # ---------- State ----------

    @property
    def phase(self) -> CoachPhase:
        return self._phase

    @property
    def is_ended(self) -> bool:
        return self._phase in TERMINAL_PHASES

    def _transition(self, new_phase: CoachPhase) -> bool:
        """
        Move to new_phase. Returns False when the session has already ended,
        in which case the late result is dropped.
        """
        with self._lock:
            old_phase = self._phase
            if old_phase in TERMINAL_PHASES:
                logger.debug(f"Ignoring transition to {new_phase.value}: session already {old_phase.value}")
                return False
            if new_phase not in ALLOWED_TRANSITIONS[old_phase]:
                raise CoachStateError(f"Illegal transition {old_phase.value} -> {new_phase.value}")
            self._phase = new_phase

        logger.info(f"Coach phase: {old_phase.value} -> {new_phase.value}")
        self.events.on_phase_change(old_phase, new_phase)
        return True

    def _require(self, *phases: CoachPhase):
        if self._phase not in phases:
            expected = ", ".join(p.value for p in phases)
            raise CoachStateError(f"Expected phase {expected}, session is {self._phase.value}")

    def _append(self, role: str, content: str) -> bool:
        with self._lock:
            if self.is_ended:
                return False
            self.context.messages.append(CoachMessage(role=role, content=content, timestamp=self._clock()))
        if role == "coach":
            self.events.on_coach_text(content)
        return True

    # ---------- Session operations ----------

    def start(self):
        """Ask the opening question, then wait for the user in listening."""
        with self._lock:
            self._require(CoachPhase.GREETING)
            if self._started:
                raise CoachStateError("Session already started")
            self._started = True

        question = get_opening_question(self._clock().hour, self._rng)
        logger.info(f"Opening question: {question}")
        self._append("coach", question)
        self._speak(question)
        self._transition(CoachPhase.LISTENING)

    def start_recording(self):
        """
        Begin capturing the user's answer. From ask_continue this continues
        the conversation first.
        """
        with self._lock:
            if self._phase == CoachPhase.ASK_CONTINUE:
                self._transition(CoachPhase.LISTENING)
            self._require(CoachPhase.LISTENING)
            if self.audio_manager.is_recording():
                raise CoachStateError("Already recording")
            # Stops any playback before the recorder opens
            self.audio_manager.start_recording()

    def stop_recording(self) -> Optional[str]:
        """
        Stop capturing, transcribe, and answer with a follow-up question.

        Returns:
            The transcript, or None when transcription failed (the session is
            back in listening so the user can try again) or the session ended
        """
        with self._lock:
            self._require(CoachPhase.LISTENING)
            if not self.audio_manager.is_recording():
                raise CoachStateError("Not recording")
            clip = self.audio_manager.stop_recording()
            if clip is not None:
                self.context.total_duration += clip.duration_seconds
            if not self._transition(CoachPhase.PROCESSING):
                return None

        transcript = self._transcribe(clip.audio if clip else b"")
        if not transcript:
            self._transition(CoachPhase.LISTENING)
            return None

        if not self._append("user", transcript):
            logger.info("Session ended during transcription, discarding transcript")
            return None
        if not self._transition(CoachPhase.RESPONDING):
            return None

        self._respond()
        return transcript

    def continue_session(self):
        """ask_continue -> listening, and start recording right away."""
        self._require(CoachPhase.ASK_CONTINUE)
        self.start_recording()

    def finish(self) -> Optional[JournalEntry]:
        """End the conversation normally: speak a closing line and save."""
        with self._lock:
            self._require(CoachPhase.ASK_CONTINUE)
            self._transition(CoachPhase.DONE)

        self.audio_manager.stop_playback()
        closing = get_closing_line(self._rng)
        self.events.on_coach_text(closing)
        self._speak(closing)

        entry = self._save()
        self.audio_manager.release_all()
        return entry

    def close(self) -> Optional[JournalEntry]:
        """
        Leave the session from any phase. Playback is stopped and the recorder
        released before this returns. A conversation with at least one user
        answer is saved.
        """
        with self._lock:
            self._shutdown.set()
            if not self.is_ended:
                self._transition(CoachPhase.CLOSED)

        # Refuses any player a speaking thread is about to open
        self.audio_manager.shutdown()
        return self._save()

    # ---------- Steps ----------

    def _transcribe(self, audio: bytes) -> Optional[str]:
        if not audio:
            logger.warning("No audio captured, back to listening")
            return None
        try:
            text = self.stt.transcribe(audio)
        except Exception as e:
            logger.warning(f"Transcription failed, back to listening: {e}")
            return None
        text = (text or "").strip()
        if not text:
            logger.warning("Empty transcript, back to listening")
            return None
        logger.info(f"User said: {text}")
        return text

    def _respond(self):
        with self._lock:
            history = list(self.context.messages)
        follow_up = generate_coach_response(history, self.chat_client, self._rng)
        reply = f"{follow_up} {get_continue_prompt(self._rng)}"

        if not self._append("coach", reply):
            logger.info("Session ended while responding, discarding reply")
            return
        self._speak(reply)
        self._transition(CoachPhase.ASK_CONTINUE)

    def _speak(self, text: str) -> bool:
        """
        Synthesize and play text. Any failure is logged and swallowed so the
        session always moves on.
        """
        if self._shutdown.is_set():
            return False

        self.events.on_speaking_started()
        try:
            audio = self.tts.synthesize(text)
            if self._shutdown.is_set():
                return False
            return self.audio_manager.play_tts_audio(audio)
        except Exception as e:
            logger.error(f"TTS error: {e}")
            return False
        finally:
            self.events.on_speaking_stopped()

    def _save(self) -> Optional[JournalEntry]:
        with self._lock:
            if self._saved:
                return self.saved_entry
            if not self.context.has_user_message():
                logger.info("No answers recorded, nothing to save")
                return None
            self._saved = True
            content = self.context.flatten()
            duration = self.context.total_duration

        try:
            entry = self.store.add_entry(content, entry_type=EntryType.VOICE, voice_duration=duration)
        except Exception as e:
            logger.error(f"Failed to save coach conversation: {e}", exc_info=True)
            return None

        self.saved_entry = entry
        logger.info(f"✓ Coach conversation saved as {entry.id} ({duration}s)")
        self.events.on_entry_saved(entry)
        return entry
