"""
Voice Note Activity

Record one clip, transcribe and format it, and save it as a voice entry. On
most entries (never the very first) the activity then speaks a follow-up
question; a recorded answer is appended to the same entry.
"""

import logging
import random
from typing import Optional

from ..components.follow_up import generate_follow_up_question, should_show_follow_up
from ..components.formatting import MIN_WORDS_FOR_FORMATTING, format_transcription, simple_format
from ..stores.journal_store import EntryType, JournalEntry

logger = logging.getLogger(__name__)

FOLLOW_UP_SEPARATOR = "\n\n---\n\n**Follow-up:**\n"


def format_duration(seconds: int) -> str:
    """m:ss"""
    return f"{seconds // 60}:{seconds % 60:02d}"


def transcription_unavailable_text(seconds: int) -> str:
    return (
        f"Voice note ({format_duration(seconds)}) - Transcription unavailable. "
        "Please check your connection and try again."
    )


class VoiceNoteActivity:
    """
    Single-clip voice journaling with an optional spoken follow-up.
    """

    def __init__(self, store, audio_manager, stt_service, tts_service=None, chat_client=None,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.audio_manager = audio_manager
        self.stt = stt_service
        self.tts = tts_service
        self.chat_client = chat_client
        self._rng = rng or random.Random()

        self.entry_id: Optional[str] = None
        self.follow_up_question: Optional[str] = None
        self._answering_follow_up = False

    def start_recording(self):
        """Start capturing the note (or the follow-up answer)."""
        self.audio_manager.start_recording()

    def _transcribe(self, audio: bytes) -> Optional[str]:
        """Raw transcript, or None when transcription fails or is empty."""
        if not audio:
            logger.warning("No audio captured")
            return None
        try:
            raw = (self.stt.transcribe(audio) or "").strip()
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            return None
        if not raw:
            logger.warning("Empty transcript")
            return None
        return raw

    def _format(self, raw: str) -> str:
        # Without a chat client, long notes still get local paragraph breaks
        if self.chat_client is None and len(raw.split()) >= MIN_WORDS_FOR_FORMATTING:
            return simple_format(raw)
        return format_transcription(raw, self.chat_client)

    def save_note(self) -> JournalEntry:
        """
        Stop recording and save the note. A failed transcription still saves
        a placeholder entry with the clip length.
        """
        clip = self.audio_manager.stop_recording()
        duration = clip.duration_seconds if clip else 0
        prior_count = self.store.entry_count

        raw = self._transcribe(clip.audio if clip else b"")
        if raw is None:
            entry = self.store.add_entry(
                transcription_unavailable_text(duration),
                entry_type=EntryType.VOICE,
                voice_duration=duration,
            )
            logger.info(f"Saved placeholder voice note {entry.id}")
            return entry

        content = self._format(raw)
        entry = self.store.add_entry(content, entry_type=EntryType.VOICE, voice_duration=duration)
        self.entry_id = entry.id
        logger.info(f"✓ Voice note saved: {entry.id} ({duration}s)")

        if should_show_follow_up(prior_count, self._rng):
            self.follow_up_question = generate_follow_up_question(raw)
            if self.follow_up_question:
                self._speak(self.follow_up_question)
        return entry

    def respond_to_follow_up(self):
        """Start recording an answer to the pending follow-up question."""
        if not self.follow_up_question or not self.entry_id:
            raise RuntimeError("No follow-up question pending")
        self._answering_follow_up = True
        self.audio_manager.start_recording()

    def save_follow_up(self) -> bool:
        """
        Stop recording and append the answer to the saved entry.

        Returns:
            True if the answer was appended
        """
        if not self._answering_follow_up:
            raise RuntimeError("Not recording a follow-up answer")
        self._answering_follow_up = False

        clip = self.audio_manager.stop_recording()
        raw = self._transcribe(clip.audio if clip else b"")
        self.follow_up_question = None
        if raw is None:
            return False

        existing = self.store.get_entry(self.entry_id)
        if existing is None:
            logger.warning(f"Entry {self.entry_id} no longer exists, dropping follow-up")
            return False

        answer = self._format(raw)
        return self.store.update_entry(self.entry_id, content=f"{existing.content}{FOLLOW_UP_SEPARATOR}{answer}")

    def skip_follow_up(self):
        self.follow_up_question = None
        self.audio_manager.stop_playback()

    def _speak(self, text: str):
        if self.tts is None:
            return
        try:
            self.audio_manager.play_tts_audio(self.tts.synthesize(text))
        except Exception as e:
            logger.error(f"TTS error: {e}")

    def close(self):
        self.audio_manager.release_all()
