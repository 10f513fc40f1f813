# clearhead/components/conversation_audio_manager.py

import threading
import logging
from dataclasses import dataclass
from typing import Optional, Callable

logger = logging.getLogger(__name__)

PLAYBACK_CHUNK_BYTES = 8192


@dataclass
class RecordedClip:
    audio: bytes
    duration_seconds: int


def _default_mic_factory(audio_config: dict) -> Callable:
    def factory():
        from .mic_stream import MicStream
        return MicStream(
            rate=audio_config.get("stt_sample_rate", 16000),
            chunk_size=audio_config.get("mic_chunk_size", 1600),
        )
    return factory


def _default_player_factory(audio_config: dict) -> Callable:
    def factory():
        from .speaker_stream import PcmPlayer
        return PcmPlayer(
            sample_rate=audio_config.get("tts_sample_rate_hertz", 24000),
            sample_width_bytes=audio_config.get("tts_sample_width_bytes", 2),
            num_channels=audio_config.get("tts_num_channels", 1),
        )
    return factory


class ConversationAudioManager:
    """
    Unified component that coordinates speech capture and audio playback.

    At most one audio handle is live at a time: starting a recording stops and
    unloads any playback first, and playing TTS audio releases any recorder
    first. release_all() tears both down and is safe to call repeatedly.
    shutdown() does the same and also refuses every later recorder or player,
    so nothing can start playing once it has returned.
    """

    def __init__(
        self,
        audio_config: Optional[dict] = None,
        mic_factory: Optional[Callable] = None,
        player_factory: Optional[Callable] = None,
    ):
        """
        Initialize the audio manager.

        Args:
            audio_config: Configuration dict with audio settings
            mic_factory: Factory function that creates recorder instances
            player_factory: Factory function that creates playback instances
        """
        audio_config = audio_config or {}
        self.mic_factory = mic_factory or _default_mic_factory(audio_config)
        self.player_factory = player_factory or _default_player_factory(audio_config)

        # Microphone management
        self._current_mic = None
        self._mic_lock = threading.Lock()

        # Audio playback state
        self._current_player = None
        self._playback_lock = threading.Lock()

        # Set under both locks by shutdown()
        self._shut_down = False

        logger.info("ConversationAudioManager initialized")

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def start_recording(self) -> bool:
        """
        Stop any playback, then open a fresh recorder and start capturing.

        Returns:
            True if recording started, False after shutdown()
        """
        self.stop_playback()

        with self._mic_lock:
            if self._shut_down:
                logger.warning("Audio manager is shut down, not opening the recorder")
                return False
            if self._current_mic is not None:
                logger.warning("Recorder already active, restarting")
                self._release_mic_locked()
            mic = self.mic_factory()
            self._current_mic = mic
            # Started under the lock so shutdown() always sees a live recorder
            try:
                mic.start()
            except Exception:
                self._release_mic_locked()
                raise
        logger.info("Recording started")
        return True

    def stop_recording(self) -> Optional[RecordedClip]:
        """
        Stop and unload the recorder.

        Returns:
            The captured clip, or None if nothing was recording
        """
        with self._mic_lock:
            mic = self._current_mic
            self._current_mic = None

        if mic is None:
            logger.debug("stop_recording called with no active recorder")
            return None

        try:
            mic.stop()
            clip = RecordedClip(audio=mic.get_audio(), duration_seconds=mic.duration_seconds())
        finally:
            self._unload(mic)

        logger.info(f"Recording stopped ({clip.duration_seconds}s, {len(clip.audio)} bytes)")
        return clip

    def is_recording(self) -> bool:
        with self._mic_lock:
            return self._current_mic is not None

    def play_tts_audio(self, audio: bytes) -> bool:
        """
        Play synthesized PCM audio, blocking until it finishes or is stopped.

        Returns:
            True if playback completed, False if it was interrupted or the
            manager is shut down
        """
        if not audio:
            return True
        if self._shut_down:
            return False

        with self._mic_lock:
            if self._current_mic is not None:
                logger.debug("Releasing recorder before playback")
                self._release_mic_locked()

        self.stop_playback()
        player = self.player_factory()
        with self._playback_lock:
            refused = self._shut_down
            if not refused:
                self._current_player = player
        if refused:
            logger.info("Audio manager shut down before playback started, dropping audio")
            self._unload(player)
            return False

        chunks = (audio[i:i + PLAYBACK_CHUNK_BYTES] for i in range(0, len(audio), PLAYBACK_CHUNK_BYTES))
        try:
            return bool(player.play(chunks))
        finally:
            with self._playback_lock:
                owned = self._current_player is player
                if owned:
                    self._current_player = None
            if owned:
                self._unload(player)

    def stop_playback(self):
        """Stop and unload the current player, if any."""
        with self._playback_lock:
            player = self._current_player
            self._current_player = None

        if player is None:
            return
        try:
            player.stop()
        except Exception as e:
            logger.warning(f"Error stopping playback: {e}")
        self._unload(player)

    def is_playing(self) -> bool:
        with self._playback_lock:
            return self._current_player is not None

    def release_all(self):
        """Release both recorder and player."""
        self.stop_playback()
        with self._mic_lock:
            if self._current_mic is not None:
                self._release_mic_locked()
        logger.info("🧹 Audio resources released")

    def shutdown(self):
        """
        Release everything and refuse any later recorder or player. Playback
        that is already running is stopped before this returns.
        """
        with self._playback_lock, self._mic_lock:
            self._shut_down = True
        self.release_all()

    def _release_mic_locked(self):
        mic = self._current_mic
        self._current_mic = None
        try:
            mic.stop()
        except Exception as e:
            logger.warning(f"Error stopping recorder: {e}")
        self._unload(mic)

    @staticmethod
    def _unload(handle):
        try:
            handle.unload()
        except Exception as e:
            logger.warning(f"Error unloading audio handle: {e}")
