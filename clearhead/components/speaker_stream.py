"""
Speaker Playback Stream

Plays raw PCM (TTS output) through a PyAudio output stream. Playback runs on
the caller's thread; stop() may be called from any other thread and makes
play() return at the next chunk boundary.
"""

import logging
import threading
from typing import Iterable

import pyaudio

logger = logging.getLogger(__name__)


class PcmPlayer:
    """One playback handle: play() once, then stop() and unload()."""

    def __init__(self, sample_rate: int = 24000, sample_width_bytes: int = 2, num_channels: int = 1):
        self.sample_rate = sample_rate
        self.sample_width_bytes = sample_width_bytes
        self.num_channels = num_channels
        self._pa = None
        self._stream = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()

    def _open(self) -> bool:
        with self._lock:
            # stop() before play() means the handle may already be unloaded
            if self._stopped.is_set():
                return False
            if self._stream is not None:
                return True
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=self._pa.get_format_from_width(self.sample_width_bytes),
                channels=self.num_channels,
                rate=self.sample_rate,
                output=True,
                frames_per_buffer=1024
            )
            return True

    def play(self, pcm_chunks: Iterable[bytes]) -> bool:
        """
        Write chunks to the output device until exhausted or stopped.

        Returns:
            True if playback ran to completion, False if it was stopped
        """
        if not self._open():
            return False
        for chunk in pcm_chunks:
            if self._stopped.is_set():
                return False
            with self._lock:
                if self._stream is None:
                    return False
                self._stream.write(chunk)
        return not self._stopped.is_set()

    def stop(self):
        self._stopped.set()
        with self._lock:
            if self._stream is not None:
                try:
                    self._stream.stop_stream()
                except Exception as e:
                    logger.warning(f"Error stopping playback stream: {e}")

    def unload(self):
        with self._lock:
            if self._stream is not None:
                try:
                    self._stream.close()
                except Exception as e:
                    logger.warning(f"Error closing playback stream: {e}")
                self._stream = None
            if self._pa is not None:
                try:
                    self._pa.terminate()
                except Exception as e:
                    logger.warning(f"Error terminating PyAudio: {e}")
                self._pa = None
