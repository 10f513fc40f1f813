"""
Microphone Recording Stream

Captures one clip from the microphone between start() and stop().
Frames are pushed into a buffer by the PyAudio callback thread and
assembled into a single PCM clip when recording stops.
"""

import pyaudio
from queue import Queue, Empty
import logging
import threading
import time

logger = logging.getLogger(__name__)


class MicStream:
    """
    A wrapper around microphone input that records a single clip.
    stop() ends capture, unload() releases the PyAudio handle.
    """

    def __init__(self, rate: int = 16000, chunk_size: int = 1600):
        """
        Initialize the microphone stream.

        Args:
            rate: Sample rate in Hz (default: 16000)
            chunk_size: Number of frames per chunk (default: 1600)
        """
        self.rate = rate
        self.chunk_size = chunk_size
        self._buff = Queue()
        self._frames = []
        self.closed = True
        self._pa = None
        self._stream = None
        self._lock = threading.Lock()
        self._started_at = None
        self._stopped_at = None

        logger.info(f"Microphone stream ready | Rate: {rate}Hz | Chunk: {chunk_size}")

    def start(self):
        """Open the mic and begin filling buffer."""
        with self._lock:
            if not self.closed:
                logger.warning("MicStream is already running")
                return

            try:
                self._pa = pyaudio.PyAudio()
                self._stream = self._pa.open(
                    format=pyaudio.paInt16,
                    channels=1,
                    rate=self.rate,
                    input=True,
                    frames_per_buffer=self.chunk_size,
                    stream_callback=self._fill_buffer
                )
                self._frames = []
                self.closed = False
                self._started_at = time.monotonic()
                self._stopped_at = None
                logger.info("Microphone active")

            except Exception as e:
                logger.error(f"Failed to start MicStream: {e}")
                self._cleanup()
                raise

    def _fill_buffer(self, in_data: bytes, frame_count: int, time_info, status):
        """PyAudio callback: queue the captured frames."""
        if not self.closed:
            self._buff.put(in_data)
        return (None, pyaudio.paContinue)

    def stop(self):
        """Stop capturing. The recorded audio stays available until unload()."""
        with self._lock:
            if self.closed:
                return

            logger.info("Stopping MicStream...")
            self.closed = True
            self._stopped_at = time.monotonic()

            if self._stream is not None:
                try:
                    self._stream.stop_stream()
                except Exception as e:
                    logger.error(f"Error stopping audio stream: {e}")

            self._drain()
            logger.info("Microphone stopped")

    def unload(self):
        """Release the audio stream and PyAudio instance."""
        with self._lock:
            self.closed = True
            self._cleanup()

    def _drain(self):
        while True:
            try:
                self._frames.append(self._buff.get_nowait())
            except Empty:
                break

    def _cleanup(self):
        """Internal cleanup method."""
        if self._stream is not None:
            try:
                self._stream.close()
            except Exception as e:
                logger.error(f"Error closing audio stream: {e}")
            self._stream = None

        if self._pa is not None:
            try:
                self._pa.terminate()
            except Exception as e:
                logger.error(f"Error terminating PyAudio: {e}")
            self._pa = None

    def get_audio(self) -> bytes:
        """Raw LINEAR16 PCM captured so far."""
        with self._lock:
            self._drain()
            return b"".join(self._frames)

    def duration_seconds(self) -> int:
        """Whole seconds recorded."""
        if self._started_at is None:
            return 0
        end = self._stopped_at if self._stopped_at is not None else time.monotonic()
        return int(round(end - self._started_at))

    def is_running(self) -> bool:
        """Check if the microphone stream is currently running."""
        return not self.closed
