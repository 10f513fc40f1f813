"""
Speech-to-Text Service using Google Cloud Speech API

Turns one recorded clip (raw LINEAR16 PCM from MicStream) into a transcript.
"""

import logging

from google.cloud import speech

from ..utils.config_loader import apply_google_credentials

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Raised when a clip cannot be transcribed"""
    pass


class GoogleSTTService:
    """
    Google Cloud Speech-to-Text service for single-clip recognition.
    """

    def __init__(self, language: str = "en-US", sample_rate: int = 16000, timeout: float = 20.0):
        """
        Initialize the STT service.

        Args:
            language: Language code for recognition (default: "en-US")
            sample_rate: Audio sample rate in Hz (default: 16000)
            timeout: Seconds allowed for one recognition call
        """
        apply_google_credentials()
        self.client = speech.SpeechClient()
        self.language = language
        self.sample_rate = sample_rate
        self.timeout = timeout

        logger.info(f"STT service ready | Language: {language} | Rate: {sample_rate}Hz")

    def _build_config(self) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=self.language,
            enable_automatic_punctuation=True,
        )

    def transcribe(self, audio: bytes) -> str:
        """
        Recognize speech from a recorded clip.

        Args:
            audio: Raw PCM bytes

        Returns:
            Transcript text (results joined in order; may be empty for silence)

        Raises:
            TranscriptionError: if the recognition call fails
        """
        if not audio:
            raise TranscriptionError("Empty audio clip")

        try:
            response = self.client.recognize(
                config=self._build_config(),
                audio=speech.RecognitionAudio(content=audio),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Speech recognition failed: {e}")
            raise TranscriptionError(str(e)) from e

        parts = [
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ]
        text = " ".join(p for p in parts if p)
        logger.debug(f"Transcript: '{text}'")
        return text
