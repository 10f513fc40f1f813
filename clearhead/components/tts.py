import logging

from google.cloud import texttospeech

from ..utils.config_loader import apply_google_credentials

logger = logging.getLogger(__name__)


class SpeechSynthesisError(Exception):
    """Raised when text cannot be synthesized"""
    pass


class GoogleTTSClient:
    def __init__(
        self,
        voice_name: str = "en-US-Chirp3-HD-Kore",
        language_code: str = "en-US",
        sample_rate_hertz: int = 24000,
        speaking_rate: float = 1.0,
        timeout: float = 20.0,
    ):
        apply_google_credentials()
        self.client = texttospeech.TextToSpeechClient()
        logger.info("Initialized TTS client")

        self.voice_name = voice_name
        self.language_code = language_code
        # LINEAR16 so the bytes can go straight to the PCM player
        self.audio_encoding = texttospeech.AudioEncoding.LINEAR16
        self.sample_rate_hertz = sample_rate_hertz
        self.speaking_rate = speaking_rate
        self.timeout = timeout

        logger.info(f"TTS config: voice={voice_name}, lang={language_code}, sr={sample_rate_hertz}")

    def synthesize(self, full_text: str) -> bytes:
        """
        Batch TTS: returns raw PCM audio bytes for the text.

        Raises:
            SpeechSynthesisError: if the synthesis call fails
        """
        if not full_text.strip():
            return b""
        synthesis_input = texttospeech.SynthesisInput(text=full_text)
        voice = texttospeech.VoiceSelectionParams(
            name=self.voice_name,
            language_code=self.language_code
        )
        audio_conf = texttospeech.AudioConfig(
            audio_encoding=self.audio_encoding,
            sample_rate_hertz=self.sample_rate_hertz,
            speaking_rate=self.speaking_rate,
        )
        try:
            resp = self.client.synthesize_speech(
                input=synthesis_input,
                voice=voice,
                audio_config=audio_conf,
                timeout=self.timeout,
            )
        except Exception as e:
            raise SpeechSynthesisError(str(e)) from e

        audio_content = resp.audio_content
        # LINEAR16 responses carry a 44-byte WAV header
        if audio_content[:4] == b"RIFF":
            audio_content = audio_content[44:]
        return audio_content
