"""
Components Package - Lazy Imports

Building blocks shared by the ClearHead activities:
- Microphone recording and PCM playback
- Speech-to-text and text-to-speech using Google Cloud
- Chat completion client
- Auto-tagging, transcription formatting, coach dialogue and follow-up rules

Uses lazy imports so the pure-Python parts can be used without PyAudio or the
Google SDKs installed.
"""

# Lazy import pattern - modules are loaded on-demand via __getattr__

__all__ = [
    'MicStream',
    'PcmPlayer',
    'ConversationAudioManager',
    'GoogleSTTService',
    'GoogleTTSClient',
    'ChatCompletionClient',
    'CoachListener',
    'classify',
    'format_transcription',
    'simple_format',
]


def __getattr__(name):
    """
    Lazy import handler for components.

    Modules are loaded on-demand when accessed, preventing cascade imports of
    audio and cloud dependencies.
    """
    # Audio devices
    if name == 'MicStream':
        from .mic_stream import MicStream
        return MicStream
    elif name == 'PcmPlayer':
        from .speaker_stream import PcmPlayer
        return PcmPlayer
    elif name == 'ConversationAudioManager':
        from .conversation_audio_manager import ConversationAudioManager
        return ConversationAudioManager

    # Speech services
    elif name == 'GoogleSTTService':
        from .stt import GoogleSTTService
        return GoogleSTTService
    elif name == 'GoogleTTSClient':
        from .tts import GoogleTTSClient
        return GoogleTTSClient

    # LLM client
    elif name == 'ChatCompletionClient':
        from .llm import ChatCompletionClient
        return ChatCompletionClient

    # Session events
    elif name == 'CoachListener':
        from .ui_interface import CoachListener
        return CoachListener

    # Text processing
    elif name == 'classify':
        from .auto_tag import classify
        return classify
    elif name == 'format_transcription':
        from .formatting import format_transcription
        return format_transcription
    elif name == 'simple_format':
        from .formatting import simple_format
        return simple_format

    # Unknown attribute
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
