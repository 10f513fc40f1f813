"""
Transcription Formatting

Turns raw speech-to-text output into readable paragraphs. The AI pass keeps the
speaker's words and only restructures them; any failure returns the input
unchanged. simple_format() is the local, deterministic fallback that voice
notes use when no chat client is configured.
"""

import logging
import re
from typing import List

logger = logging.getLogger(__name__)

MIN_WORDS_FOR_FORMATTING = 30
SENTENCES_PER_PARAGRAPH = 3

FORMATTER_SYSTEM_PROMPT = """You are a text formatter for journal entries. Your job is to take voice transcriptions and format them into readable, well-structured text.

Rules:
1. Break the text into natural paragraphs based on topic/thought changes
2. Add proper spacing between paragraphs (use double line breaks: \\n\\n)
3. Fix obvious grammar issues and run-on sentences
4. Keep the original meaning and words - just improve structure
5. Make it easy and pleasant to read
6. Don't add any commentary, titles, or extra content
7. Return ONLY the formatted text, nothing else
8. Preserve the conversational, personal tone
9. If there are clear topic shifts, start a new paragraph

Example input: "I've been thinking about work lately it's been really stressful my boss keeps piling on more projects and I don't know how to handle it all also I've been feeling tired all the time maybe I need a vacation or something I should probably talk to someone about this"

Example output:
I've been thinking about work lately. It's been really stressful - my boss keeps piling on more projects and I don't know how to handle it all.

Also, I've been feeling tired all the time. Maybe I need a vacation or something.

I should probably talk to someone about this."""

TRANSITION_PHRASES = (
    "also",
    "anyway",
    "meanwhile",
    "on the other hand",
    "by the way",
    "speaking of",
    "oh and",
    "another thing",
)

_SENTENCE = re.compile(r"[^.!?]+[.!?]+")


def format_transcription(raw_text: str, chat_client=None) -> str:
    """
    Add paragraph breaks and punctuation to a transcript.

    Args:
        raw_text: Raw transcript
        chat_client: ChatCompletionClient (or compatible); None skips the AI pass

    Returns:
        Formatted text, or raw_text unchanged if it is short or anything fails
    """
    if not raw_text or not raw_text.strip():
        return raw_text

    if len(raw_text.split()) < MIN_WORDS_FOR_FORMATTING:
        return raw_text

    if chat_client is None:
        return raw_text

    messages = [
        {"role": "system", "content": FORMATTER_SYSTEM_PROMPT},
        {"role": "user", "content": raw_text},
    ]
    try:
        formatted = chat_client.chat(messages, temperature=0.3, max_tokens=2000)
    except Exception as e:
        logger.warning(f"Failed to format transcription, keeping raw text: {e}")
        return raw_text

    if not formatted or not formatted.strip():
        return raw_text
    return formatted.strip()


def _split_sentences(text: str) -> List[str]:
    sentences = []
    end = 0
    for match in _SENTENCE.finditer(text):
        sentences.append(match.group(0).strip())
        end = match.end()
    # Trailing words without closing punctuation are kept as a last sentence
    tail = text[end:].strip()
    if tail:
        sentences.append(tail)
    return [s for s in sentences if s]


def starts_with_transition(sentence: str) -> bool:
    lowered = sentence.lower()
    return any(lowered.startswith(phrase) for phrase in TRANSITION_PHRASES)


def simple_format(text: str) -> str:
    """
    Group sentences into paragraphs of three, starting a new paragraph early
    when a sentence opens with a transition phrase.
    """
    if not text or not text.strip():
        return text

    paragraphs: List[str] = []
    current: List[str] = []

    for sentence in _split_sentences(text):
        if current and starts_with_transition(sentence):
            paragraphs.append(" ".join(current))
            current = []
        current.append(sentence)
        if len(current) >= SENTENCES_PER_PARAGRAPH:
            paragraphs.append(" ".join(current))
            current = []

    if current:
        paragraphs.append(" ".join(current))

    return "\n\n".join(paragraphs)
