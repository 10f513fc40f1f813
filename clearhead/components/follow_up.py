"""
Rule-based follow-up questions for voice notes.

Each candidate question carries keywords and an optional sentiment; the best
scoring question wins (10 points per keyword hit, 5 for a sentiment match).
"""

import random
from dataclasses import dataclass
from typing import Optional, Tuple

MIN_TRANSCRIPT_LENGTH = 20
FOLLOW_UP_PROBABILITY = 0.7


@dataclass(frozen=True)
class FollowUpQuestion:
    question: str
    keywords: Tuple[str, ...]
    sentiment: Optional[str] = None


FOLLOW_UP_QUESTIONS: Tuple[FollowUpQuestion, ...] = (
    # Stress & work
    FollowUpQuestion(
        "You mentioned feeling stressed about work. Want to talk more about what triggered that?",
        ("stress", "work", "stressed", "job", "busy"), "negative"),
    FollowUpQuestion(
        "How long has this work situation been weighing on you?",
        ("work", "overwhelmed", "pressure", "deadline"), "negative"),
    FollowUpQuestion(
        "What would help you feel less stressed about this?",
        ("stress", "anxious", "worried", "nervous"), "negative"),

    # Emotions
    FollowUpQuestion(
        "What's making you feel frustrated right now?",
        ("frustrated", "annoyed", "angry", "mad"), "negative"),
    FollowUpQuestion(
        "That sounds difficult. How are you taking care of yourself through this?",
        ("hard", "difficult", "tough", "struggling"), "negative"),
    FollowUpQuestion(
        "I hear you're feeling tired. What do you think your body is trying to tell you?",
        ("tired", "exhausted", "drained", "fatigued", "sleepy"), "negative"),

    # Relationships & family
    FollowUpQuestion(
        "Tell me more about what's going on with your family.",
        ("family", "parents", "mom", "dad", "siblings")),
    FollowUpQuestion(
        "How did that conversation with them make you feel?",
        ("talk", "conversation", "said", "told")),
    FollowUpQuestion(
        "What would you like to say to them if you could?",
        ("relationship", "partner", "friend", "boyfriend", "girlfriend")),

    # Positive moments
    FollowUpQuestion(
        "That's wonderful! What made that moment so special?",
        ("happy", "excited", "great", "amazing", "wonderful"), "positive"),
    FollowUpQuestion(
        "I'm glad you're feeling better. What helped shift things for you?",
        ("better", "good", "improved", "relief"), "positive"),

    # Self-reflection
    FollowUpQuestion(
        "What do you think you need most right now?",
        ("need", "want", "wish", "hope")),
    FollowUpQuestion(
        "How are you really feeling about all of this?",
        ("feel", "feeling", "emotion")),
    FollowUpQuestion(
        "What's one small thing you could do for yourself today?",
        ("overwhelm", "too much", "can't", "unable"), "negative"),
)

NEGATIVE_WORDS = ("bad", "sad", "angry", "frustrated", "stressed", "worried", "anxious", "tired",
                  "exhausted", "difficult", "hard", "struggle")
POSITIVE_WORDS = ("good", "happy", "great", "excited", "wonderful", "amazing", "better", "relief", "joy")

NEGATIVE_FALLBACK = "That sounds challenging. Would you like to tell me more about how you're feeling?"
POSITIVE_FALLBACK = "That's great to hear. What else is going well for you?"
GENERIC_FALLBACK = "Is there anything else on your mind you'd like to explore?"


def detect_sentiment(text: str) -> str:
    lowered = text.lower()
    negative = sum(1 for w in NEGATIVE_WORDS if w in lowered)
    positive = sum(1 for w in POSITIVE_WORDS if w in lowered)
    if negative > positive:
        return "negative"
    if positive > negative:
        return "positive"
    return "neutral"


def generate_follow_up_question(transcription: str) -> Optional[str]:
    """
    Pick the best follow-up question for a transcript.

    Returns:
        Question text, or None when the transcript is too short
    """
    if not transcription or len(transcription.strip()) < MIN_TRANSCRIPT_LENGTH:
        return None

    lowered = transcription.lower()
    sentiment = detect_sentiment(transcription)

    best: Optional[FollowUpQuestion] = None
    best_score = 0
    for candidate in FOLLOW_UP_QUESTIONS:
        score = 10 * sum(1 for k in candidate.keywords if k in lowered)
        if candidate.sentiment and candidate.sentiment == sentiment:
            score += 5
        # Ties keep the earlier question
        if score > best_score:
            best, best_score = candidate, score

    if best is not None:
        return best.question
    if sentiment == "negative":
        return NEGATIVE_FALLBACK
    if sentiment == "positive":
        return POSITIVE_FALLBACK
    return GENERIC_FALLBACK


def should_show_follow_up(entry_count: int, rng: Optional[random.Random] = None) -> bool:
    """Never on the first entry, otherwise on roughly 70% of entries."""
    if entry_count == 0:
        return False
    return (rng or random).random() < FOLLOW_UP_PROBABILITY
