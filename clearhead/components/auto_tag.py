"""
Auto-Tagging Engine

Keyword-based theme and sentiment classification for journal entries, with an
optional AI-assisted pass that falls back to the keyword result.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

logger = logging.getLogger(__name__)

# Theme table; classification keeps this order
TAG_KEYWORDS: Dict[str, List[str]] = {
    "work": ["work", "job", "office", "boss", "colleague", "meeting", "project", "deadline", "career",
             "promotion", "salary", "coworker", "employee", "manager", "business", "client", "professional"],
    "family": ["family", "mom", "dad", "mother", "father", "parent", "sibling", "brother", "sister", "child",
               "children", "kid", "son", "daughter", "husband", "wife", "spouse", "grandparent",
               "grandmother", "grandfather", "aunt", "uncle", "cousin"],
    "relationships": ["friend", "friendship", "partner", "relationship", "dating", "love", "breakup",
                      "marriage", "together", "connection", "bond", "trust"],
    "health": ["health", "exercise", "workout", "gym", "sleep", "tired", "energy", "sick", "doctor",
               "medicine", "diet", "weight", "body", "pain", "headache", "rest", "fitness", "running", "walk"],
    "stress": ["stress", "anxious", "anxiety", "worried", "worry", "overwhelmed", "pressure", "nervous",
               "panic", "fear", "scared", "tension", "burnout", "exhausted", "frustrated", "frustration"],
    "grief": ["grief", "loss", "miss", "missing", "passed", "death", "died", "mourn", "funeral", "gone",
              "remember", "memorial"],
    "joy": ["happy", "happiness", "joy", "joyful", "excited", "excitement", "amazing", "wonderful",
            "fantastic", "great", "celebrate", "celebration", "fun", "laugh", "smile", "blessed"],
    "gratitude": ["grateful", "gratitude", "thankful", "appreciate", "appreciation", "blessed", "lucky",
                  "fortunate", "thanks"],
    "growth": ["growth", "learn", "learning", "improve", "improvement", "progress", "goal", "goals",
               "achieve", "achievement", "success", "better", "change", "changing", "develop"],
    "money": ["money", "financial", "finances", "budget", "debt", "savings", "expense", "income", "bills",
              "pay", "afford", "cost", "investment"],
    "faith": ["faith", "god", "pray", "prayer", "church", "spiritual", "believe", "belief", "soul",
              "blessing", "worship", "meditation", "meditate", "mindful"],
    "creativity": ["creative", "creativity", "art", "write", "writing", "music", "paint", "draw", "design",
                   "create", "imagine", "inspiration", "inspired", "idea", "ideas"],
}

EMOTION_KEYWORDS: Dict[str, List[str]] = {
    "positive": ["happy", "joy", "love", "grateful", "excited", "hopeful", "proud", "calm", "peaceful",
                 "content", "amazing", "wonderful", "great", "good", "better", "best", "smile", "laugh", "fun"],
    "negative": ["sad", "angry", "frustrated", "anxious", "worried", "stressed", "upset", "hurt", "lonely",
                 "scared", "afraid", "tired", "exhausted", "overwhelmed", "disappointed", "annoyed", "irritated"],
    "neutral": ["okay", "fine", "normal", "usual", "regular", "same", "nothing", "meh"],
}

SENTIMENTS = ("positive", "negative", "neutral", "mixed")

AI_MIN_CONTENT_LENGTH = 50
AI_CONTENT_PREVIEW_CHARS = 500

AI_TAG_SYSTEM_PROMPT = (
    "You analyze journal entries and extract theme tags. Return ONLY valid JSON.\n"
    f"Available themes: {', '.join(TAG_KEYWORDS)}\n"
    "Sentiment options: positive, negative, neutral, mixed"
)

_WORD_SPLIT = re.compile(r"\W+")


@dataclass
class EntryTags:
    themes: List[str] = field(default_factory=list)
    sentiment: str = "neutral"


def _matches(keyword: str, words: set, lowered: str) -> bool:
    # Substring matching is intentionally permissive ("art" matches "start")
    return keyword in words or keyword in lowered


def classify(content: str) -> EntryTags:
    """
    Extract themes and sentiment from entry content using keyword matching.

    Args:
        content: Entry text

    Returns:
        EntryTags with themes in table order and one of the four sentiments
    """
    lowered = content.lower()
    words = set(_WORD_SPLIT.split(lowered))

    themes = [
        theme for theme, keywords in TAG_KEYWORDS.items()
        if any(_matches(k, words, lowered) for k in keywords)
    ]

    positive = sum(1 for k in EMOTION_KEYWORDS["positive"] if _matches(k, words, lowered))
    negative = sum(1 for k in EMOTION_KEYWORDS["negative"] if _matches(k, words, lowered))

    if positive > 0 and negative > 0:
        sentiment = "mixed"
    elif positive > negative:
        sentiment = "positive"
    elif negative > positive:
        sentiment = "negative"
    else:
        sentiment = "neutral"

    return EntryTags(themes=themes, sentiment=sentiment)


def classify_with_ai(content: str, chat_client=None) -> EntryTags:
    """
    AI-assisted classification. Short content, a missing client, or any
    failure returns the keyword result.
    """
    basic = classify(content)
    if chat_client is None or len(content) < AI_MIN_CONTENT_LENGTH:
        return basic

    messages = [
        {"role": "system", "content": AI_TAG_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                "Analyze this journal entry and return JSON with themes array and sentiment:\n\n"
                f"\"{content[:AI_CONTENT_PREVIEW_CHARS]}\"\n\n"
                "Return format: {\"themes\": [\"tag1\", \"tag2\"], "
                "\"sentiment\": \"positive|negative|neutral|mixed\"}"
            ),
        },
    ]

    try:
        parsed = chat_client.chat_json(messages, temperature=0.3, max_tokens=100)
    except Exception as e:
        logger.warning(f"AI tagging failed, using keyword tags: {e}")
        return basic

    if not isinstance(parsed, dict):
        logger.warning("AI tagging returned non-object JSON, using keyword tags")
        return basic

    themes = basic.themes
    raw_themes = parsed.get("themes")
    if isinstance(raw_themes, list):
        known = [t for t in raw_themes if isinstance(t, str) and t in TAG_KEYWORDS]
        if known:
            themes = list(dict.fromkeys(known))

    sentiment = parsed.get("sentiment")
    if sentiment not in SENTIMENTS:
        sentiment = basic.sentiment

    return EntryTags(themes=themes, sentiment=sentiment)


def get_all_tags(entries: Iterable) -> List[str]:
    """Sorted unique tags across entries."""
    tags = set()
    for entry in entries:
        tags.update(entry.tags or [])
    return sorted(tags)


def filter_entries_by_tag(entries: Iterable, tag: str) -> list:
    return [entry for entry in entries if tag in (entry.tags or [])]


def get_tag_stats(entries: Iterable) -> Dict[str, int]:
    """Count of entries per tag."""
    stats: Dict[str, int] = {}
    for entry in entries:
        for tag in entry.tags or []:
            stats[tag] = stats.get(tag, 0) + 1
    return stats
