"""
Pattern Insight Analyzer

Asks the chat model for 2-3 supportive observations about recent entries.
Results are cached under a fixed storage key and reused for 24 hours as long
as the total entry count has not changed. Every failure yields an empty list.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

INSIGHT_CACHE_KEY = "journal_insights_cache"
CACHE_DURATION_MS = 24 * 60 * 60 * 1000

MIN_ENTRIES = 10
WINDOW_DAYS = 30
MAX_WINDOW_ENTRIES = 50
ENTRY_PREVIEW_CHARS = 500
MAX_INSIGHTS = 3

INSIGHT_TYPES = ("theme", "emotion", "observation")
INSIGHT_ICONS = ("Briefcase", "Heart", "Sun", "Cloud", "Users", "Sparkles", "TrendingUp", "Moon")
DEFAULT_ICON = "Sparkles"

ANALYZER_SYSTEM_PROMPT = (
    "You are a supportive journaling companion that helps people understand their thoughts and "
    "feelings. You analyze journal entries to find meaningful patterns. Always respond with valid JSON only."
)

ANALYZER_PROMPT_TEMPLATE = """Analyze these journal entries and identify 2-3 meaningful patterns or insights. Focus on:
- Recurring themes or topics (work, relationships, health, hobbies, etc.)
- Emotional patterns (what makes them happy, stressed, peaceful)
- Time-based patterns (morning vs evening mood, weekend vs weekday)

Journal entries:
{entry_summaries}

Respond in this exact JSON format only, no other text:
{{
  "insights": [
    {{
      "type": "theme" | "emotion" | "observation",
      "title": "Short title (5-7 words max)",
      "description": "Friendly, supportive observation (1-2 sentences, speak directly to the user with 'you')",
      "icon": "Briefcase" | "Heart" | "Sun" | "Cloud" | "Users" | "Sparkles" | "TrendingUp" | "Moon"
    }}
  ]
}}

Guidelines:
- Be warm and supportive, not clinical
- Use "you" to speak directly to the user
- Focus on helpful observations, not judgments
- If you notice something positive, celebrate it
- If you notice stress patterns, be gentle and constructive
- Icons: Briefcase=work, Heart=relationships/love, Sun=positivity/energy, Cloud=stress/worry, Users=family/friends, Sparkles=creativity/joy, TrendingUp=growth/progress, Moon=rest/reflection"""


@dataclass
class JournalInsight:
    id: str
    type: str
    title: str
    description: str
    icon: str
    count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["count"] is None:
            del data["count"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalInsight":
        return cls(
            id=data["id"],
            type=data["type"],
            title=data["title"],
            description=data["description"],
            icon=data.get("icon", DEFAULT_ICON),
            count=data.get("count"),
        )


def _entry_label(created_at: datetime) -> str:
    return f"{created_at:%a, %b} {created_at.day}"


def build_entry_summaries(entries: Sequence) -> str:
    return "\n\n".join(
        f"[{_entry_label(e.created_at)}]: {e.content[:ENTRY_PREVIEW_CHARS]}" for e in entries
    )


class PatternInsightAnalyzer:
    """
    Cached insight generation over a snapshot of entries.
    """

    def __init__(self, storage, chat_client=None, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            storage: Key-value storage holding the insight cache
            chat_client: ChatCompletionClient; None disables generation
            clock: returns the current time (timezone-aware)
        """
        self.storage = storage
        self.chat_client = chat_client
        self._clock = clock or (lambda: datetime.now().astimezone())

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    def _read_cache(self, entry_count: int) -> Optional[List[JournalInsight]]:
        raw = self.storage.get(INSIGHT_CACHE_KEY)
        if not raw:
            return None
        try:
            cached = json.loads(raw)
            is_recent = self._now_ms() - int(cached["timestamp"]) < CACHE_DURATION_MS
            same_count = int(cached["entryCount"]) == entry_count
            if is_recent and same_count:
                return [JournalInsight.from_dict(i) for i in cached["insights"]]
        except Exception as e:
            logger.warning(f"Ignoring unreadable insight cache: {e}")
        return None

    def _write_cache(self, insights: List[JournalInsight], entry_count: int):
        payload = {
            "insights": [i.to_dict() for i in insights],
            "timestamp": self._now_ms(),
            "entryCount": entry_count,
        }
        if not self.storage.set(INSIGHT_CACHE_KEY, json.dumps(payload, ensure_ascii=False)):
            logger.warning("Failed to cache insights")

    def select_window(self, entries: Sequence) -> list:
        """Entries from the last 30 days, at most the 50 most recent."""
        cutoff = self._clock() - timedelta(days=WINDOW_DAYS)
        recent = sorted((e for e in entries if e.created_at >= cutoff), key=lambda e: e.created_at, reverse=True)
        return recent[:MAX_WINDOW_ENTRIES]

    def analyze(self, entries: Sequence) -> List[JournalInsight]:
        """
        Insights for the given entries (most-recent-first).

        Returns:
            Up to three insights, or an empty list when there is too little
            data or anything fails
        """
        entry_count = len(entries)
        if entry_count < MIN_ENTRIES:
            return []

        cached = self._read_cache(entry_count)
        if cached is not None:
            logger.info(f"Using cached insights ({len(cached)})")
            return cached

        window = self.select_window(entries)
        if len(window) < MIN_ENTRIES:
            logger.info(f"Only {len(window)} entries in the last {WINDOW_DAYS} days, skipping insights")
            return []

        if self.chat_client is None:
            return []

        prompt = ANALYZER_PROMPT_TEMPLATE.format(entry_summaries=build_entry_summaries(window))
        messages = [
            {"role": "system", "content": ANALYZER_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            parsed = self.chat_client.chat_json(messages, temperature=0.7, max_tokens=500)
        except Exception as e:
            logger.warning(f"Pattern analysis failed: {e}")
            return []

        insights = self._parse_insights(parsed)
        if not insights:
            logger.warning("Pattern analysis returned no usable insights")
            return []

        self._write_cache(insights, entry_count)
        logger.info(f"✓ Generated {len(insights)} insights")
        return insights

    def _parse_insights(self, parsed: Any) -> List[JournalInsight]:
        if not isinstance(parsed, dict) or not isinstance(parsed.get("insights"), list):
            return []

        stamp = self._now_ms()
        insights: List[JournalInsight] = []
        for index, item in enumerate(parsed["insights"]):
            if not isinstance(item, dict):
                continue
            title = item.get("title")
            description = item.get("description")
            if item.get("type") not in INSIGHT_TYPES or not title or not description:
                continue
            icon = item.get("icon") if item.get("icon") in INSIGHT_ICONS else DEFAULT_ICON
            count = item.get("count")
            insights.append(JournalInsight(
                id=f"insight_{stamp}_{index}",
                type=item["type"],
                title=str(title),
                description=str(description),
                icon=icon,
                count=count if isinstance(count, int) else None,
            ))
            if len(insights) == MAX_INSIGHTS:
                break
        return insights

    def clear_cache(self):
        if not self.storage.remove(INSIGHT_CACHE_KEY):
            logger.warning("Failed to clear insight cache")
