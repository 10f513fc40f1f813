"""
Reflection Prompt Generator

Look-back prompts for entries written about two weeks and about a month ago,
milestone prompts at 10/25/50/100 entries, and one optional AI prompt drawn
from recent entries. Best-effort: this never raises.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

MIN_ENTRIES = 3
MIN_ENTRIES_FOR_AI = 5
TWO_WEEK_WINDOW = (12, 18)
ONE_MONTH_WINDOW = (28, 35)
MILESTONES = (10, 25, 50, 100)
PREVIEW_CHARS = 60
AI_RECENT_ENTRIES = 10
AI_ENTRY_CHARS = 200

AI_SYSTEM_PROMPT = (
    "You generate thoughtful reflection prompts for journaling. "
    "Return ONLY the prompt text, nothing else. Be warm and supportive."
)


@dataclass
class ReflectionPrompt:
    id: str
    type: str  # follow-up | milestone | pattern
    prompt: str
    related_entry_id: Optional[str] = None
    related_entry_date: Optional[str] = None
    related_entry_preview: Optional[str] = None


class ReflectionPromptGenerator:
    def __init__(self, chat_client=None, clock: Optional[Callable[[], datetime]] = None,
                 rng: Optional[random.Random] = None):
        self.chat_client = chat_client
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._rng = rng or random.Random()

    def generate(self, entries: Sequence) -> List[ReflectionPrompt]:
        """Reflection prompts for the given entries (most-recent-first)."""
        try:
            return self._generate(entries)
        except Exception as e:
            logger.error(f"Reflection prompt generation failed: {e}", exc_info=True)
            return []

    def _generate(self, entries: Sequence) -> List[ReflectionPrompt]:
        if len(entries) < MIN_ENTRIES:
            return []

        now = self._clock()
        prompts: List[ReflectionPrompt] = []

        two_weeks = self._in_window(entries, now, TWO_WEEK_WINDOW)
        if two_weeks:
            entry = self._rng.choice(two_weeks)
            preview = entry.content[:PREVIEW_CHARS].strip()
            weeks_ago = (now - entry.created_at).days // 7
            prompts.append(ReflectionPrompt(
                id=f"reflection_{entry.id}_2w",
                type="follow-up",
                prompt=f"{weeks_ago} weeks ago you wrote: \"{preview}...\" — How do you feel about this now?",
                related_entry_id=entry.id,
                related_entry_date=_short_date(entry.created_at),
                related_entry_preview=preview,
            ))

        one_month = self._in_window(entries, now, ONE_MONTH_WINDOW)
        if one_month:
            entry = self._rng.choice(one_month)
            preview = entry.content[:PREVIEW_CHARS].strip()
            prompts.append(ReflectionPrompt(
                id=f"reflection_{entry.id}_1m",
                type="follow-up",
                prompt=f"About a month ago you reflected on: \"{preview}...\" — What has changed since then?",
                related_entry_id=entry.id,
                related_entry_date=_short_date(entry.created_at),
                related_entry_preview=preview,
            ))

        if len(entries) in MILESTONES:
            prompts.append(ReflectionPrompt(
                id=f"milestone_{len(entries)}",
                type="milestone",
                prompt=(
                    f"You've written {len(entries)} journal entries. Looking back, what themes or "
                    "patterns do you notice in your journey so far?"
                ),
            ))

        if self.chat_client is not None and len(entries) >= MIN_ENTRIES_FOR_AI:
            ai_prompt = self._ai_prompt(entries, now)
            if ai_prompt:
                prompts.append(ai_prompt)

        return prompts

    @staticmethod
    def _in_window(entries: Sequence, now: datetime, window) -> list:
        low, high = window
        return [e for e in entries if low <= (now - e.created_at).days <= high]

    def _ai_prompt(self, entries: Sequence, now: datetime) -> Optional[ReflectionPrompt]:
        summaries = "\n---\n".join(e.content[:AI_ENTRY_CHARS] for e in entries[:AI_RECENT_ENTRIES])
        messages = [
            {"role": "system", "content": AI_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Based on these recent journal entries, generate ONE thoughtful follow-up question "
                    "that helps the person reflect on their progress or see their situation differently:"
                    f"\n\n{summaries}"
                ),
            },
        ]
        try:
            text = self.chat_client.chat(messages, temperature=0.8, max_tokens=100)
        except Exception as e:
            logger.debug(f"AI reflection prompt skipped: {e}")
            return None
        if not text or not text.strip():
            return None
        return ReflectionPrompt(
            id=f"ai_reflection_{int(now.timestamp() * 1000)}",
            type="pattern",
            prompt=text.strip(),
        )


def _short_date(value: datetime) -> str:
    return f"{value:%b} {value.day}"
