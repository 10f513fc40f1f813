"""
Voice coach dialogue content: opening questions by time of day, the coach
system prompt, fallback follow-ups, continue prompts and closing lines.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

OPENING_QUESTIONS: Dict[str, List[str]] = {
    "morning": [
        "Good morning. How are you feeling as you start your day?",
        "Hey there. What's on your mind this morning?",
        "Morning. How did you sleep, and what's the first thing you're thinking about today?",
        "Hi. Before the day gets going, what's something you're looking forward to or thinking about?",
    ],
    "afternoon": [
        "Hey. How's your day going so far?",
        "Hi there. What's been on your mind today?",
        "Afternoon. Anything from today that you'd like to talk through?",
        "Hey. How are you feeling right now, in this moment?",
    ],
    "evening": [
        "Hey. How was your day?",
        "Evening. What's something from today that stuck with you?",
        "Hi. As your day winds down, what's on your mind?",
        "Hey there. Anything you want to reflect on from today?",
    ],
    "night": [
        "Hey. How are you feeling tonight?",
        "Hi. What's keeping you up or on your mind right now?",
        "Late night thoughts? I'm here to listen.",
        "Hey. Before you rest, is there anything you want to get off your chest?",
    ],
}

COACH_SYSTEM_PROMPT = """You are a warm, genuine journaling coach having a voice conversation. Your role is to help people reflect and process their thoughts through gentle questioning.

Guidelines:
- Be warm but not overly enthusiastic or fake
- Ask ONE short, thoughtful follow-up question (1-2 sentences max)
- Don't be preachy or give advice unless asked
- Be curious and genuinely interested
- Use casual, natural language (like talking to a friend)
- Acknowledge what they shared briefly before your question
- Help them go deeper into what they're feeling or thinking
- Never use phrases like "That's wonderful!" or "Great job!" - be authentic
- Your response will be spoken aloud, so keep it conversational

Example good responses:
- "That sounds tough. What do you think is making it feel so heavy?"
- "Interesting. When you say frustrated, where do you feel that in your body?"
- "Mmm. And how long have you been sitting with that?"
- "I hear you. What would make this feel even a little bit better?\""""

FALLBACK_FOLLOW_UPS = [
    "Tell me more about that.",
    "How does that make you feel?",
    "What else comes to mind when you think about that?",
    "And what do you think that means for you?",
]

CONTINUE_PROMPTS = [
    "Would you like to explore that more, or are you good for today?",
    "We can keep going if you'd like, or wrap up here. What feels right?",
    "Want to dig into that a bit more, or is this a good stopping point?",
    "Should we continue, or does that feel complete for now?",
]

CLOSING_LINES = [
    "Thanks for sharing with me today. Take care of yourself.",
    "I appreciate you opening up. Hope the rest of your day goes well.",
    "Thanks for talking through that. See you next time.",
    "Glad we could chat. Take it easy.",
    "Thanks for sharing. Remember, you can always come back when you need to talk.",
]


def time_of_day_bucket(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def get_opening_question(hour: int, rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(OPENING_QUESTIONS[time_of_day_bucket(hour)])


def get_continue_prompt(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(CONTINUE_PROMPTS)


def get_closing_line(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(CLOSING_LINES)


def build_coach_messages(history: Sequence) -> List[Dict[str, str]]:
    """Map coach/user history onto chat roles; the latest user message is last."""
    messages = [{"role": "system", "content": COACH_SYSTEM_PROMPT}]
    for message in history:
        role = "assistant" if message.role == "coach" else "user"
        messages.append({"role": role, "content": message.content})
    return messages


def generate_coach_response(history: Sequence, chat_client=None, rng: Optional[random.Random] = None) -> str:
    """
    One short follow-up question for the conversation so far.

    Falls back to a line from FALLBACK_FOLLOW_UPS when there is no client or
    the call fails.
    """
    if chat_client is not None:
        try:
            reply = chat_client.chat(build_coach_messages(history), temperature=0.8, max_tokens=100)
            if reply and reply.strip():
                return reply.strip()
            logger.warning("Coach response was empty, using fallback")
        except Exception as e:
            logger.warning(f"Coach response generation failed, using fallback: {e}")
    return (rng or random).choice(FALLBACK_FOLLOW_UPS)
