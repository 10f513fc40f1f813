"""
Activities Module

Standalone activities that can be run from main.py. Each activity owns its
session state and writes its result into the journal store.
"""

from .voice_coach import CoachPhase, CoachStateError, VoiceCoachSession
from .voice_note import VoiceNoteActivity

__all__ = ['CoachPhase', 'CoachStateError', 'VoiceCoachSession', 'VoiceNoteActivity']
