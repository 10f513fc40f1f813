"""
Analysis Module

Read-only consumers of the entry list: pattern insights and reflection prompts.
"""

from .insights import JournalInsight, PatternInsightAnalyzer
from .reflection_prompts import ReflectionPrompt, ReflectionPromptGenerator

__all__ = ['JournalInsight', 'PatternInsightAnalyzer', 'ReflectionPrompt', 'ReflectionPromptGenerator']
