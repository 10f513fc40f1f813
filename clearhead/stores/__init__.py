"""
Stores Module

Local-first persisted state for ClearHead.
"""

from .journal_store import (
    EmptyEntryError,
    EntryType,
    JournalEntry,
    JournalStore,
    ReminderSettings,
)

__all__ = ['EmptyEntryError', 'EntryType', 'JournalEntry', 'JournalStore', 'ReminderSettings']
