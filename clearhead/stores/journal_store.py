"""
Journal Entry Store

The authoritative in-memory collection of journal entries plus reminder
settings, user name and streak. Every mutation updates memory first and then
hands a full snapshot to a single background writer, so snapshots reach
storage in mutation order. A crash between the two steps can lose the latest
mutation.
"""

import json
import logging
import queue
import random
import re
import string
import threading
import time
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..components.auto_tag import classify, filter_entries_by_tag, get_all_tags, get_tag_stats

logger = logging.getLogger(__name__)

STORAGE_KEY = "journal_data"

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_ID_ALPHABET = string.ascii_lowercase + string.digits


class EmptyEntryError(ValueError):
    """Raised when entry content is empty after trimming"""
    pass


class EntryType(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    PROMPTED = "prompted"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _parse_timestamp(value: str) -> datetime:
    # toISOString() style timestamps end in 'Z'
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _validate_voice_duration(value):
    if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
        raise ValueError(f"voice_duration must be a non-negative integer of seconds, got {value!r}")


def _read_voice_duration(value) -> Optional[int]:
    if value is None:
        return None
    try:
        duration = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable voiceDuration {value!r}")
        return None
    return duration if duration >= 0 else None


def _parse_entry_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    # Older snapshots stored Date.toDateString(), e.g. "Mon Oct 12 2026"
    try:
        return datetime.strptime(value, "%a %b %d %Y").date()
    except ValueError:
        logger.warning(f"Unrecognized lastEntryDate '{value}', ignoring")
        return None


@dataclass
class JournalEntry:
    id: str
    content: str
    created_at: datetime
    updated_at: datetime
    type: EntryType = EntryType.TEXT
    prompt_used: Optional[str] = None
    voice_duration: Optional[int] = None
    mood: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    sentiment: Optional[str] = None

    def copy(self) -> "JournalEntry":
        return replace(self, tags=list(self.tags))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "type": self.type.value,
            "tags": list(self.tags),
        }
        if self.prompt_used is not None:
            data["promptUsed"] = self.prompt_used
        if self.voice_duration is not None:
            data["voiceDuration"] = self.voice_duration
        if self.mood is not None:
            data["mood"] = self.mood
        if self.sentiment is not None:
            data["sentiment"] = self.sentiment
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        """
        Build an entry from its snapshot form. Raises on missing or invalid
        required fields; an unreadable voiceDuration is dropped on its own.
        """
        created_at = _parse_timestamp(data["createdAt"])
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            created_at=created_at,
            updated_at=_parse_timestamp(data.get("updatedAt") or data["createdAt"]),
            type=EntryType(data.get("type", "text")),
            prompt_used=data.get("promptUsed"),
            voice_duration=_read_voice_duration(data.get("voiceDuration")),
            mood=data.get("mood"),
            tags=list(data.get("tags") or []),
            sentiment=data.get("sentiment"),
        )


@dataclass
class ReminderSettings:
    enabled: bool = False
    time: str = "20:00"
    days: List[int] = field(default_factory=lambda: [0, 1, 2, 3, 4, 5, 6])
    gentle_nudge: bool = True

    _KEY_MAP = {"enabled": "enabled", "time": "time", "days": "days", "gentleNudge": "gentle_nudge"}

    def validate(self):
        if not isinstance(self.enabled, bool) or not isinstance(self.gentle_nudge, bool):
            raise ValueError("Reminder enabled and gentleNudge must be booleans")
        if not isinstance(self.time, str) or not _TIME_PATTERN.match(self.time):
            raise ValueError(f"Reminder time must be HH:mm, got '{self.time}'")
        if not isinstance(self.days, (list, tuple)):
            raise ValueError(f"Reminder days must be a list, got {self.days!r}")
        if any(not isinstance(d, int) or isinstance(d, bool) or not 0 <= d <= 6 for d in self.days):
            raise ValueError(f"Reminder days must be integers 0-6, got {self.days}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "time": self.time,
            "days": list(self.days),
            "gentleNudge": self.gentle_nudge,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReminderSettings":
        kwargs = {attr: data[key] for key, attr in cls._KEY_MAP.items() if key in data}
        settings = cls(**kwargs)
        settings.validate()
        settings.days = sorted(set(settings.days))
        return settings


class SnapshotWriter:
    """
    Single background thread that writes queued snapshots in FIFO order.
    """

    def __init__(self, storage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._pending = 0
        self._pending_cond = threading.Condition()
        self._thread = threading.Thread(target=self._run, name="SnapshotWriter", daemon=True)
        self._closed = False
        self._thread.start()

    def submit(self, payload: str):
        if self._closed:
            logger.error("Snapshot writer is closed, dropping write")
            return
        with self._pending_cond:
            self._pending += 1
        self._queue.put(payload)

    def _run(self):
        while True:
            payload = self._queue.get()
            if payload is None:
                break
            try:
                if not self.storage.set(self.key, payload):
                    logger.error(f"Failed to persist snapshot under '{self.key}'")
            except Exception as e:
                logger.error(f"Error persisting snapshot: {e}", exc_info=True)
            finally:
                with self._pending_cond:
                    self._pending -= 1
                    self._pending_cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted snapshot is written. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._pending_cond:
            while self._pending > 0:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._pending_cond.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = None):
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        self._thread.join(timeout)


class JournalStore:
    """
    Owns the entry collection (most-recent-first) and settings.

    All read methods return copies; callers never hold references into the
    store's internal state.
    """

    MUTABLE_FIELDS = ("content", "mood", "voice_duration", "prompt_used")

    def __init__(self, storage, clock: Optional[Callable[[], datetime]] = None, storage_key: str = STORAGE_KEY):
        """
        Initialize the store.

        Args:
            storage: Key-value storage with get/set/remove
            clock: Returns the current local time (defaults to the system clock)
            storage_key: Key holding the serialized snapshot
        """
        self.storage = storage
        self.storage_key = storage_key
        self._clock = clock or _local_now
        self._lock = threading.RLock()

        self._entries: List[JournalEntry] = []
        self._reminder_settings = ReminderSettings()
        self._last_entry_date: Optional[date] = None
        self._streak = 0
        self._user_name: Optional[str] = None
        self._hydrated = False

        self._writer = SnapshotWriter(storage, storage_key)

    # ---------- Lifecycle ----------

    def hydrate(self):
        """
        Load the persisted snapshot once. Missing or corrupt data leaves the
        defaults in place; this never raises.
        """
        with self._lock:
            if self._hydrated:
                logger.debug("Store already hydrated")
                return
            try:
                raw = self.storage.get(self.storage_key)
                if raw:
                    self._load_snapshot(json.loads(raw))
                    logger.info(f"✓ Loaded {len(self._entries)} journal entries")
                else:
                    logger.info("No saved journal data, starting fresh")
            except Exception as e:
                logger.error(f"Failed to load journal data, using defaults: {e}")
                self._reset_defaults()
            finally:
                self._hydrated = True

    def _load_snapshot(self, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ValueError("snapshot is not an object")

        entries = []
        for raw_entry in data.get("entries") or []:
            try:
                entry = JournalEntry.from_dict(raw_entry)
            except Exception as e:
                logger.warning(f"Skipping unreadable entry: {e}")
                continue
            if entry.content.strip():
                entries.append(entry)

        settings = ReminderSettings()
        if data.get("reminderSettings"):
            try:
                settings = ReminderSettings.from_dict(data["reminderSettings"])
            except Exception as e:
                logger.warning(f"Invalid reminder settings, using defaults: {e}")

        self._entries = entries
        self._reminder_settings = settings
        self._last_entry_date = _parse_entry_date(data.get("lastEntryDate"))
        self._streak = int(data.get("streak") or 0)
        self._user_name = data.get("userName") or None

    def _reset_defaults(self):
        self._entries = []
        self._reminder_settings = ReminderSettings()
        self._last_entry_date = None
        self._streak = 0
        self._user_name = None

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every pending snapshot has been written."""
        return self._writer.flush(timeout)

    def close(self, timeout: Optional[float] = 5.0):
        """Drain pending writes and stop the writer thread."""
        self._writer.flush(timeout)
        self._writer.close(timeout)

    # ---------- Mutations ----------

    def add_entry(
        self,
        content: str,
        entry_type: EntryType = EntryType.TEXT,
        prompt_used: Optional[str] = None,
        voice_duration: Optional[int] = None,
        mood: Optional[str] = None,
    ) -> JournalEntry:
        """
        Create an entry, tag it, and prepend it to the collection.

        Raises:
            EmptyEntryError: if content is empty after trimming
            ValueError: if voice_duration is not a non-negative integer
        """
        if content is None or not content.strip():
            raise EmptyEntryError("Entry content cannot be empty")
        _validate_voice_duration(voice_duration)

        entry_type = EntryType(entry_type)
        tags = classify(content)

        with self._lock:
            now = self._clock()
            entry = JournalEntry(
                id=self._new_id(now),
                content=content,
                created_at=now,
                updated_at=now,
                type=entry_type,
                prompt_used=prompt_used,
                voice_duration=voice_duration,
                mood=mood,
                tags=tags.themes,
                sentiment=tags.sentiment,
            )
            self._entries.insert(0, entry)
            self._update_streak(now.date())
            self._persist_locked()
            logger.info(f"Entry added: {entry.id} ({entry_type.value}, tags={entry.tags}, sentiment={entry.sentiment})")
            return entry.copy()

    def _new_id(self, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        suffix = "".join(random.choices(_ID_ALPHABET, k=7))
        return f"entry_{millis}_{suffix}"

    def _update_streak(self, today: date):
        last = self._last_entry_date
        if last is None:
            self._streak = 1
        elif last == today - timedelta(days=1):
            self._streak += 1
        elif last != today:
            self._streak = 1
        self._last_entry_date = today

    def update_entry(self, entry_id: str, **fields) -> bool:
        """
        Merge mutable fields into an entry. Tags and sentiment are left as
        assigned at creation.

        Returns:
            True if the entry was updated, False if no entry has that id

        Raises:
            EmptyEntryError: if a content edit is empty after trimming
            ValueError: if voice_duration is not a non-negative integer
        """
        if "content" in fields and (fields["content"] is None or not str(fields["content"]).strip()):
            raise EmptyEntryError("Entry content cannot be empty")
        if "voice_duration" in fields:
            _validate_voice_duration(fields["voice_duration"])

        with self._lock:
            entry = self._find(entry_id)
            if entry is None:
                logger.warning(f"update_entry: no entry with id {entry_id}")
                return False

            for key, value in fields.items():
                if key not in self.MUTABLE_FIELDS:
                    logger.warning(f"update_entry: ignoring immutable or unknown field '{key}'")
                    continue
                if key == "prompt_used" and entry.prompt_used is not None:
                    logger.warning("update_entry: prompt_used is already set, ignoring")
                    continue
                setattr(entry, key, value)

            entry.updated_at = self._clock()
            self._persist_locked()
            return True

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            entry = self._find(entry_id)
            if entry is None:
                logger.warning(f"delete_entry: no entry with id {entry_id}")
                return False
            self._entries.remove(entry)
            self._persist_locked()
            logger.info(f"Entry deleted: {entry_id}")
            return True

    def clear_all(self):
        """Remove every entry and reset the streak."""
        with self._lock:
            self._entries = []
            self._streak = 0
            self._last_entry_date = None
            self._persist_locked()
            logger.info("🧹 All entries cleared")

    def set_reminder_settings(self, **partial):
        """
        Shallow-merge reminder settings.

        Raises:
            ValueError: on unknown keys or invalid values
        """
        with self._lock:
            current = self._reminder_settings
            allowed = {f.name for f in fields(ReminderSettings)}
            unknown = [k for k in partial if k not in allowed]
            if unknown:
                raise ValueError(f"Unknown reminder settings: {unknown}")
            updated = replace(current, **partial)
            updated.validate()
            updated.days = sorted(set(updated.days))
            self._reminder_settings = updated
            self._persist_locked()

    def set_user_name(self, name: Optional[str]):
        with self._lock:
            self._user_name = name
            self._persist_locked()

    def _find(self, entry_id: str) -> Optional[JournalEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def _snapshot_locked(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self._entries],
            "reminderSettings": self._reminder_settings.to_dict(),
            "lastEntryDate": self._last_entry_date.isoformat() if self._last_entry_date else None,
            "streak": self._streak,
            "userName": self._user_name,
        }

    def _persist_locked(self):
        if not self._hydrated:
            logger.warning("Persisting before hydration; stored data will be replaced")
        self._writer.submit(json.dumps(self._snapshot_locked(), ensure_ascii=False))

    # ---------- Reads ----------

    @property
    def entries(self) -> List[JournalEntry]:
        with self._lock:
            return [e.copy() for e in self._entries]

    def get_entry(self, entry_id: str) -> Optional[JournalEntry]:
        with self._lock:
            entry = self._find(entry_id)
            return entry.copy() if entry else None

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def last_entry_date(self) -> Optional[date]:
        return self._last_entry_date

    @property
    def reminder_settings(self) -> ReminderSettings:
        with self._lock:
            return replace(self._reminder_settings, days=list(self._reminder_settings.days))

    @property
    def user_name(self) -> Optional[str]:
        return self._user_name

    @property
    def is_hydrated(self) -> bool:
        return self._hydrated

    def get_all_tags(self) -> List[str]:
        with self._lock:
            return get_all_tags(self._entries)

    def filter_by_tag(self, tag: str) -> List[JournalEntry]:
        with self._lock:
            return [e.copy() for e in filter_entries_by_tag(self._entries, tag)]

    def get_tag_stats(self) -> Dict[str, int]:
        with self._lock:
            return get_tag_stats(self._entries)
