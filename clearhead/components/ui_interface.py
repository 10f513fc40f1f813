"""
UI Interface - Event hooks for coach session updates

Lets a front end (the CLI, or anything else) follow a voice coach session
without the session depending on how it is displayed.
"""

import threading
import logging
from typing import Any, List

logger = logging.getLogger(__name__)


class CoachListener:
    """
    No-operation listener.

    Subclass and override the hooks you need. Hooks are called on whichever
    thread drives the session.
    """

    def on_phase_change(self, old_phase, new_phase):
        pass

    def on_coach_text(self, text: str):
        pass

    def on_speaking_started(self):
        pass

    def on_speaking_stopped(self):
        pass

    def on_entry_saved(self, entry: Any):
        pass


class CoachEventBus(CoachListener):
    """
    Thread-safe fan-out to several listeners.

    A listener that raises is logged and skipped; it never breaks the session.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: List[CoachListener] = []

    def register_listener(self, listener: CoachListener):
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)
                logger.debug("Listener registered")

    def unregister_listener(self, listener: CoachListener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                logger.debug("Listener unregistered")

    def _notify(self, hook: str, *args):
        with self._lock:
            listeners = self._listeners[:]
        for listener in listeners:
            try:
                getattr(listener, hook)(*args)
            except Exception as e:
                logger.error(f"Error in listener {hook}: {e}", exc_info=True)

    def on_phase_change(self, old_phase, new_phase):
        self._notify("on_phase_change", old_phase, new_phase)

    def on_coach_text(self, text: str):
        self._notify("on_coach_text", text)

    def on_speaking_started(self):
        self._notify("on_speaking_started")

    def on_speaking_stopped(self):
        self._notify("on_speaking_stopped")

    def on_entry_saved(self, entry: Any):
        self._notify("on_entry_saved", entry)
