"""Change notifications for views that must refresh after a ledger mutation.

Delivery is best effort: a subscriber that raises is logged and skipped, it
never fails the mutation that triggered it.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    entity_type: str  # "monthly_dues", "entrance_dues", "discretionary_entry"
    entity_id: str
    new_state: Optional[str]  # canonical status, "recorded", "updated" or "deleted"
    occurred_at: datetime = field(default_factory=datetime.utcnow)


Subscriber = Callable[[ChangeEvent], None]


class SyncNotifier:
    """In-process publish/subscribe hub."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def emit(self, entity_type: str, entity_id, new_state: Optional[str]) -> ChangeEvent:
        event = ChangeEvent(entity_type=entity_type, entity_id=str(entity_id), new_state=new_state)
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Change subscriber failed for {entity_type}:{entity_id}")
        return event

    def clear(self):
        with self._lock:
            self._subscribers.clear()


notifier = SyncNotifier()
