"""
Per-key notification cooldown.

Process-local and not persisted: after a restart at most one extra
notification per key can be sent.
"""

from datetime import datetime, timedelta
from typing import Callable

from ..models.work_item import utcnow


class NotificationThrottle:
    """
    At most one notification per key per cooldown window.

    Keys are work item ids (or ``mention:<id>`` for mention reminders), never
    sweep names, so overlapping sweeps share one gate.

    Usage:
        if throttle.can_notify(item.id):
            if await sink.post(...):
                throttle.record_notified(item.id)
    """

    def __init__(
        self,
        cooldown: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cooldown = cooldown
        self._clock = clock
        self._last_notified: dict[str, datetime] = {}

    def can_notify(self, key: str, now: datetime | None = None) -> bool:
        last = self._last_notified.get(key)
        if last is None:
            return True
        return (now or self._clock()) - last >= self.cooldown

    def record_notified(self, key: str, now: datetime | None = None) -> None:
        """Call only after the notification was actually delivered."""
        self._last_notified[key] = now or self._clock()

    def prune(self, now: datetime | None = None) -> int:
        """Drop entries whose cooldown has expired; returns how many were removed."""
        moment = now or self._clock()
        expired = [k for k, t in self._last_notified.items() if moment - t >= self.cooldown]
        for key in expired:
            del self._last_notified[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._last_notified)
