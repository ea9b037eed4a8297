"""Transient user-facing notifications ("Created source", gateway error text, ...).

The feed is bounded; the oldest entries fall off once ``limit`` is reached.
A front-end drains it through ``GET /api/v1/notifications``.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

from corpus_admin.schemas.common import NotificationLevel


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    def __init__(self, limit: int = 50):
        self._entries: deque[Notification] = deque(maxlen=limit)

    def success(self, message: str) -> None:
        self._entries.append(Notification(NotificationLevel.SUCCESS, message))

    def error(self, message: str) -> None:
        self._entries.append(Notification(NotificationLevel.ERROR, message))

    def peek(self) -> list[Notification]:
        return list(self._entries)

    def drain(self) -> list[Notification]:
        entries = list(self._entries)
        self._entries.clear()
        return entries
