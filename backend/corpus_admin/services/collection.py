"""Full-collection snapshot with invalidate-and-refetch.

Each entity type keeps one ``RecordCollection``: the last successfully
fetched list, its load state and the last error. ``refresh()`` replaces the
whole snapshot; there is no incremental update.

Every fetch carries a ``FetchToken``. Starting a newer fetch, or calling
``cancel_pending()`` when a view is torn down, cancels the older tokens, and
a response that arrives for a cancelled token is dropped instead of being
written into the snapshot.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Generic, TypeVar

from corpus_admin.errors import FetchError, GatewayError
from corpus_admin.schemas.common import LoadState
from corpus_admin.services.notifier import Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchToken:
    """Cancellation flag for one in-flight fetch."""

    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class RecordCollection(Generic[T]):
    def __init__(self, name: str, fetch: Callable[[], Awaitable[list[T]]], notifier: Notifier):
        self.name = name
        self._fetch = fetch
        self._notifier = notifier
        self._pending: list[FetchToken] = []
        self.items: list[T] = []
        self.state = LoadState.IDLE
        self.error: str | None = None
        self.loaded_at: datetime | None = None

    @property
    def is_loading(self) -> bool:
        return bool(self._pending)

    def cancel_pending(self) -> int:
        """Cancel every in-flight fetch; returns how many were cancelled."""
        count = len(self._pending)
        for token in self._pending:
            token.cancel()
        self._pending.clear()
        if count and self.state == LoadState.LOADING:
            self.state = LoadState.LOADED if self.loaded_at else LoadState.IDLE
        return count

    async def refresh(self) -> list[T]:
        """Refetch the whole collection.

        Returns the new snapshot, or the current one if this fetch was
        superseded. Raises ``FetchError`` when the fetch fails; the previous
        items are kept.
        """
        self.cancel_pending()
        token = FetchToken()
        self._pending.append(token)
        self.state = LoadState.LOADING
        try:
            items = await self._fetch()
        except GatewayError as exc:
            if token.cancelled:
                logger.debug("Dropping failed %s fetch that was superseded: %s", self.name, exc)
                return self.items
            self.state = LoadState.LOAD_FAILED
            self.error = exc.message
            self._notifier.error(exc.message)
            logger.warning("Loading %s failed: %s", self.name, exc.message)
            raise FetchError(exc.message) from exc
        finally:
            if token in self._pending:
                self._pending.remove(token)

        if token.cancelled:
            logger.debug("Dropping stale %s response (%d rows)", self.name, len(items))
            return self.items
        self.items = items
        self.state = LoadState.LOADED
        self.error = None
        self.loaded_at = datetime.now(timezone.utc)
        return items
