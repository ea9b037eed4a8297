"""Shared lifecycle for the source and chunk managers.

A manager owns one entity type: its collection snapshot, its editor dialog
and the state machine

    Idle -> Loading -> {Loaded, LoadFailed}
    Loaded -> Submitting -> {Loaded (after refetch), EditError}

Every mutation is a direct gateway call followed by a full refetch. Failures
are pushed to the notifier once and raised as one of the ``AdminError``
kinds; nothing is retried.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from corpus_admin.config import Settings
from corpus_admin.errors import AdminError, FetchError, GatewayError, MutationError, ValidationError
from corpus_admin.schemas.common import LoadState, ViewState
from corpus_admin.services.collection import RecordCollection
from corpus_admin.services.editor import Editor
from corpus_admin.services.gateway import Gateway
from corpus_admin.services.notifier import Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")
F = TypeVar("F", bound=BaseModel)


def describe_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts)


def parse_form(model: type[F], values: F | Mapping[str, Any]) -> F:
    """Validate editor values into *model*, raising our ``ValidationError``."""
    if isinstance(values, model):
        return values
    try:
        return model.model_validate(values)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc


class RecordManager(ABC, Generic[T]):
    entity = "record"

    def __init__(self, gateway: Gateway, notifier: Notifier, settings: Settings):
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings
        self.collection: RecordCollection[T] = RecordCollection(
            f"{self.entity}s", self._fetch_records, notifier
        )
        self.editor: Editor[T] = Editor()
        self._mutation_state: LoadState | None = None

    @abstractmethod
    async def _fetch_records(self) -> list[T]:
        """Fetch the full collection from the gateway."""

    # ── State ──────────────────────────────────────────────────────────

    @property
    def items(self) -> list[T]:
        return self.collection.items

    @property
    def state(self) -> LoadState:
        return self._mutation_state or self.collection.state

    @property
    def last_error(self) -> str | None:
        return self.collection.error

    def view_state(self) -> ViewState:
        return ViewState(
            state=self.state,
            count=len(self.items),
            error=self.last_error,
            editor_open=self.editor.is_open,
            editor_mode=self.editor.mode,
            editor_record_id=self.editor.record_id,
            editor_error=self.editor.error,
        )

    def open_editor(self, record: T | None = None) -> None:
        self._mutation_state = None
        self.editor.open(record)

    def close_editor(self) -> None:
        """Cancel the dialog without mutating anything."""
        self._mutation_state = None
        self.editor.close()

    def teardown(self) -> None:
        """Drop in-flight fetches when the view goes away."""
        self.collection.cancel_pending()

    # ── Mutation plumbing ──────────────────────────────────────────────

    def _validate(self, model: type[F], values: F | Mapping[str, Any]) -> F:
        try:
            return parse_form(model, values)
        except ValidationError as exc:
            self.notifier.error(exc.message)
            raise

    async def _refresh_after_mutation(self) -> None:
        try:
            await self.collection.refresh()
        except FetchError:
            # Already reported; the write itself went through.
            pass

    def _edit_failed(self, error: AdminError) -> None:
        self._mutation_state = LoadState.EDIT_ERROR if self.editor.is_open else None
        self.editor.error = error.message
        self.notifier.error(error.message)
        logger.warning("%s %s failed: %s", self.entity.capitalize(), error.kind, error.message)

    async def _submit(self, action: Callable[[], Awaitable[R]], success_message: str) -> R:
        """Run a create/update; the editor stays open with the error on failure."""
        self._mutation_state = LoadState.SUBMITTING
        try:
            result = await action()
        except AdminError as exc:
            self._edit_failed(exc)
            raise
        except GatewayError as exc:
            error = MutationError(exc.message)
            self._edit_failed(error)
            raise error from exc
        self._mutation_state = None
        self.editor.close()
        self.notifier.success(success_message)
        logger.info(success_message)
        await self._refresh_after_mutation()
        return result

    async def _remove(self, action: Callable[[], Awaitable[None]], record_id: Any) -> None:
        """Run a delete; on failure the list is simply not refreshed."""
        self._mutation_state = LoadState.SUBMITTING
        try:
            await action()
        except AdminError as exc:
            self.notifier.error(exc.message)
            logger.warning("Deleting %s %s refused: %s", self.entity, record_id, exc.message)
            raise
        except GatewayError as exc:
            self.notifier.error(exc.message)
            logger.warning("Deleting %s %s failed: %s", self.entity, record_id, exc.message)
            raise MutationError(exc.message) from exc
        finally:
            self._mutation_state = None
        self.notifier.success("Deleted")
        logger.info("Deleted %s %s", self.entity, record_id)
        await self._refresh_after_mutation()

    @abstractmethod
    async def submit(self, values: Mapping[str, Any], **kwargs: Any) -> Any:
        """Submit the open editor: update in Edit mode, create otherwise."""
