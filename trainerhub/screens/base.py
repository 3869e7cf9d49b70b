"""
trainerhub/screens/base.py

Stateful view-state holders. A screen owns one loaded snapshot plus its
status, and never raises on a failed fetch or write: it records the error.

Each load takes a generation token; results that come back after the screen
was unmounted or reloaded are dropped instead of written into stale state.
"""

from enum import Enum
from typing import Any, Callable, List, Optional, TypeVar

from trainerhub.core.errors import AppError, NotFoundError
from trainerhub.core.logging import log_event
from trainerhub.features.interactions.pending import PendingKeys
from trainerhub.features.interactions.service import OptimisticMutation, settle
from trainerhub.gateway.base import DataGateway
from trainerhub.models.social import Principal

T = TypeVar("T")


class ScreenStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"
    NOT_FOUND = "not_found"


class Screen:
    name = "screen"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal]):
        self.gateway = gateway
        self.principal = principal
        self.status = ScreenStatus.LOADING
        self.last_error: Optional[str] = None
        self.mounted = True
        self.pending = PendingKeys()
        self._generation = 0

    async def load(self) -> None:
        raise NotImplementedError

    def unmount(self) -> None:
        self.mounted = False
        self._generation += 1

    def _begin(self) -> int:
        self._generation += 1
        self.status = ScreenStatus.LOADING
        self.last_error = None
        return self._generation

    def is_current(self, token: int) -> bool:
        return self.mounted and token == self._generation

    def _fail(self, token: int, exc: AppError) -> None:
        if not self.is_current(token):
            return
        self.status = ScreenStatus.NOT_FOUND if isinstance(exc, NotFoundError) else ScreenStatus.ERROR
        self.last_error = exc.message
        log_event(
            "warning",
            f"{self.name}.load_failed",
            user_id=self.principal.id if self.principal else None,
            error_code=exc.code,
        )

    def _ready(self, has_content: bool) -> None:
        self.status = ScreenStatus.READY if has_content else ScreenStatus.EMPTY

    async def _run_optimistic(
        self,
        mutation: Optional[OptimisticMutation[T]],
        get: Callable[[], List[T]],
        put: Callable[[List[T]], Any],
    ) -> bool:
        """Apply the tentative list, await the write, then keep or undo it.

        A second toggle for a key that is still in flight is ignored.
        """
        if mutation is None or not self.pending.acquire(mutation.key):
            return False
        put(mutation.items)
        try:
            outcome = await settle(mutation, current=get)
        finally:
            self.pending.release(mutation.key)
        if not self.mounted:
            return outcome.ok
        put(outcome.items)
        if outcome.error is not None:
            self.last_error = outcome.error.message
        return outcome.ok
