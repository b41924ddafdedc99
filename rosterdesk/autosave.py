from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from rosterdesk.config import get_autosave_delay_seconds
from rosterdesk.errors import SaveFailure
from rosterdesk.schemas import Roster

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


CallLater = Callable[[float, Callable[[], None]], TimerHandle]


def _loop_call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class AutoSaveState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"


class AutoSaveScheduler:
    def __init__(
        self,
        persist: Callable[[Roster], Awaitable[Roster]],
        snapshot: Callable[[], Roster],
        on_saved: Callable[[Roster, Roster], None] | None = None,
        *,
        delay: float | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self._persist = persist
        self._snapshot = snapshot
        self._on_saved = on_saved
        self.delay = get_autosave_delay_seconds() if delay is None else delay
        self._call_later = call_later or _loop_call_later
        self._handle: TimerHandle | None = None
        self._inflight: asyncio.Future[Roster] | None = None
        self._dirty = False
        self.state = AutoSaveState.IDLE
        self.last_error: SaveFailure | None = None
        self.save_count = 0

    @property
    def has_pending_changes(self) -> bool:
        return self.state is AutoSaveState.PENDING or self._dirty

    def notify_mutation(self) -> None:
        if self.state is AutoSaveState.SAVING:
            self._dirty = True
            return
        self._arm()

    def cancel(self) -> None:
        # An in-flight save is left to finish.
        self._release_timer()
        self._dirty = False
        if self.state is AutoSaveState.PENDING:
            self.state = AutoSaveState.IDLE
            logger.debug("Pending auto-save cancelled")

    async def save_now(self) -> Roster:
        self._release_timer()
        while self._inflight is not None:
            await asyncio.wait({self._inflight})
            # A save that saw further mutations re-arms on completion; this save covers them.
            self._release_timer()
        self._dirty = False
        return await self._start_save()

    async def wait_idle(self) -> None:
        while self._inflight is not None:
            await asyncio.wait({self._inflight})

    def _arm(self) -> None:
        self._release_timer()
        self._handle = self._call_later(self.delay, self._fire)
        self.state = AutoSaveState.PENDING

    def _release_timer(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def _fire(self) -> None:
        self._handle = None
        if self.state is not AutoSaveState.PENDING:
            return
        task = self._start_save()
        task.add_done_callback(self._consume_result)

    def _start_save(self) -> asyncio.Future[Roster]:
        self.state = AutoSaveState.SAVING
        self._inflight = asyncio.ensure_future(self._run_save())
        return self._inflight

    async def _run_save(self) -> Roster:
        self._dirty = False
        try:
            sent = self._snapshot()
            saved = await self._persist(sent)
        except SaveFailure as exc:
            self.last_error = exc
            logger.warning("Roster save failed: %s", exc)
            raise
        else:
            self.last_error = None
            self.save_count += 1
            if self._on_saved is not None:
                self._on_saved(sent, saved)
            return saved
        finally:
            self._inflight = None
            self.state = AutoSaveState.IDLE
            if self._dirty:
                self._arm()

    @staticmethod
    def _consume_result(task: asyncio.Future[Roster]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, SaveFailure):
            logger.error("Auto-save raised unexpectedly", exc_info=exc)
