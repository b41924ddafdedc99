import asyncio

import pytest
from conftest import MORNING, ROSTER_DATE

from rosterdesk.autosave import AutoSaveScheduler, AutoSaveState
from rosterdesk.errors import SaveFailure, ValidationFailure
from rosterdesk.schemas import Roster


class Editor:
    def __init__(self):
        self.version = 0
        self.roster = self._build()
        self.written: list[int] = []
        self.adopted: list[tuple[Roster, Roster]] = []
        self.gate: asyncio.Event | None = None
        self.fail = False
        self.active = 0
        self.max_active = 0

    def _build(self):
        return Roster(date=ROSTER_DATE, shift_id=MORNING.id, status="draft", id=f"v{self.version}")

    def edit(self, scheduler):
        self.version += 1
        self.roster = self._build()
        scheduler.notify_mutation()

    def snapshot(self):
        return self.roster

    async def persist(self, roster):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail:
                raise SaveFailure("server unavailable")
            self.written.append(int(roster.id[1:]))
            return roster
        finally:
            self.active -= 1

    def on_saved(self, sent, saved):
        self.adopted.append((sent, saved))


def scheduler_for(editor, timers, delay=3.0):
    return AutoSaveScheduler(editor.persist, editor.snapshot, editor.on_saved, delay=delay, call_later=timers.call_later)


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_burst_of_mutations_produces_one_save_of_latest_state(timers):
    async def scenario():
        editor = Editor()
        scheduler = scheduler_for(editor, timers)
        for _ in range(5):
            editor.edit(scheduler)
        assert scheduler.state is AutoSaveState.PENDING
        assert len(timers.active) == 1
        assert timers.active[0].delay == 3.0

        timers.fire()
        assert scheduler.state is AutoSaveState.SAVING
        await scheduler.wait_idle()

        assert editor.written == [5]
        assert scheduler.state is AutoSaveState.IDLE
        assert scheduler.save_count == 1
        assert editor.adopted[0][0] is editor.adopted[0][1]
        assert timers.active == []

    asyncio.run(scenario())


def test_each_mutation_restarts_the_window(timers):
    editor = Editor()
    scheduler = scheduler_for(editor, timers)
    editor.edit(scheduler)
    first = timers.active[0]
    editor.edit(scheduler)
    assert first.cancelled
    assert len(timers.active) == 1


def test_mutation_during_save_schedules_another_cycle(timers):
    async def scenario():
        editor = Editor()
        editor.gate = asyncio.Event()
        scheduler = scheduler_for(editor, timers)
        editor.edit(scheduler)
        timers.fire()
        await settle()
        assert scheduler.state is AutoSaveState.SAVING

        editor.edit(scheduler)
        editor.edit(scheduler)
        # No timer while a save is in flight.
        assert timers.active == []
        assert scheduler.has_pending_changes

        editor.gate.set()
        await scheduler.wait_idle()
        assert editor.written == [1]
        assert scheduler.state is AutoSaveState.PENDING

        timers.fire()
        await scheduler.wait_idle()
        assert editor.written == [1, 3]
        assert editor.max_active == 1

    asyncio.run(scenario())


def test_failed_save_is_kept_and_not_retried(timers):
    async def scenario():
        editor = Editor()
        editor.fail = True
        scheduler = scheduler_for(editor, timers)
        editor.edit(scheduler)
        timers.fire()
        await scheduler.wait_idle()
        await settle()

        assert isinstance(scheduler.last_error, SaveFailure)
        assert scheduler.state is AutoSaveState.IDLE
        assert timers.active == []
        assert editor.adopted == []

        editor.fail = False
        editor.edit(scheduler)
        timers.fire()
        await scheduler.wait_idle()
        assert scheduler.last_error is None
        assert editor.written == [2]

    asyncio.run(scenario())


def test_cancel_drops_pending_save(timers):
    editor = Editor()
    scheduler = scheduler_for(editor, timers)
    editor.edit(scheduler)
    handle = timers.active[0]
    scheduler.cancel()
    assert handle.cancelled
    assert scheduler.state is AutoSaveState.IDLE
    assert not scheduler.has_pending_changes
    assert timers.fire() == 0
    assert editor.written == []


def test_save_now_skips_the_debounce_window(timers):
    async def scenario():
        editor = Editor()
        scheduler = scheduler_for(editor, timers)
        editor.edit(scheduler)
        editor.edit(scheduler)
        saved = await scheduler.save_now()
        assert saved.id == "v2"
        assert editor.written == [2]
        assert timers.active == []
        assert scheduler.state is AutoSaveState.IDLE

    asyncio.run(scenario())


def test_save_now_waits_for_inflight_save(timers):
    async def scenario():
        editor = Editor()
        editor.gate = asyncio.Event()
        scheduler = scheduler_for(editor, timers)
        editor.edit(scheduler)
        timers.fire()
        await settle()
        editor.edit(scheduler)

        manual = asyncio.ensure_future(scheduler.save_now())
        await settle()
        editor.gate.set()
        saved = await manual

        assert saved.id == "v2"
        assert editor.written == [1, 2]
        assert editor.max_active == 1
        assert timers.active == []

    asyncio.run(scenario())


def test_save_now_raises_save_failure(timers):
    async def scenario():
        editor = Editor()
        editor.fail = True
        scheduler = scheduler_for(editor, timers)
        editor.edit(scheduler)
        with pytest.raises(SaveFailure):
            await scheduler.save_now()
        assert isinstance(scheduler.last_error, SaveFailure)

    asyncio.run(scenario())


def test_failed_snapshot_leaves_scheduler_usable(timers):
    async def scenario():
        editor = Editor()
        ready = [False]

        def snapshot():
            if not ready[0]:
                raise ValidationFailure("Roster session is loading, not ready")
            return editor.roster

        scheduler = AutoSaveScheduler(editor.persist, snapshot, delay=3.0, call_later=timers.call_later)
        scheduler.notify_mutation()
        timers.fire()
        await asyncio.wait_for(scheduler.wait_idle(), 1.0)
        await settle()
        assert scheduler.state is AutoSaveState.IDLE
        assert editor.written == []

        ready[0] = True
        editor.edit(scheduler)
        assert len(timers.active) == 1
        saved = await asyncio.wait_for(scheduler.save_now(), 1.0)
        assert saved.id == "v1"
        assert editor.written == [1]

    asyncio.run(scenario())


def test_delay_defaults_to_environment(monkeypatch, timers):
    monkeypatch.setenv("ROSTER_AUTOSAVE_DELAY_MS", "1500")
    editor = Editor()
    scheduler = AutoSaveScheduler(editor.persist, editor.snapshot, call_later=timers.call_later)
    assert scheduler.delay == 1.5
