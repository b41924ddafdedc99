from __future__ import annotations

import asyncio
from datetime import date

import pytest

import rosterdesk.db as app_db
from rosterdesk.config import get_database_url
from rosterdesk.errors import FetchFailure, PublishFailure, SaveFailure
from rosterdesk.schemas import Roster, ShiftDefinition, StaffMember, Task


@pytest.fixture(autouse=True)
def reset_database(tmp_path, monkeypatch):
    db_file = tmp_path / "test_rosterdesk.db"
    db_url = f"sqlite:///{db_file}"
    monkeypatch.setenv("DATABASE_URL", db_url)

    # Rebuild DB bindings per test so every test gets its own writable SQLite file.
    app_db.engine.dispose()
    app_db.DATABASE_URL = get_database_url()
    app_db.engine = app_db.make_engine(app_db.DATABASE_URL)
    app_db.SessionLocal = app_db.make_session_factory(app_db.engine)

    import rosterdesk.models  # noqa: F401

    app_db.Base.metadata.drop_all(bind=app_db.engine)
    app_db.Base.metadata.create_all(bind=app_db.engine)
    yield
    app_db.Base.metadata.drop_all(bind=app_db.engine)
    app_db.engine.dispose()


class ManualHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimers:
    def __init__(self):
        self.handles: list[ManualHandle] = []

    def call_later(self, delay, callback):
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def fire(self) -> int:
        due = self.active
        self.handles = []
        for handle in due:
            handle.callback()
        return len(due)


class FakeGateway:
    def __init__(self, shifts, tasks, staff, rosters=()):
        self.shifts = list(shifts)
        self.tasks = list(tasks)
        self.staff = list(staff)
        self.rosters: dict[str, Roster] = {roster.id: roster for roster in rosters}
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.saved: list[Roster] = []
        self.published: list[str] = []
        self.save_gate: asyncio.Event | None = None
        self.fetch_gate: asyncio.Event | None = None
        self._next_id = 1

    def _check(self, name, error=FetchFailure):
        self.calls.append(name)
        if name in self.fail:
            raise error(f"{name} unavailable")

    async def list_shifts(self, include_inactive=False):
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        self._check("list_shifts")
        return [shift for shift in self.shifts if include_inactive or shift.is_active]

    async def get_shift(self, shift_id):
        self._check("get_shift")
        return next((shift for shift in self.shifts if shift.id == shift_id), None)

    async def list_tasks(self):
        self._check("list_tasks")
        return list(self.tasks)

    async def list_staff(self):
        self._check("list_staff")
        return list(self.staff)

    async def find_roster(self, on_date, shift_id):
        self._check("find_roster")
        return next(
            (roster for roster in self.rosters.values() if roster.date == on_date and roster.shift_id == shift_id),
            None,
        )

    async def list_rosters(self, on_date):
        self._check("list_rosters")
        return [roster for roster in self.rosters.values() if roster.date == on_date]

    async def save_roster(self, roster):
        self.saved.append(roster)
        if self.save_gate is not None:
            await self.save_gate.wait()
        self._check("save_roster", SaveFailure)
        existing = next(
            (r for r in self.rosters.values() if r.date == roster.date and r.shift_id == roster.shift_id),
            None,
        )
        if existing is not None:
            roster_id = existing.id
        else:
            roster_id = f"roster-{self._next_id}"
            self._next_id += 1
        stored = roster.model_copy(
            update={
                "id": roster_id,
                "store_id": "default",
                "slots": [slot.model_copy(update={"roster_id": roster_id}) for slot in roster.slots],
            }
        )
        self.rosters[roster_id] = stored
        return stored

    async def publish_roster(self, roster_id):
        self._check("publish_roster", PublishFailure)
        self.published.append(roster_id)
        published = self.rosters[roster_id].model_copy(update={"status": "published"})
        self.rosters[roster_id] = published
        return published


MORNING = ShiftDefinition(id="shift-am", name="Morning Shift", start_time="08:00", end_time="17:00", duration_hours=9, display_order=0)
EVENING = ShiftDefinition(id="shift-pm", name="Evening Shift", start_time="14:00", end_time="23:00", duration_hours=9, display_order=1)
CLEANING = Task(id="task-cleaning", name="Cleaning", category="Floor")
STOCKING = Task(id="task-stocking", name="Stocking", category="Inventory")
ROSTER_DATE = date(2026, 10, 19)


def staff_member(staff_id, first_name, **overrides):
    fields = {"id": staff_id, "first_name": first_name, "last_name": "Tester", "role": "Picker Packer (Warehouse)"}
    fields.update(overrides)
    return StaffMember(**fields)


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def catalog():
    return {
        "shifts": [MORNING, EVENING],
        "tasks": [CLEANING, STOCKING],
        "staff": [
            staff_member("alice", "Alice"),
            staff_member("bob", "Bob"),
            staff_member("carol", "Carol", default_shift_preference="evening"),
            staff_member("mgr", "Morgan", role="Store Manager"),
        ],
    }


@pytest.fixture
def gateway(catalog):
    return FakeGateway(catalog["shifts"], catalog["tasks"], catalog["staff"])


API_SHIFTS = [
    {"id": "shift-am", "name": "Morning Shift", "start_time": "08:00", "end_time": "17:00", "duration_hours": 9, "display_order": 0},
    {"id": "shift-pm", "name": "Evening Shift", "start_time": "14:00", "end_time": "23:00", "duration_hours": 9, "display_order": 1},
]
API_TASKS = [
    {"id": "task-cleaning", "name": "Cleaning", "category": "Floor"},
    {"id": "task-stocking", "name": "Stocking", "category": "Inventory"},
]
API_STAFF = [
    {"id": "alice", "first_name": "Alice", "role": "Picker Packer (Warehouse)", "default_shift_preference": "morning"},
    {"id": "bob", "first_name": "Bob", "role": "Picker Packer (Warehouse)", "week_off_days": [1]},
    {"id": "carol", "first_name": "Carol", "role": "Inventory Executive", "default_shift_preference": "Evening Shift"},
    {"id": "mgr", "first_name": "Morgan", "role": "Store Manager"},
]


def seed_catalog(client):
    assert client.put("/api/shift-definitions", json=API_SHIFTS).status_code == 200
    assert client.put("/api/tasks", json=API_TASKS).status_code == 200
    assert client.put("/api/staff", json=API_STAFF).status_code == 200


