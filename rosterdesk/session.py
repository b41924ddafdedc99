from __future__ import annotations

import asyncio
import enum
import logging
from datetime import date
from functools import partial

from rosterdesk import projector
from rosterdesk.autosave import AutoSaveScheduler, AutoSaveState, CallLater
from rosterdesk.availability import RoleAvailability, availability_by_role
from rosterdesk.conflicts import extra_work_user_ids, users_in_other_shifts
from rosterdesk.coverage import ShiftNameMatcher, compute_coverage, empty_coverage, shift_names_match
from rosterdesk.errors import FetchFailure, PublishFailure, SaveFailure, ValidationFailure
from rosterdesk.gateway import RosterGateway
from rosterdesk.projector import ShiftContext
from rosterdesk.schemas import CoverageMetrics, Roster, RosterSlot, ShiftDefinition, StaffMember, Task, TaskAssignment

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class RosterSession:
    def __init__(
        self,
        gateway: RosterGateway,
        on_date: date,
        shift_id: str | None = None,
        *,
        names_match: ShiftNameMatcher = shift_names_match,
        excluded_role: str | None = None,
        autosave_delay: float | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self.gateway = gateway
        self.names_match = names_match
        self.excluded_role = excluded_role
        self._autosave_delay = autosave_delay
        self._call_later = call_later
        self._generation = 0
        self._reset(on_date, shift_id)

    def _reset(self, on_date: date, shift_id: str | None) -> None:
        self._generation += 1
        self.date = on_date
        self.shift_id = shift_id
        self.state = SessionState.LOADING
        self.error: Exception | None = None
        self._clear_data()
        self.autosave = AutoSaveScheduler(
            self.gateway.save_roster,
            self._snapshot,
            partial(self._adopt_saved, self._generation),
            delay=self._autosave_delay,
            call_later=self._call_later,
        )

    def _clear_data(self) -> None:
        self.shifts: list[ShiftDefinition] = []
        self.staff: list[StaffMember] = []
        self.tasks: list[Task] = []
        self.shift: ShiftDefinition | None = None
        self.sibling_rosters: list[Roster] = []
        self.roster: Roster | None = None

    # Loading

    async def load(self) -> SessionState:
        generation = self._generation
        self.state = SessionState.LOADING
        self.error = None
        try:
            shifts = await self.gateway.list_shifts()
            shift_id = self.shift_id or (shifts[0].id if shifts else None)
            if shift_id is None:
                raise FetchFailure("No active shift definitions are configured")
            staff, tasks, shift, siblings = await asyncio.gather(
                self.gateway.list_staff(),
                self.gateway.list_tasks(),
                self._resolve_shift(shifts, shift_id),
                self.gateway.list_rosters(self.date),
            )
            # Coverage and cross-shift checks need the siblings, so the roster comes last.
            roster = await self.gateway.find_roster(self.date, shift_id)
        except FetchFailure as exc:
            if generation != self._generation:
                return self.state
            logger.warning("Failed to load roster for %s/%s: %s", self.date, self.shift_id, exc)
            self._clear_data()
            self.error = exc
            self.state = SessionState.ERROR
            return self.state

        if generation != self._generation:
            logger.debug("Discarding load for superseded selection %s/%s", self.date, shift_id)
            return self.state

        self.shift_id = shift_id
        self.shifts = shifts
        self.staff = [member for member in staff if member.is_active and member.deleted_at is None]
        self.tasks = tasks
        self.shift = shift
        self.sibling_rosters = siblings
        if roster is None:
            roster = Roster(date=self.date, shift_id=shift_id, coverage=empty_coverage())
        self.roster = roster.model_copy(update={"coverage": self._coverage(roster.slots)})
        self.state = SessionState.READY
        return self.state

    async def retry(self) -> SessionState:
        return await self.select(self.date, self.shift_id)

    async def select(self, on_date: date, shift_id: str | None) -> SessionState:
        if self.autosave.has_pending_changes:
            logger.info("Dropping unsaved roster changes for %s/%s", self.date, self.shift_id)
        self.autosave.cancel()
        self._reset(on_date, shift_id)
        return await self.load()

    def close(self) -> None:
        self.autosave.cancel()
        self._generation += 1

    async def _resolve_shift(self, shifts: list[ShiftDefinition], shift_id: str) -> ShiftDefinition:
        for shift in shifts:
            if shift.id == shift_id:
                return shift
        shift = await self.gateway.get_shift(shift_id)
        if shift is None:
            raise FetchFailure(f"Shift definition {shift_id} not found")
        return shift

    # Derived views

    @property
    def shift_context(self) -> ShiftContext:
        roster = self._require_ready()
        return ShiftContext.for_shift(self.shift, self.date, roster.id)

    @property
    def task_assignments(self) -> list[TaskAssignment]:
        if self.roster is None:
            return []
        return projector.project(self.roster.slots, self.tasks)

    @property
    def users_in_other_shifts(self) -> set[str]:
        if self.shift_id is None:
            return set()
        return users_in_other_shifts(self.sibling_rosters, self.shift_id)

    @property
    def extra_work_user_ids(self) -> set[str]:
        if self.roster is None:
            return set()
        return extra_work_user_ids(self.roster.slots, self.staff, self.date)

    @property
    def users_without_tasks(self) -> list[RosterSlot]:
        if self.roster is None:
            return []
        return projector.users_without_tasks(self.roster.slots)

    @property
    def availability(self) -> list[RoleAvailability]:
        if self.shift is None:
            return []
        return availability_by_role(
            self.staff,
            self.task_assignments,
            self.shift.name,
            self.date,
            names_match=self.names_match,
            excluded_role=self.excluded_role,
        )

    @property
    def is_saving(self) -> bool:
        return self.autosave.state is AutoSaveState.SAVING

    @property
    def save_error(self) -> SaveFailure | None:
        return self.autosave.last_error

    # Editing

    def assign(self, user_id: str, task_id: str) -> Roster:
        roster = self._require_ready()
        return self._apply(projector.assign(user_id, task_id, roster.slots, self.tasks, self.shift_context))

    def unassign(self, user_id: str, task_id: str) -> Roster:
        roster = self._require_ready()
        return self._apply(projector.unassign(user_id, task_id, roster.slots, self.tasks, self.shift_context))

    def _apply(self, slots: list[RosterSlot]) -> Roster:
        roster = self.roster
        if slots == roster.slots:
            return roster
        updated = roster.model_copy(update={"slots": slots, "coverage": self._coverage(slots)})
        self.roster = updated
        self._replace_sibling(updated)
        self.autosave.notify_mutation()
        return updated

    async def save(self) -> Roster:
        self._require_ready()
        return await self.autosave.save_now()

    async def publish(self) -> Roster:
        roster = self._require_ready()
        if roster.coverage.filled_slots == 0:
            raise ValidationFailure("Cannot publish: no staff assigned to this shift")
        if not roster.id or self.autosave.has_pending_changes or self.is_saving:
            # SaveFailure propagates; publishing an id that was never stored is pointless.
            await self.save()
        roster = self.roster
        if not roster.id:
            raise SaveFailure("Roster has no id after saving")

        generation = self._generation
        try:
            published = await self.gateway.publish_roster(roster.id)
        except PublishFailure as exc:
            logger.warning("Failed to publish roster %s: %s", roster.id, exc)
            raise
        if generation == self._generation:
            self._adopt_saved(generation, roster, published)
        logger.info("Published roster %s for %s/%s", roster.id, self.date, self.shift_id)
        return self.roster

    # Internals

    def _require_ready(self) -> Roster:
        if self.state is not SessionState.READY or self.roster is None or self.shift is None:
            raise ValidationFailure(f"Roster session is {self.state.value}, not ready")
        return self.roster

    def _snapshot(self) -> Roster:
        return self._require_ready()

    def _coverage(self, slots: list[RosterSlot]) -> CoverageMetrics:
        return compute_coverage(
            slots,
            self.staff,
            self.shift.name if self.shift else None,
            names_match=self.names_match,
            excluded_role=self.excluded_role,
        )

    def _adopt_saved(self, generation: int, sent: Roster, saved: Roster) -> None:
        if generation != self._generation or self.roster is None:
            logger.debug("Ignoring save result for a previous selection")
            return
        if self.roster is sent:
            self.roster = saved
        else:
            # Edited while the request was in flight: keep local slots, take server identity.
            self.roster = self.roster.model_copy(
                update={
                    "id": saved.id,
                    "store_id": saved.store_id,
                    "status": saved.status,
                    "created_at": saved.created_at,
                    "updated_at": saved.updated_at,
                    "published_at": saved.published_at,
                    "slots": [slot.model_copy(update={"roster_id": saved.id}) for slot in self.roster.slots],
                }
            )
        self._replace_sibling(self.roster)

    def _replace_sibling(self, roster: Roster) -> None:
        siblings = [other for other in self.sibling_rosters if other.shift_id != roster.shift_id]
        if roster.id:
            siblings.append(roster)
        self.sibling_rosters = siblings
