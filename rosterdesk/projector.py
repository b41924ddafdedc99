from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from rosterdesk.schemas import RosterSlot, ShiftDefinition, Task, TaskAssignment


@dataclass(frozen=True)
class ShiftContext:
    shift_id: str
    date: date
    start_time: str
    end_time: str
    roster_id: str = ""

    @classmethod
    def for_shift(cls, shift: ShiftDefinition, on_date: date, roster_id: str = "") -> ShiftContext:
        return cls(
            shift_id=shift.id,
            date=on_date,
            start_time=shift.start_time,
            end_time=shift.end_time,
            roster_id=roster_id,
        )


def new_slot_id(user_id: str) -> str:
    return f"slot-{user_id}-{uuid.uuid4().hex[:12]}"


def project(slots: Iterable[RosterSlot], tasks: Sequence[Task]) -> list[TaskAssignment]:
    # Unknown task ids on a slot are skipped.
    users_by_task: dict[str, list[str]] = {task.id: [] for task in tasks}
    for slot in slots:
        if not slot.user_id:
            continue
        for task_id in slot.assigned_tasks:
            user_ids = users_by_task.get(task_id)
            if user_ids is not None and slot.user_id not in user_ids:
                user_ids.append(slot.user_id)
    return [
        TaskAssignment(
            task_id=task.id,
            task_name=task.name,
            category=task.category,
            assigned_user_ids=users_by_task[task.id],
        )
        for task in tasks
    ]


def materialize(
    assignments: Iterable[TaskAssignment],
    shift: ShiftContext,
    existing_slots: Iterable[RosterSlot] = (),
) -> list[RosterSlot]:
    # A member left with no tasks gets no slot.
    previous = {slot.user_id: slot for slot in existing_slots if slot.user_id}

    tasks_by_user: dict[str, list[str]] = {}
    for assignment in assignments:
        for user_id in assignment.assigned_user_ids:
            task_ids = tasks_by_user.setdefault(user_id, [])
            if assignment.task_id not in task_ids:
                task_ids.append(assignment.task_id)

    slots = []
    for user_id, task_ids in tasks_by_user.items():
        if not task_ids:
            continue
        prior = previous.get(user_id)
        slots.append(
            RosterSlot(
                id=prior.id if prior else new_slot_id(user_id),
                roster_id=shift.roster_id,
                user_id=user_id,
                shift_id=shift.shift_id,
                date=shift.date,
                assigned_tasks=task_ids,
                start_time=shift.start_time,
                end_time=shift.end_time,
                status=prior.status if prior else "draft",
                notes=prior.notes if prior else None,
            )
        )
    return slots


def _edit(
    user_id: str,
    task_id: str,
    slots: Sequence[RosterSlot],
    tasks: Sequence[Task],
    shift: ShiftContext,
    add: bool,
) -> list[RosterSlot]:
    assignments = []
    for assignment in project(slots, tasks):
        current = assignment.assigned_user_ids
        if assignment.task_id == task_id:
            if add and user_id not in current:
                assignment = assignment.model_copy(update={"assigned_user_ids": [*current, user_id]})
            elif not add and user_id in current:
                assignment = assignment.model_copy(update={"assigned_user_ids": [uid for uid in current if uid != user_id]})
        assignments.append(assignment)
    return materialize(assignments, shift, slots)


def assign(
    user_id: str,
    task_id: str,
    slots: Sequence[RosterSlot],
    tasks: Sequence[Task],
    shift: ShiftContext,
) -> list[RosterSlot]:
    return _edit(user_id, task_id, slots, tasks, shift, add=True)


def unassign(
    user_id: str,
    task_id: str,
    slots: Sequence[RosterSlot],
    tasks: Sequence[Task],
    shift: ShiftContext,
) -> list[RosterSlot]:
    return _edit(user_id, task_id, slots, tasks, shift, add=False)


def user_task_map(slots: Iterable[RosterSlot]) -> dict[str, frozenset[str]]:
    return {slot.user_id: frozenset(slot.assigned_tasks) for slot in slots if slot.user_id and slot.assigned_tasks}


def users_without_tasks(slots: Iterable[RosterSlot]) -> list[RosterSlot]:
    # Legacy slots created before tasks were tracked.
    return [slot for slot in slots if slot.user_id and not slot.assigned_tasks]
