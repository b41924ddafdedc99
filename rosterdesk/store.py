from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from rosterdesk.coverage import compute_coverage
from rosterdesk.errors import NotFound, ValidationFailure
from rosterdesk.models import RosterRecord, RosterSlotRecord, ShiftDefinitionRecord, StaffRecord, TaskRecord, utcnow
from rosterdesk.projector import new_slot_id
from rosterdesk.schemas import CoverageMetrics, Roster, RosterSlot, ShiftDefinition, StaffMember, Task

logger = logging.getLogger(__name__)


def serialize_shift(record: ShiftDefinitionRecord) -> ShiftDefinition:
    return ShiftDefinition(
        id=record.id,
        name=record.name,
        start_time=record.start_time,
        end_time=record.end_time,
        duration_hours=record.duration_hours,
        display_order=record.display_order,
        is_active=record.is_active,
    )


def serialize_task(record: TaskRecord) -> Task:
    return Task(id=record.id, name=record.name, category=record.category)


def serialize_staff(record: StaffRecord) -> StaffMember:
    return StaffMember(
        id=record.id,
        first_name=record.first_name,
        last_name=record.last_name,
        role=record.role,
        experience_level=record.experience_level,
        is_active=record.is_active,
        default_shift_preference=record.default_shift_preference,
        week_off_days=frozenset(record.week_off_days or []),
        deleted_at=record.deleted_at,
    )


def serialize_slot(record: RosterSlotRecord) -> RosterSlot:
    return RosterSlot(
        id=record.id,
        roster_id=record.roster_id,
        user_id=record.user_id,
        shift_id=record.shift_id,
        date=record.on_date,
        assigned_tasks=list(record.assigned_tasks or []),
        start_time=record.start_time,
        end_time=record.end_time,
        status=record.status,
        notes=record.notes,
    )


def serialize_roster(record: RosterRecord) -> Roster:
    slots = [serialize_slot(slot) for slot in record.slots]
    return Roster(
        id=record.id,
        store_id=record.store_id,
        date=record.on_date,
        shift_id=record.shift_id,
        slots=slots,
        coverage=CoverageMetrics.model_validate(record.coverage or {}),
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        published_at=record.published_at,
    )


def list_shifts(db: Session, include_inactive: bool = False) -> list[ShiftDefinition]:
    query = select(ShiftDefinitionRecord).order_by(ShiftDefinitionRecord.display_order, ShiftDefinitionRecord.name)
    if not include_inactive:
        query = query.where(ShiftDefinitionRecord.is_active.is_(True))
    return [serialize_shift(record) for record in db.scalars(query).all()]


def replace_shifts(db: Session, shifts: Sequence[ShiftDefinition]) -> list[ShiftDefinition]:
    # Shifts left out are deactivated; rosters still point at them.
    ids = [shift.id for shift in shifts]
    names = [shift.name.strip().lower() for shift in shifts]
    if len(ids) != len(set(ids)):
        raise ValidationFailure("Shift ids must be unique")
    if len(names) != len(set(names)):
        raise ValidationFailure("Shift names must be unique")

    kept_ids = set(ids)
    existing = {record.id: record for record in db.scalars(select(ShiftDefinitionRecord)).all()}
    for record in existing.values():
        if record.id in kept_ids:
            continue
        if record.name.strip().lower() in names:
            raise ValidationFailure(f"Shift name {record.name!r} belongs to shift {record.id}; keep its id to edit it")
        record.is_active = False
    for shift in shifts:
        record = existing.get(shift.id) or ShiftDefinitionRecord(id=shift.id)
        record.name = shift.name
        record.start_time = shift.start_time
        record.end_time = shift.end_time
        record.duration_hours = shift.duration_hours
        record.display_order = shift.display_order
        record.is_active = shift.is_active
        db.add(record)
    db.commit()
    return list_shifts(db, include_inactive=True)


def list_tasks(db: Session) -> list[Task]:
    records = db.scalars(select(TaskRecord).order_by(TaskRecord.sort_order, TaskRecord.id)).all()
    return [serialize_task(record) for record in records]


def replace_tasks(db: Session, tasks: Sequence[Task]) -> list[Task]:
    task_ids = [task.id for task in tasks]
    if len(task_ids) != len(set(task_ids)):
        raise ValidationFailure("Task ids must be unique")
    db.execute(delete(TaskRecord))
    for index, task in enumerate(tasks):
        db.add(TaskRecord(id=task.id, name=task.name, category=task.category, sort_order=index))
    db.commit()
    return list(tasks)


def list_staff(db: Session) -> list[StaffMember]:
    records = db.scalars(select(StaffRecord).order_by(StaffRecord.sort_order, StaffRecord.id)).all()
    return [serialize_staff(record) for record in records]


def replace_staff(db: Session, staff: Sequence[StaffMember]) -> list[StaffMember]:
    staff_ids = [member.id for member in staff]
    if len(staff_ids) != len(set(staff_ids)):
        raise ValidationFailure("Staff ids must be unique")
    for member in staff:
        if len(member.week_off_days) > 1:
            raise ValidationFailure(f"{member.full_name} has more than one weekoff day")
    db.execute(delete(StaffRecord))
    for index, member in enumerate(staff):
        db.add(
            StaffRecord(
                id=member.id,
                first_name=member.first_name,
                last_name=member.last_name,
                role=member.role,
                experience_level=member.experience_level,
                is_active=member.is_active,
                default_shift_preference=member.default_shift_preference,
                week_off_days=sorted(member.week_off_days),
                deleted_at=member.deleted_at,
                sort_order=index,
            )
        )
    db.commit()
    return list(staff)


def _roster_query():
    return select(RosterRecord).options(selectinload(RosterRecord.slots))


def list_rosters(db: Session, store_id: str, on_date: date | None = None, shift_id: str | None = None) -> list[Roster]:
    query = _roster_query().where(RosterRecord.store_id == store_id).order_by(RosterRecord.on_date.desc(), RosterRecord.shift_id)
    if on_date is not None:
        query = query.where(RosterRecord.on_date == on_date)
    if shift_id is not None:
        query = query.where(RosterRecord.shift_id == shift_id)
    return [serialize_roster(record) for record in db.scalars(query).all()]


def get_roster(db: Session, roster_id: str) -> Roster:
    record = db.scalar(_roster_query().where(RosterRecord.id == roster_id))
    if record is None:
        raise NotFound(f"Roster {roster_id} not found")
    return serialize_roster(record)


def _schedulable_staff(db: Session) -> list[StaffMember]:
    return [member for member in list_staff(db) if member.deleted_at is None]


def save_roster(db: Session, roster: Roster, store_id: str) -> Roster:
    # Payload statuses are ignored; only publish_roster changes status.
    user_ids = [slot.user_id for slot in roster.slots if slot.user_id]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationFailure("Each staff member can hold only one slot per roster")
    shift = db.get(ShiftDefinitionRecord, roster.shift_id)
    if shift is None:
        raise NotFound(f"Shift definition {roster.shift_id} not found")

    now = utcnow()
    record = db.scalar(
        _roster_query().where(
            RosterRecord.store_id == store_id,
            RosterRecord.on_date == roster.date,
            RosterRecord.shift_id == roster.shift_id,
        )
    )
    if record is None:
        record = RosterRecord(
            id=str(uuid.uuid4()),
            store_id=store_id,
            on_date=roster.date,
            shift_id=roster.shift_id,
            status="draft",
            created_at=now,
        )
        db.add(record)
    record.updated_at = now

    existing = {slot.id: slot for slot in record.slots}
    seen: set[str] = set()
    slot_records = []
    for position, slot in enumerate(roster.slots):
        slot_record = existing.get(slot.id) if slot.id not in seen else None
        if slot_record is None:
            slot_id = slot.id
            if not slot_id or slot_id in seen or db.get(RosterSlotRecord, slot_id) is not None:
                slot_id = new_slot_id(slot.user_id or "vacant")
            slot_record = RosterSlotRecord(id=slot_id)
        slot_record.user_id = slot.user_id
        slot_record.shift_id = roster.shift_id
        slot_record.on_date = roster.date
        slot_record.assigned_tasks = list(slot.assigned_tasks)
        slot_record.start_time = slot.start_time
        slot_record.end_time = slot.end_time
        if slot_record.status is None:
            slot_record.status = "draft"
        slot_record.notes = slot.notes
        slot_record.position = position
        slot_records.append(slot_record)
        seen.add(slot_record.id)
    record.slots = slot_records

    coverage = compute_coverage(roster.slots, _schedulable_staff(db), shift.name)
    record.coverage = coverage.model_dump(mode="json")
    db.commit()
    logger.info("Saved roster %s (%s/%s) with %d slots", record.id, record.on_date, shift.name, len(slot_records))
    return get_roster(db, record.id)


def publish_roster(db: Session, roster_id: str) -> Roster:
    record = db.scalar(_roster_query().where(RosterRecord.id == roster_id))
    if record is None:
        raise NotFound(f"Roster {roster_id} not found")
    if not any(slot.user_id for slot in record.slots):
        raise ValidationFailure("Cannot publish: no staff assigned to this shift")
    now = utcnow()
    if record.status != "published":
        record.status = "published"
        record.published_at = now
    for slot in record.slots:
        if slot.status == "draft":
            slot.status = "published"
    record.updated_at = now
    db.commit()
    logger.info("Published roster %s (%s)", record.id, record.on_date)
    return get_roster(db, record.id)


def delete_roster(db: Session, roster_id: str) -> None:
    record = db.get(RosterRecord, roster_id)
    if record is None:
        raise NotFound(f"Roster {roster_id} not found")
    db.delete(record)
    db.commit()
