from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from rosterdesk.conflicts import is_on_weekoff
from rosterdesk.coverage import ShiftNameMatcher, is_excluded_role, shift_names_match
from rosterdesk.schemas import StaffMember, TaskAssignment

NO_ROLE = "No Role"
ROLE_PRIORITY = {
    "Shift In Charge": 1,
    "Inventory Executive": 2,
    "Picker Packer (Warehouse)": 3,
    "Picker Packer (Ad-Hoc)": 4,
}
DEFAULT_ROLE_PRIORITY = 50


@dataclass
class RoleAvailability:
    role_name: str
    total: int = 0
    assigned: int = 0
    available: int = 0
    weekoff: int = 0


def shift_staff(
    staff: Iterable[StaffMember],
    shift_name: str,
    *,
    names_match: ShiftNameMatcher = shift_names_match,
    excluded_role: str | None = None,
) -> list[StaffMember]:
    # Unlike coverage, members without a preference are not counted toward any shift here.
    return [
        member
        for member in staff
        if member.is_active
        and not is_excluded_role(member, excluded_role)
        and member.default_shift_preference
        and names_match(member.default_shift_preference, shift_name)
    ]


def availability_by_role(
    staff: Iterable[StaffMember],
    assignments: Iterable[TaskAssignment],
    shift_name: str,
    on_date: date | None = None,
    *,
    names_match: ShiftNameMatcher = shift_names_match,
    excluded_role: str | None = None,
) -> list[RoleAvailability]:
    assigned_ids = {user_id for assignment in assignments for user_id in assignment.assigned_user_ids}
    by_role: dict[str, RoleAvailability] = {}
    for member in shift_staff(staff, shift_name, names_match=names_match, excluded_role=excluded_role):
        role_name = member.role or NO_ROLE
        entry = by_role.setdefault(role_name, RoleAvailability(role_name=role_name))
        is_assigned = member.id in assigned_ids
        on_weekoff = on_date is not None and is_on_weekoff(member, on_date)
        entry.total += 1
        if is_assigned:
            entry.assigned += 1
        if on_weekoff:
            entry.weekoff += 1
        if not is_assigned and not on_weekoff:
            entry.available += 1
    return sorted(by_role.values(), key=lambda entry: ROLE_PRIORITY.get(entry.role_name, DEFAULT_ROLE_PRIORITY))


def staff_on_weekoff(
    staff: Iterable[StaffMember],
    shift_name: str,
    on_date: date,
    *,
    names_match: ShiftNameMatcher = shift_names_match,
    excluded_role: str | None = None,
) -> list[StaffMember]:
    return [
        member
        for member in shift_staff(staff, shift_name, names_match=names_match, excluded_role=excluded_role)
        if is_on_weekoff(member, on_date)
    ]


def totals(entries: Sequence[RoleAvailability]) -> RoleAvailability:
    summary = RoleAvailability(role_name="All")
    for entry in entries:
        summary.total += entry.total
        summary.assigned += entry.assigned
        summary.available += entry.available
        summary.weekoff += entry.weekoff
    return summary
