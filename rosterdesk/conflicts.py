from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from rosterdesk.schemas import Roster, RosterSlot, StaffMember


def users_in_other_shifts(rosters_for_date: Iterable[Roster], current_shift_id: str) -> set[str]:
    user_ids: set[str] = set()
    for roster in rosters_for_date:
        if roster.shift_id == current_shift_id:
            continue
        user_ids.update(slot.user_id for slot in roster.slots if slot.user_id)
    return user_ids


def cross_shift_conflicts(roster: Roster, rosters_for_date: Iterable[Roster]) -> list[RosterSlot]:
    others = users_in_other_shifts(
        (other for other in rosters_for_date if other.date == roster.date),
        roster.shift_id,
    )
    return [slot for slot in roster.slots if slot.user_id in others]


def weekday_index(on_date: date) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (on_date.weekday() + 1) % 7


def is_on_weekoff(member: StaffMember, on_date: date) -> bool:
    return weekday_index(on_date) in member.week_off_days


def extra_work_user_ids(slots: Iterable[RosterSlot], staff: Iterable[StaffMember], on_date: date) -> set[str]:
    off_today = {member.id for member in staff if is_on_weekoff(member, on_date)}
    return {slot.user_id for slot in slots if slot.user_id in off_today}
