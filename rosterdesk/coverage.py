from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence

from rosterdesk.config import get_excluded_role
from rosterdesk.schemas import CoverageMetrics, RosterSlot, StaffMember

ShiftNameMatcher = Callable[[str, str], bool]

_SHIFT_SUFFIX = re.compile(r"\s*shift$")


def normalize_shift_name(name: str) -> str:
    # Legacy rows store enum-style values ("morning"), newer ones display names ("Morning Shift").
    collapsed = " ".join(name.replace("_", " ").split()).lower()
    return _SHIFT_SUFFIX.sub("", collapsed)


def shift_names_match(preference: str, shift_name: str) -> bool:
    return normalize_shift_name(preference) == normalize_shift_name(shift_name)


def is_excluded_role(member: StaffMember, excluded_role: str | None = None) -> bool:
    excluded = (excluded_role if excluded_role is not None else get_excluded_role()).lower()
    return bool(excluded) and excluded in (member.role or "").lower()


def prefers_shift(
    member: StaffMember,
    shift_name: str | None,
    names_match: ShiftNameMatcher = shift_names_match,
) -> bool:
    if shift_name is None or not member.default_shift_preference:
        return True
    return names_match(member.default_shift_preference, shift_name)


def eligible_staff(
    staff: Iterable[StaffMember],
    shift_name: str | None,
    *,
    names_match: ShiftNameMatcher = shift_names_match,
    excluded_role: str | None = None,
) -> list[StaffMember]:
    return [
        member
        for member in staff
        if member.is_active
        and not is_excluded_role(member, excluded_role)
        and prefers_shift(member, shift_name, names_match)
    ]


def compute_coverage(
    slots: Sequence[RosterSlot],
    staff: Iterable[StaffMember],
    shift_name: str | None,
    *,
    names_match: ShiftNameMatcher = shift_names_match,
    excluded_role: str | None = None,
) -> CoverageMetrics:
    # Unclamped: over-staffing reads above 100.
    filled = sum(1 for slot in slots if slot.user_id)
    eligible = len(eligible_staff(staff, shift_name, names_match=names_match, excluded_role=excluded_role))
    percentage = filled / eligible * 100 if eligible > 0 else 0.0
    return CoverageMetrics(
        total_slots=len(slots),
        filled_slots=filled,
        vacant_slots=len(slots) - filled,
        coverage_percentage=percentage,
        min_required_staff=eligible,
        actual_staff=filled,
        warnings=[],
    )


def empty_coverage() -> CoverageMetrics:
    return CoverageMetrics()
