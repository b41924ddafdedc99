from __future__ import annotations

import re
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SlotStatus = Literal["draft", "published"]
RosterStatus = Literal["draft", "published"]
ExperienceLevel = Literal["experienced", "fresher"]

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_hhmm(value: str) -> str:
    if not _HHMM.match(value):
        raise ValueError(f"time must be HH:MM, got {value!r}")
    return value


class ShiftDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    start_time: str
    end_time: str
    duration_hours: float = 0
    display_order: int = 0
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _check_hhmm(value)


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = ""


class StaffMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str = ""
    role: str | None = None
    experience_level: ExperienceLevel = "fresher"
    is_active: bool = True
    default_shift_preference: str | None = None
    # Weekday integers with 0 = Sunday. Policy allows one entry; the type allows more.
    week_off_days: frozenset[int] = Field(default_factory=frozenset)
    deleted_at: datetime | None = None

    @field_validator("week_off_days")
    @classmethod
    def validate_week_off_days(cls, value: frozenset[int]) -> frozenset[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"week_off_days entries must be 0-6, got {day}")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class RosterSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    roster_id: str = ""
    user_id: str | None = None
    shift_id: str
    date: date
    assigned_tasks: list[str] = Field(default_factory=list)
    start_time: str
    end_time: str
    status: SlotStatus = "draft"
    notes: str | None = None


class TaskAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    task_name: str
    category: str = ""
    assigned_user_ids: list[str] = Field(default_factory=list)


class CoverageMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_slots: int = 0
    filled_slots: int = 0
    vacant_slots: int = 0
    coverage_percentage: float = 0.0
    # Carries the number of staff eligible for the shift, not a staffing minimum.
    min_required_staff: int = 0
    actual_staff: int = 0
    warnings: list[str] = Field(default_factory=list)


class Roster(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    store_id: str = ""
    date: date
    shift_id: str
    slots: list[RosterSlot] = Field(default_factory=list)
    coverage: CoverageMetrics = Field(default_factory=CoverageMetrics)
    status: RosterStatus = "draft"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    published_at: datetime | None = None

    @property
    def filled_user_ids(self) -> list[str]:
        return [slot.user_id for slot in self.slots if slot.user_id]
