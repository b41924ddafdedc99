from __future__ import annotations

import logging
from datetime import date
from typing import Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from rosterdesk.config import get_api_url
from rosterdesk.errors import FetchFailure, PublishFailure, SaveFailure, ValidationFailure
from rosterdesk.schemas import Roster, ShiftDefinition, StaffMember, Task

logger = logging.getLogger(__name__)

_shift_list = TypeAdapter(list[ShiftDefinition])
_task_list = TypeAdapter(list[Task])
_staff_list = TypeAdapter(list[StaffMember])
_roster_list = TypeAdapter(list[Roster])


class RosterGateway(Protocol):
    async def list_shifts(self, include_inactive: bool = False) -> list[ShiftDefinition]: ...

    async def get_shift(self, shift_id: str) -> ShiftDefinition | None: ...

    async def list_tasks(self) -> list[Task]: ...

    async def list_staff(self) -> list[StaffMember]: ...

    async def find_roster(self, on_date: date, shift_id: str) -> Roster | None: ...

    async def list_rosters(self, on_date: date) -> list[Roster]: ...

    async def save_roster(self, roster: Roster) -> Roster: ...

    async def publish_roster(self, roster_id: str) -> Roster: ...


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    return str(detail or f"HTTP {response.status_code}")


class HttpRosterGateway:
    def __init__(self, client: httpx.AsyncClient | None = None, base_url: str | None = None) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url or get_api_url())

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get(self, path: str, params: dict | None = None):
        try:
            response = await self.client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise FetchFailure(f"GET {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise FetchFailure(f"GET {path} failed: {_error_detail(response)}")
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(f"GET {path} returned invalid JSON") from exc

    async def list_shifts(self, include_inactive: bool = False) -> list[ShiftDefinition]:
        payload = await self._get("/api/shift-definitions", {"include_inactive": str(include_inactive).lower()})
        return self._decode(_shift_list, payload, "shift definitions")

    async def get_shift(self, shift_id: str) -> ShiftDefinition | None:
        for shift in await self.list_shifts(include_inactive=True):
            if shift.id == shift_id:
                return shift
        return None

    async def list_tasks(self) -> list[Task]:
        return self._decode(_task_list, await self._get("/api/tasks"), "tasks")

    async def list_staff(self) -> list[StaffMember]:
        return self._decode(_staff_list, await self._get("/api/staff"), "staff")

    async def find_roster(self, on_date: date, shift_id: str) -> Roster | None:
        payload = await self._get("/api/rosters", {"date": on_date.isoformat(), "shift_id": shift_id})
        rosters = self._decode(_roster_list, payload, "rosters")
        return rosters[0] if rosters else None

    async def list_rosters(self, on_date: date) -> list[Roster]:
        payload = await self._get("/api/rosters", {"date": on_date.isoformat()})
        return self._decode(_roster_list, payload, "rosters")

    async def save_roster(self, roster: Roster) -> Roster:
        try:
            response = await self.client.post("/api/rosters", json=roster.model_dump(mode="json"))
        except httpx.HTTPError as exc:
            raise SaveFailure(f"Failed to save roster: {exc}") from exc
        if response.status_code >= 400:
            raise SaveFailure(f"Failed to save roster: {_error_detail(response)}")
        try:
            return Roster.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SaveFailure(f"Unreadable roster in save response: {exc}") from exc

    async def publish_roster(self, roster_id: str) -> Roster:
        try:
            response = await self.client.post(f"/api/rosters/{roster_id}/publish")
        except httpx.HTTPError as exc:
            raise PublishFailure(f"Failed to publish roster: {exc}") from exc
        if response.status_code == 400:
            raise ValidationFailure(_error_detail(response))
        if response.status_code >= 400:
            raise PublishFailure(f"Failed to publish roster: {_error_detail(response)}")
        try:
            return Roster.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PublishFailure(f"Unreadable roster in publish response: {exc}") from exc

    @staticmethod
    def _decode(adapter: TypeAdapter, payload, what: str):
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            logger.error("Malformed %s payload: %s", what, exc)
            raise FetchFailure(f"Malformed {what} payload") from exc
