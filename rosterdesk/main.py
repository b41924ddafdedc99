from __future__ import annotations

import os
from datetime import date

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from sqlalchemy.orm import Session

from rosterdesk import store
from rosterdesk.config import configure_logging, get_store_id
from rosterdesk.db import get_db
from rosterdesk.errors import NotFound, ValidationFailure
from rosterdesk.schemas import Roster, ShiftDefinition, StaffMember, Task

configure_logging()

app = FastAPI(title="Roster Desk")


@app.middleware("http")
async def disable_cache_for_api(request: Request, call_next):
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
        response.headers["Pragma"] = "no-cache"
    return response


def bad_request(exc: ValidationFailure) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def not_found(exc: NotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@app.get("/health")
def health() -> dict[str, bool | str]:
    return {"ok": True, "env": os.getenv("ENVIRONMENT", "local")}


@app.get("/api/shift-definitions", response_model=list[ShiftDefinition])
def get_shift_definitions(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
) -> list[ShiftDefinition]:
    return store.list_shifts(db, include_inactive=include_inactive)


@app.put("/api/shift-definitions", response_model=list[ShiftDefinition])
def put_shift_definitions(
    shifts: list[ShiftDefinition] = Body(...),
    db: Session = Depends(get_db),
) -> list[ShiftDefinition]:
    try:
        return store.replace_shifts(db, shifts)
    except ValidationFailure as exc:
        raise bad_request(exc) from exc


@app.get("/api/tasks", response_model=list[Task])
def get_tasks(db: Session = Depends(get_db)) -> list[Task]:
    return store.list_tasks(db)


@app.put("/api/tasks", response_model=list[Task])
def put_tasks(
    tasks: list[Task] = Body(...),
    db: Session = Depends(get_db),
) -> list[Task]:
    try:
        return store.replace_tasks(db, tasks)
    except ValidationFailure as exc:
        raise bad_request(exc) from exc


@app.get("/api/staff", response_model=list[StaffMember])
def get_staff(db: Session = Depends(get_db)) -> list[StaffMember]:
    return store.list_staff(db)


@app.put("/api/staff", response_model=list[StaffMember])
def put_staff(
    staff: list[StaffMember] = Body(...),
    db: Session = Depends(get_db),
) -> list[StaffMember]:
    try:
        return store.replace_staff(db, staff)
    except ValidationFailure as exc:
        raise bad_request(exc) from exc


@app.get("/api/rosters", response_model=list[Roster])
def list_rosters(
    date: date | None = None,
    shift_id: str | None = None,
    db: Session = Depends(get_db),
) -> list[Roster]:
    return store.list_rosters(db, get_store_id(), on_date=date, shift_id=shift_id)


@app.get("/api/rosters/{roster_id}", response_model=Roster)
def get_roster(roster_id: str, db: Session = Depends(get_db)) -> Roster:
    try:
        return store.get_roster(db, roster_id)
    except NotFound as exc:
        raise not_found(exc) from exc


@app.post("/api/rosters", response_model=Roster)
def save_roster(roster: Roster, db: Session = Depends(get_db)) -> Roster:
    try:
        return store.save_roster(db, roster, roster.store_id or get_store_id())
    except NotFound as exc:
        raise not_found(exc) from exc
    except ValidationFailure as exc:
        raise bad_request(exc) from exc


@app.post("/api/rosters/{roster_id}/publish", response_model=Roster)
def publish_roster(roster_id: str, db: Session = Depends(get_db)) -> Roster:
    try:
        return store.publish_roster(db, roster_id)
    except NotFound as exc:
        raise not_found(exc) from exc
    except ValidationFailure as exc:
        raise bad_request(exc) from exc


@app.delete("/api/rosters/{roster_id}")
def delete_roster(roster_id: str, db: Session = Depends(get_db)) -> dict[str, bool]:
    try:
        store.delete_roster(db, roster_id)
    except NotFound as exc:
        raise not_found(exc) from exc
    return {"ok": True}
