from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from hourbook.database import SessionLocal
from hourbook.deps.auth import require_auth
from hourbook.models.project import Project
from hourbook.models.time_entry import TimeEntry
from hourbook.schemas.time_entry import TimeEntryCreate, TimeEntryResponse
from hourbook.services.errors import StoreError

router = APIRouter(
    prefix="/time_entries",
    tags=["Time Entries"],
)


@router.get("", response_model=List[TimeEntryResponse])
def list_time_entries(
    project_id: Optional[int] = None,
    billed: Optional[bool] = None,
    occurred_from: Optional[date] = None,
    occurred_to: Optional[date] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        q = db.query(TimeEntry)

        if project_id is not None:
            q = q.filter(TimeEntry.project_id == int(project_id))
        if billed is True:
            q = q.filter(TimeEntry.invoiced_at.isnot(None))
        elif billed is False:
            q = q.filter(TimeEntry.invoiced_at.is_(None))
        if occurred_from is not None:
            q = q.filter(TimeEntry.occurred_on >= occurred_from)
        if occurred_to is not None:
            q = q.filter(TimeEntry.occurred_on <= occurred_to)

        return (
            q.order_by(TimeEntry.occurred_on.desc(), TimeEntry.created_at.desc())
            .offset(int(offset))
            .limit(int(limit))
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc
    finally:
        db.close()


@router.post("", response_model=TimeEntryResponse)
def create_time_entry(
    payload: TimeEntryCreate,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        if payload.project_id is not None:
            project = db.query(Project).filter(Project.id == int(payload.project_id)).first()
            if project is None:
                raise HTTPException(status_code=404, detail="Project not found")

        entry = TimeEntry(
            project_id=payload.project_id,
            occurred_on=payload.occurred_on,
            minutes=payload.minutes,
            phase_code=payload.phase_code,
            notes=payload.notes,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    finally:
        db.close()
