from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from hourbook.database import SessionLocal
from hourbook.deps.auth import require_auth
from hourbook.models.project import Project
from hourbook.schemas.project import ProjectCreate, ProjectResponse
from hourbook.services.errors import StoreError

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("", response_model=ProjectResponse)
def create_project(
    payload: ProjectCreate,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        row = Project(
            name=payload.name,
            client_name=payload.client_name,
            default_rate_cents=payload.default_rate_cents,
            phase_rates_cents=payload.phase_rates_cents,
            archived=False,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    finally:
        db.close()


@router.get("", response_model=List[ProjectResponse])
def list_projects(
    include_archived: bool = False,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        q = db.query(Project)
        if not include_archived:
            q = q.filter(Project.archived.is_(False))
        return q.order_by(Project.id.asc()).all()
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc
    finally:
        db.close()


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        row = db.query(Project).filter(Project.id == int(project_id)).first()
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc
    finally:
        db.close()

    if row is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return row
