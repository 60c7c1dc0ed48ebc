from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hourbook.database import SessionLocal
from hourbook.models.project import Project
from hourbook.models.time_entry import TimeEntry
from hourbook.services.errors import StoreError
from hourbook.services.money import minutes_amount_cents

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class ProjectBilling:
    project_id: int
    name: Optional[str]
    client_name: Optional[str]
    default_rate_cents: Optional[int]
    phase_rates_cents: Optional[Dict[str, int]]


@dataclass(frozen=True)
class UnbilledEntry:
    id: str
    project_id: Optional[int]
    occurred_on: date
    minutes: Optional[int]
    phase_code: Optional[str] = None
    notes: Optional[str] = None
    invoiced_at: Optional[date] = None
    invoice_number: Optional[str] = None
    project: Optional[ProjectBilling] = None


@dataclass(frozen=True)
class PricedEntry:
    entry: UnbilledEntry
    hours: float
    rate_cents: int
    amount_cents: int


@dataclass
class UnbilledGroup:
    project_id: Optional[int]
    project_name: str
    client_name: str
    total_hours: float = 0.0
    total_amount_cents: int = 0
    entries: List[PricedEntry] = field(default_factory=list)


def resolve_rate_cents(phase_code: Optional[str], project: Optional[ProjectBilling]) -> int:
    """Phase override if the project has one for this phase, else default, else 0."""
    if project is None:
        return 0
    phase_rates = project.phase_rates_cents or {}
    if phase_code is not None and phase_rates.get(phase_code) is not None:
        return int(phase_rates[phase_code])
    if project.default_rate_cents is not None:
        return int(project.default_rate_cents)
    return 0


def aggregate_unbilled(entries: Iterable[UnbilledEntry]) -> Dict[Optional[int], UnbilledGroup]:
    """
    Group entries by project and price each one.

    Pure function: does not filter on invoiced_at, that is the query's job.
    Groups iterate in first-seen project order; entries keep input order.
    """
    groups: Dict[Optional[int], UnbilledGroup] = {}

    for entry in entries:
        group = groups.get(entry.project_id)
        if group is None:
            project = entry.project
            group = UnbilledGroup(
                project_id=entry.project_id,
                project_name=(project.name if project else None) or UNKNOWN,
                client_name=(project.client_name if project else None) or UNKNOWN,
            )
            groups[entry.project_id] = group

        hours = (entry.minutes or 0) / 60.0
        rate_cents = resolve_rate_cents(entry.phase_code, entry.project)
        amount_cents = minutes_amount_cents(entry.minutes, rate_cents)

        group.total_hours += hours
        group.total_amount_cents += amount_cents
        group.entries.append(
            PricedEntry(entry=entry, hours=hours, rate_cents=rate_cents, amount_cents=amount_cents)
        )

    return groups


def _to_unbilled_entry(row: TimeEntry, project: Optional[Project]) -> UnbilledEntry:
    billing = None
    if project is not None:
        billing = ProjectBilling(
            project_id=project.id,
            name=project.name,
            client_name=project.client_name,
            default_rate_cents=project.default_rate_cents,
            phase_rates_cents=dict(project.phase_rates_cents or {}),
        )
    return UnbilledEntry(
        id=row.id,
        project_id=row.project_id,
        occurred_on=row.occurred_on,
        minutes=row.minutes,
        phase_code=row.phase_code,
        notes=row.notes,
        invoiced_at=row.invoiced_at,
        invoice_number=row.invoice_number,
        project=billing,
    )


def fetch_unbilled_entries(*, db: Session, project_id: Optional[int] = None) -> List[UnbilledEntry]:
    """Unbilled time entries joined with project billing fields, newest first."""
    try:
        q = (
            db.query(TimeEntry, Project)
            .outerjoin(Project, Project.id == TimeEntry.project_id)
            .filter(TimeEntry.invoiced_at.is_(None))
        )
        if project_id is not None:
            q = q.filter(TimeEntry.project_id == int(project_id))

        rows = q.order_by(TimeEntry.occurred_on.desc(), TimeEntry.created_at.desc()).all()
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc

    return [_to_unbilled_entry(entry, project) for entry, project in rows]


def unbilled_groups(
    *,
    db: Optional[Session] = None,
    project_id: Optional[int] = None,
) -> List[UnbilledGroup]:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        entries = fetch_unbilled_entries(db=db, project_id=project_id)
        return list(aggregate_unbilled(entries).values())
    finally:
        if owns_db:
            db.close()
