from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError

from hourbook.database import SessionLocal
from hourbook.deps.auth import require_auth
from hourbook.models.invoice import Invoice
from hourbook.schemas.invoice import (
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoiceDeleteResponse,
    InvoiceResponse,
    InvoiceStatus,
    InvoiceUpdate,
    UnbilledGroupResponse,
)
from hourbook.services import invoice_service, unbilled_service
from hourbook.services.errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from hourbook.services.invoice_service import InvoiceHeader, LineItemInput

router = APIRouter(prefix="/invoices", tags=["Invoices"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def _format_cents(cents: Optional[int]) -> str:
    amount = Decimal(int(cents or 0)) / Decimal(100)
    return f"{amount:,.2f}"


templates.env.filters["money"] = _format_cents


def _item_to_response(item) -> dict:
    return {
        "id": item.id,
        "invoice_id": item.invoice_id,
        "position": item.position,
        "description": item.description,
        "quantity": float(item.quantity),
        "rate_cents": item.rate_cents,
        "amount_cents": item.amount_cents,
    }


def _to_response(invoice: Invoice) -> dict:
    project = invoice.project
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "project_id": invoice.project_id,
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "amount_cents": invoice.amount_cents,
        "status": invoice.status,
        "vat_percent": None if invoice.vat_percent is None else float(invoice.vat_percent),
        "notes": invoice.notes,
        "project": None if project is None else {"name": project.name, "client_name": project.client_name},
        "items": [_item_to_response(i) for i in invoice.items],
    }


def _group_to_response(group) -> dict:
    return {
        "project_id": group.project_id,
        "project_name": group.project_name,
        "client_name": group.client_name,
        "total_hours": group.total_hours,
        "total_amount_cents": group.total_amount_cents,
        "entries": [
            {
                "id": p.entry.id,
                "project_id": p.entry.project_id,
                "occurred_on": p.entry.occurred_on,
                "minutes": p.entry.minutes,
                "phase_code": p.entry.phase_code,
                "notes": p.entry.notes,
                "invoiced_at": p.entry.invoiced_at,
                "invoice_number": p.entry.invoice_number,
                "rate_cents": p.rate_cents,
                "amount_cents": p.amount_cents,
            }
            for p in group.entries
        ],
    }


@router.get("/unbilled", response_model=list[UnbilledGroupResponse])
def list_unbilled(
    project_id: Optional[int] = None,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        groups = unbilled_service.unbilled_groups(db=db, project_id=project_id)
        return [_group_to_response(g) for g in groups]
    finally:
        db.close()


@router.get("/overdue", response_model=List[InvoiceResponse])
def list_overdue(_auth: str = Depends(require_auth)):
    db = SessionLocal()
    try:
        return [_to_response(i) for i in invoice_service.list_overdue_invoices(db=db)]
    finally:
        db.close()


@router.get("", response_model=List[InvoiceResponse])
def list_invoices(
    status: Optional[InvoiceStatus] = None,
    project_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        rows = invoice_service.list_invoices(
            db=db,
            status=status,
            project_id=project_id,
            limit=limit,
            offset=offset,
        )
        return [_to_response(i) for i in rows]
    finally:
        db.close()


@router.post("", response_model=InvoiceCreateResponse)
def create_invoice(
    payload: InvoiceCreate,
    _auth: str = Depends(require_auth),
):
    header = InvoiceHeader(
        invoice_number=payload.invoice_number,
        invoice_date=payload.invoice_date,
        project_id=payload.project_id,
        due_date=payload.due_date,
        status=payload.status,
        vat_percent=payload.vat_percent,
        notes=payload.notes,
    )
    items = [
        LineItemInput(
            description=i.description,
            quantity=i.quantity,
            rate_cents=i.rate_cents,
            amount_cents=i.amount_cents,
        )
        for i in payload.items
    ]

    db = SessionLocal()
    try:
        result = invoice_service.compose_invoice(header, items, payload.time_entry_ids, db=db)
        db.commit()
        db.refresh(result.invoice)
        return {
            **_to_response(result.invoice),
            "warnings": result.warnings,
            "unmarked_time_entry_ids": result.unmarked_time_entry_ids,
        }
    except InvoiceValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, _auth: str = Depends(require_auth)):
    db = SessionLocal()
    try:
        return _to_response(invoice_service.get_invoice(invoice_id, db=db))
    except InvoiceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()


@router.put("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        invoice = invoice_service.update_invoice(
            invoice_id,
            payload.model_dump(exclude_unset=True),
            db=db,
        )
        db.commit()
        return _to_response(invoice)
    except InvoiceNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvoiceValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.delete("/{invoice_id}", response_model=InvoiceDeleteResponse)
def delete_invoice(invoice_id: int, _auth: str = Depends(require_auth)):
    db = SessionLocal()
    try:
        result = invoice_service.delete_invoice(invoice_id, db=db)
        db.commit()
        return {"success": True, **result}
    except InvoiceNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
def send_invoice(invoice_id: int, _auth: str = Depends(require_auth)):
    db = SessionLocal()
    try:
        invoice = invoice_service.send_invoice(invoice_id, db=db)
        db.commit()
        return _to_response(invoice)
    except InvoiceNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/{invoice_id}/credit", response_model=InvoiceResponse)
def create_credit_note(invoice_id: int, _auth: str = Depends(require_auth)):
    db = SessionLocal()
    try:
        credit_note = invoice_service.create_credit_note(invoice_id, db=db)
        db.commit()
        db.refresh(credit_note)
        return _to_response(credit_note)
    except InvoiceNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.get("/{invoice_id}/document")
def render_invoice_document(
    invoice_id: int,
    request: Request,
    _auth: str = Depends(require_auth),
):
    db = SessionLocal()
    try:
        invoice = invoice_service.get_invoice(invoice_id, db=db)
        return templates.TemplateResponse(
            request,
            "invoice.html",
            {
                "invoice": invoice,
                "project": invoice.project,
                "items": list(invoice.items),
                "totals": invoice_service.invoice_totals(invoice),
            },
        )
    except InvoiceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    finally:
        db.close()
