from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from hourbook.database import SessionLocal
from hourbook.models.invoice import INVOICE_STATUSES, Invoice
from hourbook.models.invoice_item import InvoiceItem
from hourbook.models.time_entry import TimeEntry
from hourbook.services.errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from hourbook.services.money import line_amount_cents, vat_amount_cents

logger = logging.getLogger(__name__)

CREDIT_NOTE_PREFIX = "CN-"
UPDATABLE_FIELDS = ("status", "invoice_date", "due_date", "vat_percent", "notes")
QUANTITY_DECIMAL_PLACES = 2


@dataclass(frozen=True)
class InvoiceHeader:
    invoice_number: str
    invoice_date: date
    project_id: Optional[int] = None
    due_date: Optional[date] = None
    status: str = "draft"
    vat_percent: Optional[Union[Decimal, float]] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class LineItemInput:
    description: str
    quantity: Union[Decimal, float, int]
    rate_cents: int
    amount_cents: int


@dataclass
class InvoiceComposeResult:
    invoice: Invoice
    marked_time_entry_ids: List[str] = field(default_factory=list)
    unmarked_time_entry_ids: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def billing_partially_failed(self) -> bool:
        return bool(self.unmarked_time_entry_ids)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal_cents: int
    vat_cents: int
    total_cents: int


def _validate_status(status: Optional[str]) -> None:
    if status not in INVOICE_STATUSES:
        raise InvoiceValidationError(
            f"Invalid status {status!r}; expected one of {', '.join(INVOICE_STATUSES)}"
        )


def _validate_header(header: InvoiceHeader) -> None:
    if not header.invoice_number or not str(header.invoice_number).strip():
        raise InvoiceValidationError("invoice_number is required")
    if header.invoice_date is None:
        raise InvoiceValidationError("invoice_date is required")
    _validate_status(header.status)


def _validate_quantities(line_items: Sequence[LineItemInput]) -> None:
    # invoice_items.quantity is Numeric(10, 2)
    for position, item in enumerate(line_items):
        quantity = Decimal(str(item.quantity)).normalize()
        if quantity.as_tuple().exponent < -QUANTITY_DECIMAL_PLACES:
            raise InvoiceValidationError(
                f"Line item {position}: quantity {item.quantity} has more than "
                f"{QUANTITY_DECIMAL_PLACES} decimal places"
            )


def _validate_line_amounts(line_items: Sequence[LineItemInput]) -> None:
    for position, item in enumerate(line_items):
        expected = line_amount_cents(item.quantity, item.rate_cents)
        if int(item.amount_cents) != expected:
            raise InvoiceValidationError(
                f"Line item {position}: amount_cents={item.amount_cents} "
                f"does not match quantity x rate_cents = {expected}"
            )


def _unique_ids(ids: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for raw in ids:
        entry_id = str(raw)
        if entry_id not in seen:
            seen.add(entry_id)
            out.append(entry_id)
    return out


def _persist_invoice(
    db: Session,
    header: InvoiceHeader,
    line_items: Sequence[LineItemInput],
    amount_cents: int,
) -> Invoice:
    invoice = Invoice(
        invoice_number=str(header.invoice_number).strip(),
        project_id=header.project_id,
        invoice_date=header.invoice_date,
        due_date=header.due_date,
        amount_cents=int(amount_cents),
        status=header.status,
        vat_percent=header.vat_percent,
        notes=header.notes,
    )
    db.add(invoice)
    db.flush()

    if line_items:
        _insert_line_items(db, invoice.id, line_items)

    return invoice


def _insert_line_items(db: Session, invoice_id: int, line_items: Sequence[LineItemInput]) -> None:
    db.add_all(
        [
            InvoiceItem(
                invoice_id=invoice_id,
                position=position,
                description=item.description,
                quantity=item.quantity,
                rate_cents=int(item.rate_cents),
                amount_cents=int(item.amount_cents),
            )
            for position, item in enumerate(line_items)
        ]
    )
    db.flush()


def _mark_time_entries_billed(
    db: Session,
    time_entry_ids: Sequence[str],
    invoice_date: date,
    invoice_number: str,
) -> int:
    # Conditional: an entry already billed by another invoice is left alone.
    return (
        db.query(TimeEntry)
        .filter(
            TimeEntry.id.in_(list(time_entry_ids)),
            TimeEntry.invoiced_at.is_(None),
        )
        .update(
            {
                TimeEntry.invoiced_at: invoice_date,
                TimeEntry.invoice_number: invoice_number,
            },
            synchronize_session=False,
        )
    )


def _billed_by(db: Session, time_entry_ids: Sequence[str], invoice_number: str) -> set:
    rows = (
        db.query(TimeEntry.id)
        .filter(
            TimeEntry.id.in_(list(time_entry_ids)),
            TimeEntry.invoice_number == invoice_number,
        )
        .all()
    )
    return {r.id for r in rows}


def _mark_billed_best_effort(db: Session, invoice: Invoice, time_entry_ids: List[str]) -> InvoiceComposeResult:
    result = InvoiceComposeResult(invoice=invoice)
    log_extra = {"invoice_id": invoice.id, "invoice_number": invoice.invoice_number}

    try:
        with db.begin_nested():
            _mark_time_entries_billed(db, time_entry_ids, invoice.invoice_date, invoice.invoice_number)
            billed = _billed_by(db, time_entry_ids, invoice.invoice_number)
    except SQLAlchemyError as exc:
        # Savepoint is gone; the invoice itself stays.
        logger.exception("failed to mark time entries as billed", extra=log_extra)
        result.unmarked_time_entry_ids = list(time_entry_ids)
        result.warnings.append(f"Time entries could not be marked as billed: {StoreError.from_exc(exc)}")
        return result

    result.marked_time_entry_ids = [i for i in time_entry_ids if i in billed]
    result.unmarked_time_entry_ids = [i for i in time_entry_ids if i not in billed]

    if result.unmarked_time_entry_ids:
        logger.warning(
            "time entries not marked as billed",
            extra={**log_extra, "time_entry_ids": result.unmarked_time_entry_ids},
        )
        result.warnings.append(
            "Time entries already billed or not found: " + ", ".join(result.unmarked_time_entry_ids)
        )

    return result


def compose_invoice(
    header: InvoiceHeader,
    line_items: Sequence[LineItemInput] = (),
    time_entry_ids: Sequence[str] = (),
    *,
    db: Optional[Session] = None,
    strict_amounts: bool = False,
) -> InvoiceComposeResult:
    """
    Create an invoice with its line items and bill the given time entries.

    The total is the sum of the caller-supplied item amounts. Header and items
    are written in one transaction; marking time entries runs in a savepoint
    and never fails the invoice: anything left unmarked is reported through
    the result's warnings.

    If db is provided, this function will NOT commit/close. Caller owns the transaction.
    If db is None, this function manages its own session + commit.
    """
    _validate_header(header)
    line_items = list(line_items)
    _validate_quantities(line_items)
    if strict_amounts:
        _validate_line_amounts(line_items)
    entry_ids = _unique_ids(time_entry_ids)

    amount_cents = sum(int(item.amount_cents) for item in line_items)

    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        invoice = _persist_invoice(db, header, line_items, amount_cents)

        if entry_ids:
            result = _mark_billed_best_effort(db, invoice, entry_ids)
        else:
            result = InvoiceComposeResult(invoice=invoice)

        if owns_db:
            db.commit()

        _load_invoice_relations(db, invoice)
        return result
    except SQLAlchemyError as exc:
        if owns_db:
            db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def _load_invoice_relations(db: Session, invoice: Invoice) -> None:
    db.refresh(invoice)
    # touch relations so they survive session close
    _ = list(invoice.items)
    _ = invoice.project


def _invoice_query(db: Session):
    return db.query(Invoice).options(
        selectinload(Invoice.items),
        joinedload(Invoice.project),
    )


def _get_invoice_or_raise(db: Session, invoice_id: Optional[int]) -> Invoice:
    if invoice_id is None:
        raise InvoiceValidationError("invoice id is required")
    try:
        invoice = _invoice_query(db).filter(Invoice.id == int(invoice_id)).first()
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc
    if invoice is None:
        raise InvoiceNotFoundError("Invoice not found")
    return invoice


def get_invoice(invoice_id: int, *, db: Session) -> Invoice:
    return _get_invoice_or_raise(db, invoice_id)


def list_invoices(
    *,
    db: Session,
    status: Optional[str] = None,
    project_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Invoice]:
    if status is not None:
        _validate_status(status)

    q = _invoice_query(db)
    if status is not None:
        q = q.filter(Invoice.status == str(status))
    if project_id is not None:
        q = q.filter(Invoice.project_id == int(project_id))

    try:
        return (
            q.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
            .offset(int(offset))
            .limit(int(limit))
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc


def list_overdue_invoices(*, db: Session, today: Optional[date] = None) -> List[Invoice]:
    """Sent (or already flagged overdue) invoices whose due date has passed."""
    today = today or date.today()
    try:
        return (
            _invoice_query(db)
            .filter(
                Invoice.status.in_(["sent", "overdue"]),
                Invoice.due_date < today,
            )
            .order_by(Invoice.due_date.asc(), Invoice.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc


def update_invoice(invoice_id: int, changes: Dict[str, Any], *, db: Session) -> Invoice:
    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise InvoiceValidationError(f"Fields cannot be updated: {', '.join(unknown)}")
    if "status" in changes:
        _validate_status(changes["status"])
    if "invoice_date" in changes and changes["invoice_date"] is None:
        raise InvoiceValidationError("invoice_date is required")

    invoice = _get_invoice_or_raise(db, invoice_id)
    for key, value in changes.items():
        setattr(invoice, key, value)

    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise StoreError.from_exc(exc) from exc
    return invoice


def send_invoice(invoice_id: int, *, db: Session) -> Invoice:
    # TODO: hand the rendered document to a mail provider once one is configured
    return update_invoice(invoice_id, {"status": "sent"}, db=db)


def clear_billing_for_invoice_number(invoice_number: str, *, db: Session) -> int:
    """Un-invoice every time entry billed under invoice_number."""
    return (
        db.query(TimeEntry)
        .filter(TimeEntry.invoice_number == invoice_number)
        .update(
            {TimeEntry.invoiced_at: None, TimeEntry.invoice_number: None},
            synchronize_session=False,
        )
    )


def delete_invoice(invoice_id: int, *, db: Optional[Session] = None) -> Dict[str, Any]:
    """
    Delete an invoice after releasing the time entries it billed.

    Un-invoice, item delete and invoice delete share one transaction.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        invoice = _get_invoice_or_raise(db, invoice_id)
        invoice_number = invoice.invoice_number

        released = 0
        if invoice_number:
            released = clear_billing_for_invoice_number(invoice_number, db=db)

        db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).delete(synchronize_session=False)
        db.query(Invoice).filter(Invoice.id == invoice.id).delete(synchronize_session=False)

        if owns_db:
            db.commit()

        logger.info(
            "invoice deleted",
            extra={"invoice_id": int(invoice_id), "invoice_number": invoice_number, "released_time_entries": released},
        )
        return {"invoice_id": int(invoice_id), "released_time_entries": int(released)}
    except SQLAlchemyError as exc:
        if owns_db:
            db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def build_credit_note(original: Invoice, today: date) -> tuple[InvoiceHeader, List[LineItemInput]]:
    """Negated copy of an invoice: same project, dated today, always draft."""
    header = InvoiceHeader(
        invoice_number=f"{CREDIT_NOTE_PREFIX}{original.invoice_number}",
        project_id=original.project_id,
        invoice_date=today,
        due_date=today,
        status="draft",
        vat_percent=original.vat_percent,
        notes=f"Credit note for invoice {original.invoice_number}",
    )
    items = [
        LineItemInput(
            description=item.description,
            quantity=-Decimal(str(item.quantity)),
            rate_cents=int(item.rate_cents),
            amount_cents=-int(item.amount_cents),
        )
        for item in original.items
    ]
    return header, items


def create_credit_note(
    invoice_id: int,
    *,
    db: Optional[Session] = None,
    today: Optional[date] = None,
) -> Invoice:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        original = _get_invoice_or_raise(db, invoice_id)
        header, items = build_credit_note(original, today or date.today())
        credit_note = _persist_invoice(db, header, items, -int(original.amount_cents))

        if owns_db:
            db.commit()

        _load_invoice_relations(db, credit_note)
        return credit_note
    except SQLAlchemyError as exc:
        if owns_db:
            db.rollback()
        raise StoreError.from_exc(exc) from exc
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def invoice_totals(invoice: Invoice) -> InvoiceTotals:
    subtotal = int(invoice.amount_cents or 0)
    vat = vat_amount_cents(subtotal, invoice.vat_percent)
    return InvoiceTotals(subtotal_cents=subtotal, vat_cents=vat, total_cents=subtotal + vat)
