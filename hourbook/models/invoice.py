from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from hourbook.database import Base

INVOICE_STATUSES = ("draft", "sent", "overdue", "paid", "void")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String, nullable=False, unique=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)

    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True, index=True)

    amount_cents = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default="draft", index=True)
    vat_percent = Column(Numeric(5, 2), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    project = relationship("Project")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('draft','sent','overdue','paid','void')",
            name="ck_invoices_status_valid",
        ),
    )
