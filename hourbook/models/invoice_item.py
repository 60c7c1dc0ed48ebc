from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from hourbook.database import Base


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    description = Column(String, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    rate_cents = Column(Integer, nullable=False)
    amount_cents = Column(Integer, nullable=False)

    invoice = relationship("Invoice", back_populates="items")
