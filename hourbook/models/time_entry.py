import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from hourbook.database import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)

    occurred_on = Column(Date, nullable=False, index=True)
    minutes = Column(Integer, nullable=True)
    phase_code = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    invoiced_at = Column(Date, nullable=True, index=True)
    invoice_number = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    project = relationship("Project")

    __table_args__ = (
        CheckConstraint(
            "(invoiced_at IS NULL AND invoice_number IS NULL) "
            "OR (invoiced_at IS NOT NULL AND invoice_number IS NOT NULL)",
            name="ck_time_entries_billed_state_consistent",
        ),
    )
