from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from hourbook.database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    client_name = Column(String, nullable=True)

    default_rate_cents = Column(Integer, nullable=True)
    # phase_code -> rate in cents; need not cover every phase
    phase_rates_cents = Column(JSON, nullable=True)

    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
