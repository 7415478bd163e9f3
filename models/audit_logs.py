# models/audit_logs.py

from sqlalchemy import Column, Integer, DateTime, String, JSON
from sqlalchemy.sql import func

from models import Base


class AuditLog(Base):
    """Who did what in the back office. Best effort: never blocks the action it records."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    action = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(100), nullable=True)

    admin_id = Column(Integer, nullable=True)
    admin_email = Column(String(255), nullable=True)

    details = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
