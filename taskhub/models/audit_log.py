from sqlalchemy import Column, DateTime, Integer, String, Text, func
from taskhub.database import Base


class AuditLog(Base):
    """Append-only trail of task mutations."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    table_name = Column(String(64), nullable=False)
    record_id = Column(Integer, nullable=False)
    action = Column(String(32), nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
