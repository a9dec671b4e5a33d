from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, SmallInteger, String, Text, func
from taskhub.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    # no cascade: deleting a category leaves category_id untouched
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    priority = Column(String(10), nullable=False, default="medium", server_default="medium")
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    is_deleted = Column(SmallInteger, nullable=False, default=0, server_default="0", index=True)
