from sqlalchemy import Column, DateTime, Integer, SmallInteger, String, func
from taskhub.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    # unique by convention only
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=True)
    icon = Column(String(50), nullable=True)
    description = Column(String(255), nullable=True)
    is_active = Column(SmallInteger, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    is_deleted = Column(SmallInteger, nullable=False, default=0, server_default="0")
