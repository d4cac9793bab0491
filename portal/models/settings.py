"""
Settings Model
Key-value store for runtime configuration (minimum amounts, exam start, hero image)
"""
from sqlalchemy import Column, String, DateTime, JSON
import uuid
from datetime import datetime
from portal.database import Base


class Settings(Base):
    """
    Settings table to store application configuration.
    `value` holds a JSON scalar; a missing row means the hardcoded default applies.
    """
    __tablename__ = "settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Settings key={self.key}>"
