"""
Key-value entry model
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, Float, DateTime

from bigday.core.db import Base

class KVEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)  # JSON document
    expires_at = Column(Float, nullable=True)  # epoch seconds, NULL = no TTL
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
