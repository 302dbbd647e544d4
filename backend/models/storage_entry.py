# backend/models/storage_entry.py
from sqlalchemy import Column, String, Text, DateTime, func
from database import Base

# Model StorageEntry
# Key-value row backing the local storage backend.
# One key holds the whole inventory document serialized as JSON.
class StorageEntry(Base):
    __tablename__ = "storage_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
