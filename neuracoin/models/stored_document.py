"""Stored Document Model - JSON documents addressed by string key"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from sqlalchemy.sql import func
from neuracoin.database import Base


class StoredDocument(Base):
    """Stored Document Model

    Backs the key/value persistence adapter. One row per key, the value is a
    JSON document. Keys are composed as <entity>_<user_id>.
    """
    __tablename__ = "stored_documents"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_stored_documents_updated', 'updated_at'),
    )

    def __repr__(self):
        return f"<StoredDocument(key='{self.key}', version={self.version})>"
