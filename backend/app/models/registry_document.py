"""
Registry Document database model.

Row shape of the external master-data store: schemaless documents grouped
into named collections. Vehicle master data lives in the ``vehicles``
collection and is written by Database Management, never by this service.
Documents may use either the proper-case (``Registration_Number``) or the
camel-case (``registrationNumber``) field naming.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class RegistryDocument(Base):
    """One document of a registry collection."""
    __tablename__ = "registry_documents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    collection = Column(String(100), nullable=False, index=True)
    document = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RegistryDocument(id={self.id}, collection='{self.collection}')>"
