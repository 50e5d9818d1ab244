"""
SQLAlchemy model for certification documents
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database.core import Base


class CertificationDocument(Base):
    """
    Certification document attached to a single asset.

    Documents are immutable once created and are removed only when the
    owning asset is deleted.
    """
    __tablename__ = 'certification_documents'

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    asset_id = Column(
        Uuid,
        ForeignKey('assets.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
        doc="Owning asset"
    )
    org_id = Column(
        String(64),
        nullable=False,
        index=True,
        doc="Copied from the owning asset for tenant filtering"
    )
    file_name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False, doc="Storage reference returned by the document store")
    upload_date = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    uploaded_by = Column(String(64), nullable=False)
    applied_to_assets = Column(
        JSON,
        nullable=True,
        doc="Asset ids sharing this document, set for bulk uploads only"
    )

    asset = relationship("Asset", back_populates="certification_documents")

    def __repr__(self):
        return f"<CertificationDocument(id={self.id}, asset={self.asset_id}, file='{self.file_name}')>"
