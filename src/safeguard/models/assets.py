"""
SQLAlchemy model for Assets
"""

import uuid
from sqlalchemy import Column, String, Date, DateTime, Text, Uuid, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database.core import Base

STICKY_STATUSES = ("failed", "in-testing")


class Asset(Base):
    """
    SQLAlchemy model for Assets table

    Represents a tracked insulating glove. Every row belongs to exactly one
    organization; certification dates drive the derived status unless the
    asset is failed or in testing.
    """
    __tablename__ = 'assets'
    __table_args__ = (
        UniqueConstraint('org_id', 'serial_number', name='uq_assets_org_serial'),
        Index('idx_assets_org_assigned', 'org_id', 'assigned_user_id'),
        CheckConstraint(
            "status IN ('active', 'near-due', 'expired', 'failed', 'in-testing')",
            name='chk_assets_status'
        ),
    )

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    org_id = Column(
        String(64),
        nullable=False,
        index=True,
        doc="Owning organization, immutable after creation"
    )

    # Descriptive
    serial_number = Column(
        String(100),
        nullable=False,
        doc="Serial number, unique within the organization"
    )
    asset_class = Column(
        String(20),
        nullable=False,
        doc="Insulation rating: Class 00 .. Class 4"
    )
    glove_size = Column(String(2), nullable=True)
    glove_color = Column(String(10), nullable=True)

    # Assignment
    assigned_user_id = Column(
        String(64),
        nullable=True,
        doc="Identity-provider user id of the member holding the asset"
    )

    # Certification dates
    issue_date = Column(Date, nullable=False)
    last_certification_date = Column(Date, nullable=False)
    next_certification_date = Column(
        Date,
        nullable=False,
        index=True,
        doc="last_certification_date + 6 months, frozen while failed or in testing"
    )

    # Lifecycle
    status = Column(
        String(20),
        nullable=False,
        default='active',
        doc="active, near-due, expired, failed, in-testing"
    )
    failure_date = Column(Date, nullable=True)
    failure_reason = Column(Text, nullable=True)
    testing_start_date = Column(Date, nullable=True)

    # Audit fields
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    certification_documents = relationship(
        "CertificationDocument",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="CertificationDocument.upload_date",
    )

    @property
    def is_sticky(self) -> bool:
        """Failed and in-testing assets are outside the certification cycle"""
        return self.status in STICKY_STATUSES

    def __repr__(self):
        return f"<Asset(id={self.id}, serial='{self.serial_number}', status='{self.status}', org={self.org_id})>"
