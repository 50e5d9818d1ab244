"""
Pydantic schemas for assets and certification documents
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AssetStatus(str, Enum):
    """Certification lifecycle status"""
    ACTIVE = "active"
    NEAR_DUE = "near-due"
    EXPIRED = "expired"
    FAILED = "failed"
    IN_TESTING = "in-testing"


class AssetClass(str, Enum):
    """Glove insulation rating"""
    CLASS_00 = "Class 00"
    CLASS_0 = "Class 0"
    CLASS_1 = "Class 1"
    CLASS_2 = "Class 2"
    CLASS_3 = "Class 3"
    CLASS_4 = "Class 4"


class GloveSize(str, Enum):
    SIZE_7 = "7"
    SIZE_8 = "8"
    SIZE_9 = "9"
    SIZE_10 = "10"
    SIZE_11 = "11"
    SIZE_12 = "12"


class GloveColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    BLACK = "black"
    BEIGE = "beige"


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class AssetFields(BaseModel):
    """Validators shared by the create and update payloads"""

    @field_validator('serial_number', check_fields=False)
    @classmethod
    def validate_serial_number(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("serial_number must not be empty")
        return v

    @field_validator('glove_size', mode='before', check_fields=False)
    @classmethod
    def coerce_glove_size(cls, v):
        v = _blank_to_none(v)
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('glove_color', mode='before', check_fields=False)
    @classmethod
    def normalize_glove_color(cls, v):
        v = _blank_to_none(v)
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('assigned_user_id', 'issue_date', mode='before', check_fields=False)
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)


class AssetCreate(AssetFields):
    """Schema for registering a new asset"""
    serial_number: str = Field(
        ...,
        max_length=100,
        description="Serial number, unique within the organization",
        examples=["G-100"]
    )
    asset_class: AssetClass = Field(
        ...,
        description="Insulation rating",
        examples=["Class 1"]
    )
    last_certification_date: date = Field(
        ...,
        description="Date of the most recent certification test"
    )
    issue_date: Optional[date] = Field(
        None,
        description="Date the glove was issued; defaults to today"
    )
    glove_size: Optional[GloveSize] = None
    glove_color: Optional[GloveColor] = None
    assigned_user_id: Optional[str] = Field(
        None,
        max_length=64,
        description="Member the asset is assigned to"
    )


class AssetUpdate(AssetFields):
    """
    Schema for general asset updates.

    Lifecycle fields (status, failure and testing dates) are rejected here;
    they change only through the dedicated transitions.
    """
    model_config = ConfigDict(extra='forbid')

    serial_number: Optional[str] = Field(None, max_length=100)
    asset_class: Optional[AssetClass] = None
    last_certification_date: Optional[date] = None
    issue_date: Optional[date] = None
    glove_size: Optional[GloveSize] = None
    glove_color: Optional[GloveColor] = None
    assigned_user_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode='after')
    def reject_null_required(self):
        for name in ('serial_number', 'asset_class', 'last_certification_date', 'issue_date'):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


class FailureRequest(BaseModel):
    """Schema for marking an asset as failed"""
    reason: str = Field(..., description="Why the glove failed its test; must not be blank")


class DocumentRead(BaseModel):
    """Schema for reading a certification document"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    asset_id: UUID
    file_name: str
    file_url: str
    upload_date: datetime
    uploaded_by: str
    applied_to_assets: Optional[List[UUID]] = None


class AssetRead(BaseModel):
    """Schema for reading an asset with its derived status"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: str
    serial_number: str
    asset_class: AssetClass
    glove_size: Optional[GloveSize] = None
    glove_color: Optional[GloveColor] = None
    assigned_user_id: Optional[str] = None
    issue_date: date
    last_certification_date: date
    next_certification_date: date
    status: AssetStatus
    days_until_due: int = Field(..., description="Days until next certification, negative when overdue")
    failure_date: Optional[date] = None
    failure_reason: Optional[str] = None
    testing_start_date: Optional[date] = None
    certification_documents: List[DocumentRead] = Field(default_factory=list)

    @classmethod
    def from_asset(cls, asset, today: date) -> "AssetRead":
        """Project an Asset row, re-evaluating its status against today"""
        from ..services.status_calculator import days_until_due, effective_status

        return cls(
            id=asset.id,
            org_id=asset.org_id,
            serial_number=asset.serial_number,
            asset_class=asset.asset_class,
            glove_size=asset.glove_size,
            glove_color=asset.glove_color,
            assigned_user_id=asset.assigned_user_id,
            issue_date=asset.issue_date,
            last_certification_date=asset.last_certification_date,
            next_certification_date=asset.next_certification_date,
            status=effective_status(asset.status, asset.next_certification_date, today),
            days_until_due=days_until_due(asset.next_certification_date, today),
            failure_date=asset.failure_date,
            failure_reason=asset.failure_reason,
            testing_start_date=asset.testing_start_date,
            certification_documents=[
                DocumentRead.model_validate(doc) for doc in asset.certification_documents
            ],
        )


class AssetListResponse(BaseModel):
    assets: List[AssetRead]
    total: int


class BulkUploadItem(BaseModel):
    """Outcome of a bulk upload for one asset"""
    asset_id: UUID
    succeeded: bool
    document: Optional[DocumentRead] = None
    error: Optional[str] = None


class BulkUploadResponse(BaseModel):
    file_url: Optional[str] = Field(None, description="Stored document; absent when no asset accepted it")
    applied_to_assets: List[UUID]
    results: List[BulkUploadItem]

    @property
    def succeeded(self) -> List[UUID]:
        return [item.asset_id for item in self.results if item.succeeded]


class ImportRowError(BaseModel):
    """A rejected CSV row; row numbers count the header as row 1"""
    row: int
    message: str


class ImportReport(BaseModel):
    created: List[AssetRead] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)


class StatusCounts(BaseModel):
    total: int = 0
    active: int = 0
    near_due: int = 0
    expired: int = 0
    in_testing: int = 0
    failed: int = 0


class DashboardSummary(BaseModel):
    """Per-status counts plus the assets needing recertification soonest"""
    counts: StatusCounts
    needs_attention: List[AssetRead]
    in_testing: List[AssetRead]
    failed: List[AssetRead]
