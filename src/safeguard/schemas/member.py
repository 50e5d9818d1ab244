"""
Organization membership schemas (sourced from the identity provider)
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .auth import OrgRole


class OrganizationMember(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    role: OrgRole
    created_at: Optional[datetime] = None


class PendingInvitation(BaseModel):
    id: str
    email: str
    role: OrgRole = OrgRole.MEMBER
    created_at: Optional[datetime] = None


class InvitationCreate(BaseModel):
    """Schema for inviting a user to the caller's organization"""
    email: EmailStr = Field(..., description="Address the invitation is sent to")
    role: OrgRole = Field(OrgRole.MEMBER, description="Role granted on acceptance")


class MemberListResponse(BaseModel):
    members: List[OrganizationMember]
    total: int
