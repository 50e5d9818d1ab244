"""
Authentication schemas for the Safeguard70E compliance tracker
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class OrgRole(str, Enum):
    """Organization role carried in the identity token"""
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def from_claim(cls, value: Optional[str]) -> "OrgRole":
        """Accept both plain and provider-prefixed values ("org:admin")"""
        if not value:
            raise ValueError("org_role claim is missing")
        normalized = value.split(":", 1)[-1].strip().lower()
        # Older organizations were created with a "technician" role
        if normalized == "technician":
            normalized = "member"
        return cls(normalized)


class Caller(BaseModel):
    """Identity of the user making a request, resolved from the token"""
    org_id: str = Field(..., min_length=1, description="Organization the session is scoped to")
    user_id: str = Field(..., min_length=1, description="Identity-provider user id")
    role: OrgRole = Field(..., description="Role within the organization")

    @property
    def is_admin(self) -> bool:
        return self.role == OrgRole.ADMIN


class TokenPayload(BaseModel):
    """Verified identity token claims"""
    user_id: str = Field(..., description="User identifier (sub)")
    org_id: str = Field(..., description="Active organization")
    org_role: OrgRole = Field(..., description="Role within the active organization")
    jti: Optional[str] = Field(None, description="Token identifier")
    exp: Optional[int] = Field(None, description="Expiration timestamp")

    def to_caller(self) -> Caller:
        return Caller(org_id=self.org_id, user_id=self.user_id, role=self.org_role)


__all__ = ["OrgRole", "Caller", "TokenPayload"]
