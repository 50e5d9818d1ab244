"""
Organization membership router (admin only)
"""

from typing import List

from fastapi import APIRouter, Depends

from ..dependencies import get_membership_client, require_admin
from ..schemas.auth import Caller
from ..schemas.member import InvitationCreate, MemberListResponse, PendingInvitation
from ..services.membership import MembershipClient

router = APIRouter(prefix="/v1/organization", tags=["organization"])


@router.get("/members", response_model=MemberListResponse)
async def list_members(
    caller: Caller = Depends(require_admin),
    client: MembershipClient = Depends(get_membership_client)
):
    members = await client.list_members(caller.org_id)
    return MemberListResponse(members=members, total=len(members))


@router.get("/invitations", response_model=List[PendingInvitation])
async def list_invitations(
    caller: Caller = Depends(require_admin),
    client: MembershipClient = Depends(get_membership_client)
):
    return await client.list_pending_invitations(caller.org_id)


@router.post("/invitations", response_model=PendingInvitation, status_code=201)
async def invite_member(
    invitation: InvitationCreate,
    caller: Caller = Depends(require_admin),
    client: MembershipClient = Depends(get_membership_client)
):
    """Invite a user into the caller's organization"""
    return await client.invite_member(
        caller.org_id, invitation.email, invitation.role, caller.user_id
    )
