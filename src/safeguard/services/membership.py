"""
Client for the identity & membership provider's backend API.

Membership is owned by the provider; this service only reads members and
pending invitations and sends new invitations. Throttled calls (HTTP 429)
are retried with 1s/2s/4s backoff before a RateLimited error surfaces.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..schemas.auth import OrgRole
from ..schemas.member import OrganizationMember, PendingInvitation
from ..utils.errors import RateLimited, StoreError
from ..utils.resilience import RATE_LIMIT_DELAYS, retry_with_backoff

logger = logging.getLogger(__name__)


def _timestamp(value: Any) -> Optional[datetime]:
    """Provider timestamps are epoch milliseconds"""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return None


def _role(value: Optional[str]) -> OrgRole:
    try:
        return OrgRole.from_claim(value)
    except ValueError:
        return OrgRole.MEMBER


def _items(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        return payload.get("data") or []
    return payload or []


class MembershipClient:
    """Organization membership operations backed by the identity provider"""

    def __init__(self, client: httpx.AsyncClient, retry_delays=RATE_LIMIT_DELAYS, sleep=None):
        self.client = client
        self.retry_delays = retry_delays
        self.sleep = sleep

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        async def attempt():
            try:
                response = await self.client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"Identity provider request {method} {path} failed: {e}")
                raise StoreError(str(e))

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                raise RateLimited(
                    "Identity provider rate limit exceeded",
                    retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            if response.status_code >= 400:
                logger.error(
                    f"Identity provider {method} {path} returned {response.status_code}: {response.text[:200]}"
                )
                raise StoreError(f"identity provider returned {response.status_code}")
            return response.json()

        options = {"delays": self.retry_delays}
        if self.sleep is not None:
            options["sleep"] = self.sleep
        return await retry_with_backoff(attempt, **options)

    async def list_members(self, org_id: str) -> List[OrganizationMember]:
        payload = await self._request(
            "GET", f"/organizations/{org_id}/memberships", params={"limit": 100}
        )
        members = []
        for item in _items(payload):
            user = item.get("public_user_data") or {}
            name = " ".join(part for part in (user.get("first_name"), user.get("last_name")) if part)
            members.append(OrganizationMember(
                id=item["id"],
                user_id=user.get("user_id"),
                name=name or user.get("identifier") or "",
                email=user.get("identifier"),
                role=_role(item.get("role")),
                created_at=_timestamp(item.get("created_at")),
            ))
        logger.info(f"Loaded {len(members)} members for org {org_id}")
        return members

    async def list_pending_invitations(self, org_id: str) -> List[PendingInvitation]:
        payload = await self._request(
            "GET", f"/organizations/{org_id}/invitations", params={"status": "pending"}
        )
        return [
            PendingInvitation(
                id=item["id"],
                email=item.get("email_address", ""),
                role=_role(item.get("role")),
                created_at=_timestamp(item.get("created_at")),
            )
            for item in _items(payload)
        ]

    async def invite_member(self, org_id: str, email: str, role: OrgRole,
                            inviter_user_id: str) -> PendingInvitation:
        payload = await self._request(
            "POST",
            f"/organizations/{org_id}/invitations",
            json={
                "email_address": email,
                "role": f"org:{role.value}",
                "inviter_user_id": inviter_user_id,
            },
        )
        logger.info(f"Invitation sent to {email} for org {org_id} by {inviter_user_id}")
        return PendingInvitation(
            id=payload["id"],
            email=payload.get("email_address", email),
            role=_role(payload.get("role")),
            created_at=_timestamp(payload.get("created_at")),
        )
