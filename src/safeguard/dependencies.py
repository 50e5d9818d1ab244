"""
FastAPI dependencies for authentication, services and collaborators
"""

import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .database.core import get_db
from .schemas.auth import Caller, OrgRole, TokenPayload
from .services.asset_service import AssetLifecycleService
from .services.membership import MembershipClient
from .services.storage.document_storage import DocumentStorage

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str, settings: Settings) -> TokenPayload:
    """Verify an identity token and return its claims"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "require_exp": True,
                "verify_aud": False,
            },
        )
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized("Invalid token")

    # Organization claims are either flat or nested under "o" depending on token version
    org_claims = payload.get("o") or {}
    user_id = payload.get("user_id") or payload.get("sub")
    org_id = payload.get("org_id") or org_claims.get("id")
    org_role = payload.get("org_role") or org_claims.get("rol")

    if not user_id or not org_id or not org_role:
        raise _unauthorized("Invalid token - missing required claims")

    try:
        role = OrgRole.from_claim(org_role)
    except ValueError:
        raise _unauthorized("Invalid token - unknown organization role")

    return TokenPayload(
        user_id=str(user_id),
        org_id=str(org_id),
        org_role=role,
        jti=payload.get("jti"),
        exp=payload.get("exp"),
    )


def create_access_token(data: dict, settings: Settings,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token (local development and tests)"""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=30))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": str(uuid.uuid4()),
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def get_current_caller(
    token: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Caller:
    """Resolve the caller's organization, user and role from the bearer token"""
    return verify_token(token.credentials, settings).to_caller()


async def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return caller


@lru_cache
def _document_storage(bucket: str, region: str, url_base: Optional[str]) -> DocumentStorage:
    return DocumentStorage(bucket, region=region, url_base=url_base)


def get_document_storage(settings: Settings = Depends(get_settings)) -> DocumentStorage:
    return _document_storage(settings.document_bucket, settings.aws_region, settings.document_url_base)


def get_asset_service(
    db: AsyncSession = Depends(get_db),
    storage: DocumentStorage = Depends(get_document_storage),
) -> AssetLifecycleService:
    return AssetLifecycleService(db, storage=storage)


async def get_membership_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[MembershipClient]:
    async with httpx.AsyncClient(
        base_url=settings.identity_api_url,
        headers={"Authorization": f"Bearer {settings.identity_api_key}"},
        timeout=settings.identity_api_timeout,
    ) as client:
        yield MembershipClient(client)
