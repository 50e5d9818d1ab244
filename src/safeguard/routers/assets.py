"""
Assets API router for the Safeguard70E compliance tracker
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from ..dependencies import get_asset_service, get_current_caller
from ..middleware.rate_limiter import UPLOAD_LIMIT, limiter
from ..schemas.asset import (
    AssetCreate,
    AssetListResponse,
    AssetRead,
    AssetStatus,
    AssetUpdate,
    DashboardSummary,
    DocumentRead,
    FailureRequest,
)
from ..schemas.auth import Caller
from ..services.asset_service import AssetLifecycleService
from .documents import read_upload

router = APIRouter(prefix="/v1/assets", tags=["assets"])


@router.post("/", response_model=AssetRead, status_code=201)
async def create_asset(
    asset_data: AssetCreate,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Register a new asset in the caller's organization"""
    asset = await service.create_asset(asset_data, caller)
    return AssetRead.from_asset(asset, service.today())


@router.get("/", response_model=AssetListResponse)
async def list_assets(
    status: Optional[AssetStatus] = Query(None, description="Filter by current status"),
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """List assets visible to the caller (all of the org for admins, own assets for members)"""
    today = service.today()
    assets = await service.list_assets(caller, status=status)
    return AssetListResponse(
        assets=[AssetRead.from_asset(asset, today) for asset in assets],
        total=len(assets)
    )


@router.get("/summary", response_model=DashboardSummary)
async def get_summary(
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Status counts and assets needing attention"""
    return await service.get_dashboard_summary(caller)


@router.get("/users/{user_id}", response_model=List[AssetRead])
async def get_assets_by_user(
    user_id: str,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Assets assigned to a member"""
    today = service.today()
    return [AssetRead.from_asset(asset, today) for asset in await service.get_assets_by_user(user_id, caller)]


@router.get("/{asset_id}", response_model=AssetRead)
async def get_asset(
    asset_id: uuid.UUID,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    asset = await service.get_asset_by_id(asset_id, caller)
    return AssetRead.from_asset(asset, service.today())


@router.patch("/{asset_id}", response_model=AssetRead)
async def update_asset(
    asset_id: uuid.UUID,
    asset_update: AssetUpdate,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Update descriptive fields; lifecycle fields change only through transitions"""
    asset = await service.update_asset(asset_id, asset_update, caller)
    return AssetRead.from_asset(asset, service.today())


@router.delete("/{asset_id}", status_code=204)
async def delete_asset(
    asset_id: uuid.UUID,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    await service.delete_asset(asset_id, caller)


@router.post("/{asset_id}/fail", response_model=AssetRead)
async def mark_as_failed(
    asset_id: uuid.UUID,
    failure: FailureRequest,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Take a glove out of service after a failed test"""
    asset = await service.mark_as_failed(asset_id, failure.reason, caller)
    return AssetRead.from_asset(asset, service.today())


@router.post("/{asset_id}/testing", response_model=AssetRead)
async def mark_as_in_testing(
    asset_id: uuid.UUID,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Send a glove to the test lab"""
    asset = await service.mark_as_in_testing(asset_id, caller)
    return AssetRead.from_asset(asset, service.today())


@router.get("/{asset_id}/documents", response_model=List[DocumentRead])
async def list_documents(
    asset_id: uuid.UUID,
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Certification documents in upload order"""
    return await service.list_documents(asset_id, caller)


@router.post("/{asset_id}/documents", response_model=AssetRead, status_code=201)
@limiter.limit(UPLOAD_LIMIT)
async def upload_document(
    request: Request,
    asset_id: uuid.UUID,
    file: UploadFile = File(..., description="Certification document"),
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """Upload a certification document; restarts the certification cycle"""
    document = await read_upload(file)
    asset = await service.upload_document(asset_id, document, caller)
    return AssetRead.from_asset(asset, service.today())
