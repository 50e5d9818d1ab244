"""
CSV import/export of asset inventories
"""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response

from ..dependencies import get_asset_service, get_current_caller
from ..middleware.rate_limiter import IMPORT_LIMIT, limiter
from ..schemas.asset import ImportReport
from ..schemas.auth import Caller
from ..services.asset_service import AssetLifecycleService
from ..utils.errors import ValidationError
from .documents import read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/transfer", tags=["transfer"])

EXPORT_FILENAME = "safeguard-assets-export.csv"


@router.post("/import", response_model=ImportReport)
@limiter.limit(IMPORT_LIMIT)
async def import_assets(
    request: Request,
    file: UploadFile = File(..., description="CSV with a header row"),
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """
    Import assets from CSV.

    Valid rows are created together; rejected rows are reported with their
    line number and skipped.
    """
    upload = await read_upload(file)
    try:
        text = upload.content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"Rejected import {upload.file_name}: not UTF-8")
        raise ValidationError("CSV file must be UTF-8 encoded")

    return await service.import_assets(text, caller)


@router.get("/export")
async def export_assets(
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    csv_text = await service.export_assets(caller)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'}
    )
