"""
Certification document uploads shared by several assets
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from ..config import get_settings
from ..dependencies import get_asset_service, get_current_caller
from ..middleware.rate_limiter import UPLOAD_LIMIT, limiter
from ..schemas.asset import BulkUploadResponse
from ..schemas.auth import Caller
from ..services.asset_service import AssetLifecycleService, DocumentFile
from ..utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/documents", tags=["documents"])


async def read_upload(file: UploadFile) -> DocumentFile:
    """Read an uploaded file into memory, enforcing the size limit"""
    if not file.filename:
        raise ValidationError("Filename is required")

    max_bytes = get_settings().max_upload_bytes
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        logger.warning(f"Rejected upload {file.filename}: larger than {max_bytes} bytes")
        raise ValidationError(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit")
    if len(content) == 0:
        raise ValidationError("File cannot be empty")

    return DocumentFile(
        file_name=file.filename,
        content=content,
        content_type=file.content_type,
    )


@router.post("/bulk", response_model=BulkUploadResponse, status_code=201)
@limiter.limit(UPLOAD_LIMIT)
async def bulk_upload_document(
    request: Request,
    asset_ids: List[uuid.UUID] = Form(..., description="Assets the document certifies"),
    file: UploadFile = File(..., description="Certification document"),
    service: AssetLifecycleService = Depends(get_asset_service),
    caller: Caller = Depends(get_current_caller)
):
    """
    Apply one certification document to several assets.

    Assets the caller cannot recertify are reported individually; the rest
    are updated.
    """
    document = await read_upload(file)
    return await service.bulk_upload_document(asset_ids, document, caller)
