import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tripalbum.auth.dependencies import CurrentSession
from tripalbum.schemas.upload import PresignedUploadRequest, PresignedUploadResponse
from tripalbum.services.storage_service import (
    StorageError,
    StorageNotConfiguredError,
    StorageService,
    get_storage_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


def require_storage_service() -> StorageService:
    try:
        return get_storage_service()
    except StorageNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from None


@router.post("/upload", response_model=PresignedUploadResponse)
async def create_upload_url(
    session: CurrentSession,
    upload: PresignedUploadRequest,
    storage: Annotated[StorageService, Depends(require_storage_service)],
) -> PresignedUploadResponse:
    """Issue a presigned PUT URL; the browser uploads the photo straight to storage."""
    if not upload.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image uploads are supported",
        )

    try:
        presigned = storage.generate_presigned_upload(
            session.user_id, upload.filename, upload.content_type
        )
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        ) from None

    logger.info(f"Issued upload URL for {presigned.key}")
    return PresignedUploadResponse(
        upload_url=presigned.upload_url,
        key=presigned.key,
        public_url=presigned.public_url,
    )
