from pydantic import BaseModel, Field


class PresignedUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)


class PresignedUploadResponse(BaseModel):
    upload_url: str
    key: str
    public_url: str
