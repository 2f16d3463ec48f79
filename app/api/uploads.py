"""
app/api/uploads.py

Identity document upload. The returned URL is what the registration form
stores in id_upload.
"""

from fastapi import APIRouter, File, UploadFile
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.services.upload_service import store_id_document
from utils.constants import UPLOAD_TOO_LARGE

router = APIRouter(prefix="/uploads", tags=["Uploads"])


class UploadOut(BaseModel):
    success: bool = True
    url: str
    content_type: str
    size: int


@router.post("/id-document", response_model=UploadOut, status_code=201)
async def upload_id_document(file: UploadFile = File(...)):
    # At most one byte past the limit is read
    data = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise ValidationError(UPLOAD_TOO_LARGE.format(max_mb=settings.UPLOAD_MAX_BYTES // (1024 * 1024)))

    url = store_id_document(data, file.content_type)
    return UploadOut(url=url, content_type=file.content_type, size=len(data))
