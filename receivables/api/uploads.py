# receivables/api/uploads.py

from fastapi import HTTPException, UploadFile

from receivables.core.config import settings
from receivables.errors import ParseFailure, UnsupportedFormat


async def read_upload(file: UploadFile) -> bytes:
    """Validate an uploaded file and return its bytes."""
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    if not any(file.filename.lower().endswith(ext) for ext in settings.allowed_extensions):
        raise HTTPException(status_code=400, detail=str(UnsupportedFormat(file.filename)))

    content = await file.read()
    if len(content) > settings.max_file_size:
        raise HTTPException(
            status_code=413,
            detail=f"File {file.filename} exceeds maximum size of {settings.max_file_size / (1024*1024):.0f}MB",
        )
    return content


def upload_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (UnsupportedFormat, ParseFailure)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail="Error processing file")
