from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from fastapi.responses import Response
from sqlalchemy.orm import Session
import logging

from freight_recon.database import get_db
from freight_recon.schemas.document import FileResponse
from freight_recon.services.document_store import DocumentStore
from freight_recon.services.storage_service import (
    FILE_TYPE_FOLDERS,
    StorageError,
    StorageService,
    get_storage_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=FileResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    file_type: str = Form("other"),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a scanned PO, BOL, POD or invoice and record its metadata"""
    if file_type not in FILE_TYPE_FOLDERS:
        raise HTTPException(status_code=400, detail=f"Unknown file type: {file_type}")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        record = storage.save_document_file(
            DocumentStore(db), content, file.filename or "upload", file.content_type, file_type
        )
    except StorageError as e:
        logger.error(f"Error storing upload {file.filename}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
    logger.info(f"Stored {file_type} file {record.id} at {record.storage_path}")
    return record


@router.get("/{file_id}", response_model=FileResponse)
def get_file_metadata(file_id: str, db: Session = Depends(get_db)):
    record = DocumentStore(db).get("file", file_id)
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    return record


@router.get("/{file_id}/content")
def download_file(
    file_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    record = DocumentStore(db).get("file", file_id)
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    try:
        content = storage.download_file(record.storage_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File content not found")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(
        content=content,
        media_type=record.mime_type,
        headers={"Content-Disposition": f'inline; filename="{record.filename}"'},
    )
