from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.submissions import get_pipeline
from database import get_db
from services.ingestion import IngestionPipeline

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("/{locator}")
async def get_document(
    locator: str,
    db: AsyncSession = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Link-based read access: the locator itself is the credential."""
    found = await pipeline.documents.open(db, locator)
    if not found:
        raise HTTPException(status_code=404, detail="Document not found")
    doc, path = found
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Document not found")
    return FileResponse(path, media_type=doc.mime_type, filename=doc.file_name, content_disposition_type="inline")
