"""
HTTP endpoints for package import and export.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response

from deckport.models.presentation import Document
from deckport.services.pptx.exporter import export_package
from deckport.services.pptx.importer import import_package
from deckport.services.pptx.package_reader import is_package_filename

logger = logging.getLogger(__name__)

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

router = APIRouter(prefix="/api/pptx", tags=["pptx"])


@router.post("/import")
async def import_pptx(file: UploadFile = File(...)) -> Dict[str, Any]:
    """Convert an uploaded .pptx/.pptm into a Document"""
    if not file.filename or not is_package_filename(file.filename):
        raise HTTPException(status_code=400, detail="Only .pptx and .pptm files are supported")

    data = await file.read()
    logger.info(f"Importing {file.filename} ({len(data)} bytes)")
    result = await import_package(data, filename=file.filename)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)
    return result.to_wire()


@router.post("/export")
async def export_pptx(document: Document) -> Response:
    """Write a Document back into a .pptx download"""
    result = await export_package(document)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)

    filename = f"{document.name or 'presentation'}.pptx".replace('"', '')
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if result.warnings:
        headers["X-Export-Warnings"] = str(len(result.warnings))
    return Response(content=result.data, media_type=PPTX_MEDIA_TYPE, headers=headers)


def create_app() -> FastAPI:
    app = FastAPI(title="Deckport API")
    app.include_router(router)
    return app
