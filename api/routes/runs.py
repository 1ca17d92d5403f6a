"""
Generation run endpoints

Lifecycle of a run: submit options (outline), generate chapters in the
background, resume, restart, export and delete.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from api.schemas.ebook import GenerationOptionsRequest, RunResponse
from api.services.ebook_service import EbookService, get_ebook_service
from core.ebook_generator.config import ExportFormat
from core.ebook_generator.models import GenerationRun

logger = logging.getLogger("API.Runs")

router = APIRouter(
    prefix="/api/runs",
    tags=["Runs"],
)


def get_service() -> EbookService:
    """Dependency injection for the service."""
    return get_ebook_service()


def _to_response(service: EbookService, run: GenerationRun, include_content: bool = False) -> RunResponse:
    return RunResponse.from_run(
        run,
        include_content=include_content,
        is_running=service.is_running(run.id),
        has_cover=service.has_cover(run.id),
        progress=service.get_progress(run.id),
    )


@router.post("", response_model=RunResponse, status_code=201)
async def create_run(
    request: GenerationOptionsRequest,
    service: EbookService = Depends(get_service),
):
    """
    Submit wizard options and generate the outline.

    Chapters are generated separately via POST /api/runs/{id}/generate.
    """
    run = await service.create_run(request.to_options())
    return _to_response(service, run)


@router.get("", response_model=list[RunResponse])
async def list_runs(service: EbookService = Depends(get_service)):
    return [_to_response(service, run) for run in service.list_runs()]


@router.get("/{run_id}", response_model=RunResponse)
async def get_run(
    run_id: str,
    include_content: bool = Query(False),
    service: EbookService = Depends(get_service),
):
    """Get run state, outline and progress."""
    run = service.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return _to_response(service, run, include_content=include_content)


@router.post("/{run_id}/generate", response_model=RunResponse, status_code=202)
async def generate_chapters(run_id: str, service: EbookService = Depends(get_service)):
    """Start chapter-by-chapter generation in the background."""
    run = await service.start_generation(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return _to_response(service, run)


@router.post("/{run_id}/resume", response_model=RunResponse, status_code=202)
async def resume_run(run_id: str, service: EbookService = Depends(get_service)):
    """Continue from the first missing chapter."""
    run = await service.resume_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return _to_response(service, run)


@router.post("/{run_id}/restart", response_model=RunResponse)
async def restart_run(run_id: str, service: EbookService = Depends(get_service)):
    """Discard all content and regenerate the outline."""
    run = await service.restart_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return _to_response(service, run)


@router.delete("/{run_id}")
async def delete_run(run_id: str, service: EbookService = Depends(get_service)):
    """Delete a run."""
    success = await service.delete_run(run_id)
    if not success:
        raise HTTPException(status_code=404, detail="Run not found")
    return {"message": "Run deleted", "id": run_id}


@router.get("/{run_id}/export/{fmt}")
async def export_run(
    run_id: str,
    fmt: ExportFormat,
    service: EbookService = Depends(get_service),
):
    """Download a completed book as DOCX, EPUB or printable HTML."""
    result = await service.export_run(run_id, fmt)
    if result is None:
        raise HTTPException(status_code=404, detail="Run not found")

    data, filename, media_type = result
    disposition = "inline" if fmt == ExportFormat.HTML else "attachment"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )
