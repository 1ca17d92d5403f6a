"""
Direct AI endpoints

Single provider-chain calls without a run: outline, one chapter, cover
generation and cover edit.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.schemas.ebook import (
    BookOutlineSchema,
    ChapterRequest,
    ChapterResponse,
    CoverEditRequest,
    CoverRequest,
    CoverResponse,
    GenerationOptionsRequest,
)
from api.services.ebook_service import EbookService, get_ebook_service
from core.ebook_generator.models import ChapterContent, CoverImage

logger = logging.getLogger("API.AI")

router = APIRouter(
    prefix="/api/ai",
    tags=["AI"],
)


def get_service() -> EbookService:
    """Dependency injection for the service."""
    return get_ebook_service()


@router.post("/outline", response_model=BookOutlineSchema)
async def generate_outline(
    request: GenerationOptionsRequest,
    service: EbookService = Depends(get_service),
):
    """Generate a book outline through the text provider chain."""
    outline = await service.generate_outline(request.to_options())
    return BookOutlineSchema.from_model(outline)


@router.post("/chapter", response_model=ChapterResponse)
async def generate_chapter(
    request: ChapterRequest,
    service: EbookService = Depends(get_service),
):
    """Generate the content of one chapter."""
    if request.index >= request.total:
        raise HTTPException(status_code=422, detail="index must be less than total")

    content = await service.generate_chapter(
        request.options.to_options(),
        {"title": request.book_title, "subtitle": request.book_subtitle},
        request.chapter.to_model(),
        request.index,
        request.total,
    )
    chapter = ChapterContent(title=request.chapter.title, content=content)
    return ChapterResponse(
        index=request.index,
        title=chapter.title,
        content=chapter.content,
        word_count=chapter.word_count,
    )


@router.post("/cover", response_model=CoverResponse)
async def generate_cover(
    request: CoverRequest,
    service: EbookService = Depends(get_service),
):
    """Generate a cover image. With run_id, the cover is used in that run's exports."""
    try:
        cover = await service.generate_cover(request.prompt, request.size, request.run_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Run not found")
    return CoverResponse(image=cover.to_data_url(), mime_type=cover.mime_type)


@router.post("/cover/edit", response_model=CoverResponse)
async def edit_cover(
    request: CoverEditRequest,
    service: EbookService = Depends(get_service),
):
    """Refine an existing cover image with a text prompt."""
    try:
        image = CoverImage.from_data_url(request.image)
    except ValueError:
        raise HTTPException(status_code=422, detail="image is not valid base64 or a data URL")

    try:
        cover = await service.edit_cover(image, request.prompt, request.run_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Run not found")
    return CoverResponse(image=cover.to_data_url(), mime_type=cover.mime_type)
