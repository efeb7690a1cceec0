"""
Taxonomy API routes

Lookups return bare arrays. Spreadsheet outages surface through the
application-wide upstream error handler.
"""
from typing import List
from fastapi import APIRouter, HTTPException, status, Depends, Query
import logging

from creativehub.core.errors import ValidationError
from creativehub.core.security import get_current_user, require_admin
from creativehub.models.taxonomy import (
    ArtStyle,
    Chapter,
    GeneratedTitleResponse,
    Grade,
    SelectionIds,
    Subject,
    Subtopic,
    Topic,
)
from creativehub.models.user import SessionUser
from creativehub.services.taxonomy import (
    TaxonomyService,
    folder_segments_from,
    generate_title,
    get_taxonomy_service,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/grades", response_model=List[Grade])
async def list_grades(taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return await taxonomy.get_grades()


@router.get("/subjects", response_model=List[Subject])
async def list_subjects(
    grade_id: str = Query(""),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return await taxonomy.get_subjects(grade_id)


@router.get("/chapters", response_model=List[Chapter])
async def list_chapters(
    subject_id: str = Query(""),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return await taxonomy.get_chapters(subject_id)


@router.get("/topics", response_model=List[Topic])
async def list_topics(
    chapter_id: str = Query(""),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return await taxonomy.get_topics(chapter_id)


@router.get("/subtopics", response_model=List[Subtopic])
async def list_subtopics(
    topic_id: str = Query(""),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return await taxonomy.get_subtopics(topic_id)


@router.get("/artstyles", response_model=List[ArtStyle])
async def list_art_styles(taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return await taxonomy.get_art_styles()


@router.post("/generate-title", response_model=GeneratedTitleResponse)
async def preview_title(
    ids: SelectionIds,
    current_user: SessionUser = Depends(get_current_user),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    """Preview the default title and Drive folder path for a selection"""
    try:
        selection = await taxonomy.resolve_selection(ids)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return GeneratedTitleResponse(
        title=generate_title(selection),
        folder_segments=folder_segments_from(selection),
    )


@router.post("/refresh")
async def refresh_taxonomy(
    current_user: SessionUser = Depends(require_admin),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    """Reload after sheet edits (admin only)"""
    await taxonomy.refresh()
    logger.info(f"Taxonomy refreshed by {current_user.email}")
    return {"ok": True}
