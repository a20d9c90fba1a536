"""
Course catalog API endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import JSONResponse

from coursebuddy.config import settings
from coursebuddy.api.deps import get_catalog_service
from coursebuddy.api.rate_limit import refresh_limit
from coursebuddy.api.schemas import (
    CourseSectionResponse,
    FetchCoursesRequest,
    FetchCoursesResponse,
    SectionsByTypeResponse,
)
from coursebuddy.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Courses"])


@router.post("/functions/fetch-courses", response_model=FetchCoursesResponse)
@refresh_limit
async def fetch_courses(
    request: Request,
    body: Optional[FetchCoursesRequest] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Get all sections of a term.

    Serves rows refreshed within the last 24 hours unless ``refresh`` is set,
    in which case the requested subjects are pulled from the source first.
    """
    body = body or FetchCoursesRequest()
    try:
        courses, cached = service.fetch_courses(
            term=body.term,
            refresh=body.refresh,
            subjects=body.subjects,
        )
    except Exception as e:
        logger.error(f"Error in fetch-courses: {e}")
        return JSONResponse(status_code=500, content={"error": str(e) or "Unknown error"})

    return FetchCoursesResponse(
        courses=[CourseSectionResponse(**c.to_dict()) for c in courses],
        cached=cached,
    )


@router.get("/courses", response_model=list[CourseSectionResponse])
async def search_courses(
    q: Optional[str] = Query(None, max_length=100, description="Code, title, or section"),
    term: Optional[str] = Query(None, max_length=10),
    limit: int = Query(100, ge=1, le=500),
    service: CatalogService = Depends(get_catalog_service),
):
    """Search the catalog; without a query, list the whole term."""
    if q and q.strip():
        courses = service.search(q, term=term, limit=limit)
    else:
        courses = service.get_courses(term)[:limit]
    return [CourseSectionResponse(**c.to_dict()) for c in courses]


@router.get("/courses/{course_code}/sections", response_model=SectionsByTypeResponse)
async def get_course_sections(
    course_code: str,
    term: Optional[str] = Query(None, max_length=10),
    service: CatalogService = Depends(get_catalog_service),
):
    """All sections of one course grouped by type."""
    grouped = service.get_sections(course_code, term)
    return SectionsByTypeResponse(
        course_code=course_code.upper(),
        term=term or settings.default_term,
        sections={
            course_type.value: [CourseSectionResponse(**c.to_dict()) for c in sections]
            for course_type, sections in grouped.items()
        },
    )
