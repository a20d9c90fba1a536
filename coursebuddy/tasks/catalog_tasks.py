"""
Celery tasks for course catalog refreshes.
"""
import logging
from typing import Optional

from coursebuddy.celery_app import celery_app
from coursebuddy.config import settings

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    soft_time_limit=900,
    time_limit=960,
)
def refresh_catalog_task(
    self,
    term: Optional[str] = None,
    subjects: Optional[list[str]] = None,
) -> dict:
    """
    Re-pull subjects of a term into the catalog.

    A failing subject is logged and skipped; the others are still stored.

    Args:
        term: Term code (defaults to settings.default_term)
        subjects: Subject codes (defaults to settings.catalog_default_subjects)

    Returns:
        dict with the number of sections stored per subject
    """
    from coursebuddy.services.catalog_service import create_service

    term = term or settings.default_term
    subjects = [s.upper() for s in (subjects or settings.catalog_default_subjects)]
    logger.info(f"Starting catalog refresh task {self.request.id} for {term}: {','.join(subjects)}")

    service = create_service()
    stored = {}
    for subject in subjects:
        self.update_state(state="PROGRESS", meta={"term": term, "subject": subject})
        stored[subject] = service.refresh_subject(term, subject)

    total = sum(stored.values())
    logger.info(f"Catalog refresh for {term} stored {total} sections")
    return {
        "success": True,
        "term": term,
        "sections": stored,
        "total": total,
    }
