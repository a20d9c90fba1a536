"""
Service dependencies for the API routers.

Each getter lazily builds a process-wide instance; tests replace them through
app.dependency_overrides.
"""
import logging
from typing import Optional

from coursebuddy.models.database import get_engine, get_session_factory, init_db
from coursebuddy.services.assistant import ScheduleAssistant, get_assistant
from coursebuddy.services.catalog_service import CatalogService
from coursebuddy.services.issue_reporter import IssueReporter, get_issue_reporter
from coursebuddy.services.planner import PlannerRegistry
from coursebuddy.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

_session_factory = None
_catalog: Optional[CatalogService] = None
_store: Optional[ScheduleStore] = None
_registry: Optional[PlannerRegistry] = None


def get_db_session_factory():
    """Session factory bound to the configured database (tables created on first use)."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        init_db(engine)
        _session_factory = get_session_factory(engine)
    return _session_factory


def get_catalog_service() -> CatalogService:
    global _catalog
    if _catalog is None:
        _catalog = CatalogService(session_factory=get_db_session_factory())
    return _catalog


def get_schedule_store() -> ScheduleStore:
    global _store
    if _store is None:
        _store = ScheduleStore(session_factory=get_db_session_factory())
    return _store


def get_planner_registry() -> PlannerRegistry:
    global _registry
    if _registry is None:
        _registry = PlannerRegistry()
    return _registry


def get_schedule_assistant() -> Optional[ScheduleAssistant]:
    """The assistant, or None when no Anthropic key is configured."""
    try:
        return get_assistant()
    except RuntimeError as e:
        logger.warning(f"Schedule assistant unavailable: {e}")
        return None


def get_reporter() -> IssueReporter:
    return get_issue_reporter()
