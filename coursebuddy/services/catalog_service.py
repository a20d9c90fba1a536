"""
Service layer for the course catalog.

Serves the sections of a term from the database, with a 24 hour cache, and
refreshes subjects from a CourseSource on request.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Protocol, Iterable
from sqlalchemy import select, delete, or_

from coursebuddy.config import settings
from coursebuddy.models.course import CourseSection, CourseType, group_by_type
from coursebuddy.models.database import (
    CatalogCourse,
    get_engine,
    get_session_factory,
    init_db,
)

logger = logging.getLogger(__name__)


class CourseSource(Protocol):
    """Anything that can list the sections of one subject for a term."""

    def fetch_subject(self, subject: str, term: str) -> list[CourseSection]:
        ...


class SampleCourseSource:
    """
    Built-in section list for COMM.

    Used when no live registration source is configured; other subjects
    yield nothing.
    """

    CAMPUS = "Vancouver"

    # course, section, title, days, start, end, status, total, available, instructor, location
    COMM_SECTIONS = [
        ("COMM 101", "101", "COMM 101 - Introduction to Business", ["MON", "WED"], "09:00", "10:00", "Open", 200, 150, "Prof. A. Smith", "BUCH A101"),
        ("COMM 101", "102", "COMM 101 - Introduction to Business", ["TUE", "THU"], "11:00", "12:00", "Full", 180, 0, "Prof. B. Johnson", "HEBB 100"),
        ("COMM 101", "L1A", "COMM 101 - Lab", ["FRI"], "13:00", "14:00", "Open", 30, 12, "TA Team", "HA 254"),
        ("COMM 101", "T1A", "COMM 101 - Tutorial", ["FRI"], "14:00", "15:00", "Restricted", 30, 8, "TA Team", "LSK 121"),
        ("COMM 105", "201", "COMM 105 - Managerial Accounting", ["MON", "WED"], "12:00", "13:00", "Open", 160, 90, "Prof. C. Lee", "MATH 100"),
        ("COMM 196", "101", "COMM 196 - Introduction to Business Communications", ["TUE", "THU"], "10:00", "11:00", "Open", 120, 85, "Prof. M. Roberts", "BUCH B210"),
        ("COMM 196", "102", "COMM 196 - Introduction to Business Communications", ["MON", "WED"], "13:00", "14:00", "Open", 120, 72, "Prof. M. Roberts", "HEBB 201"),
        ("COMM 105", "202", "COMM 105 - Managerial Accounting", ["TUE", "THU"], "15:00", "16:00", "Restricted", 160, 40, "Prof. C. Lee", "ICCS 135"),
        ("COMM 201", "101", "COMM 201 - Marketing Management", ["MON", "WED", "FRI"], "10:00", "11:00", "Full", 220, 0, "Prof. D. Patel", "OSBO 2200"),
        ("COMM 201", "L2A", "COMM 201 - Lab", ["THU"], "16:00", "17:00", "Open", 28, 20, "TA Team", "ESB 1012"),
        ("COMM 290", "101", "COMM 290 - Introduction to Quantitative Decision Making", ["TUE", "THU"], "09:00", "10:30", "Open", 250, 160, "Prof. E. Chen", "HENN 200"),
        ("COMM 290", "103", "COMM 290 - Introduction to Quantitative Decision Making", ["TUE", "THU"], "12:30", "14:00", "Restricted", 250, 60, "Prof. E. Chen", "SRC 100"),
        ("COMM 291", "101", "COMM 291 - Applications of Statistics in Business", ["MON", "WED"], "14:00", "15:30", "Open", 220, 112, "Prof. F. Garcia", "ANSO 201"),
        ("COMM 292", "101", "COMM 292 - Management and Organizational Behaviour", ["MON", "WED"], "16:00", "17:30", "Open", 210, 70, "Prof. G. Nguyen", "IBLC 182"),
        ("COMM 298", "101", "COMM 298 - Introduction to Finance", ["TUE", "THU"], "10:00", "11:30", "Full", 200, 0, "Prof. H. Wilson", "CHBE 101"),
        ("COMM 399", "201", "COMM 399 - Logistics and Operations", ["FRI"], "09:00", "12:00", "Open", 100, 55, "Prof. I. Kim", "WOOD 4"),
        ("COMM 457", "001", "COMM 457 - Business Strategy", ["TUE"], "18:00", "21:00", "Restricted", 80, 10, "Prof. J. Davis", "BUCH D207"),
        ("COMM 486", "101", "COMM 486 - Applied Business Project", ["THU"], "13:00", "16:00", "Open", 60, 22, "Prof. K. Moore", "HA 499"),
    ]

    def fetch_subject(self, subject: str, term: str) -> list[CourseSection]:
        if subject.upper() != "COMM":
            return []
        return [
            CourseSection(
                course_code=code,
                section=section,
                term=term,
                title=title,
                campus=self.CAMPUS,
                status=status,
                seats_total=total,
                seats_available=available,
                days=tuple(days),
                time_start=start,
                time_end=end,
                instructor=instructor,
                location=location,
            )
            for code, section, title, days, start, end, status, total, available, instructor, location
            in self.COMM_SECTIONS
        ]


class CatalogService:
    """Service for reading and refreshing catalog sections in the database."""

    def __init__(self, session_factory=None, source: Optional[CourseSource] = None):
        """Initialize CatalogService with PostgreSQL."""
        if session_factory is None:
            engine = get_engine()
            init_db(engine)
            session_factory = get_session_factory(engine)
        self.session_factory = session_factory
        self.source = source or SampleCourseSource()

    def fetch_courses(
        self,
        term: Optional[str] = None,
        refresh: bool = False,
        subjects: Optional[list[str]] = None,
    ) -> tuple[list[CourseSection], bool]:
        """
        Get all sections for a term.

        Args:
            term: Term code (defaults to settings.default_term)
            refresh: Re-pull the given subjects from the source first
            subjects: Subjects to refresh (defaults to settings.catalog_default_subjects)

        Returns:
            Tuple of (sections, cached) where cached is True when the result
            came from rows updated within the cache window
        """
        term = term or settings.default_term
        subjects = [s.upper() for s in (subjects or settings.catalog_default_subjects)]
        logger.info(f"Fetching courses for {term}, refresh: {refresh}, subjects: {','.join(subjects)}")

        if not refresh:
            cached = self._get_cached(term)
            if cached:
                logger.info(f"Returning {len(cached)} cached courses")
                return cached, True
        else:
            for subject in subjects:
                self.refresh_subject(term, subject)

        courses = self.get_courses(term)
        logger.info(f"Returning {len(courses)} courses from database")
        return courses, False

    def _get_cached(self, term: str) -> list[CourseSection]:
        cutoff = datetime.utcnow() - timedelta(hours=settings.catalog_cache_hours)
        with self.session_factory() as session:
            rows = session.execute(
                select(CatalogCourse)
                .where(CatalogCourse.term == term, CatalogCourse.updated_at >= cutoff)
                .order_by(CatalogCourse.course_code, CatalogCourse.id)
            ).scalars().all()
            return [r.to_section() for r in rows]

    def refresh_subject(self, term: str, subject: str) -> int:
        """
        Replace one subject's sections for a term with a fresh pull.

        Failures are logged and the subject is skipped. Returns the number
        of sections stored.
        """
        try:
            sections = self.source.fetch_subject(subject, term)
        except Exception as e:
            logger.error(f"Failed to refresh subject {subject}: {e}")
            return 0
        logger.info(f"Fetched {len(sections)} sections for {subject}")

        with self.session_factory() as session:
            try:
                session.execute(
                    delete(CatalogCourse).where(
                        CatalogCourse.term == term,
                        CatalogCourse.course_code.like(f"{subject} %"),
                    )
                )
                batch_size = settings.catalog_upsert_batch_size
                for i in range(0, len(sections), batch_size):
                    self._upsert_batch(session, sections[i:i + batch_size])
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(f"Error storing {subject} sections for {term}: {e}")
                return 0

        return len(sections)

    def _upsert_batch(self, session, batch: list[CourseSection]) -> None:
        """Insert or update sections keyed by (course_code, section, term)."""
        by_key = {s.key: s for s in batch}
        existing = {
            (row.course_code, row.section, row.term): row
            for row in session.execute(
                select(CatalogCourse).where(
                    or_(*[
                        (CatalogCourse.course_code == code)
                        & (CatalogCourse.section == section)
                        & (CatalogCourse.term == term)
                        for code, section, term in by_key
                    ])
                )
            ).scalars()
        } if by_key else {}

        now = datetime.utcnow()
        for key, section in by_key.items():
            row = existing.get(key)
            if row is None:
                row = CatalogCourse(course_code=section.course_code, section=section.section, term=section.term)
                session.add(row)
            row.title = section.title
            row.campus = section.campus
            row.status = section.status
            row.seats_total = section.seats_total
            row.seats_available = section.seats_available
            row.days = list(section.days)
            row.time_start = section.time_start
            row.time_end = section.time_end
            row.instructor = section.instructor
            row.location = section.location
            row.updated_at = now
        session.flush()

    def store_sections(self, sections: Iterable[CourseSection]) -> int:
        """Upsert arbitrary sections (imports, fixtures)."""
        sections = list(sections)
        with self.session_factory() as session:
            batch_size = settings.catalog_upsert_batch_size
            for i in range(0, len(sections), batch_size):
                self._upsert_batch(session, sections[i:i + batch_size])
            session.commit()
        return len(sections)

    def get_courses(self, term: Optional[str] = None) -> list[CourseSection]:
        """All sections for a term ordered by course code."""
        term = term or settings.default_term
        with self.session_factory() as session:
            rows = session.execute(
                select(CatalogCourse)
                .where(CatalogCourse.term == term)
                .order_by(CatalogCourse.course_code, CatalogCourse.id)
            ).scalars().all()
            return [r.to_section() for r in rows]

    def search(self, query: str, term: Optional[str] = None, limit: int = 100) -> list[CourseSection]:
        """Match the query against course code, title, or section (case-insensitive)."""
        query = query.strip()
        if not query:
            return []
        search_term = f"%{query}%"
        term = term or settings.default_term
        with self.session_factory() as session:
            rows = session.execute(
                select(CatalogCourse)
                .where(
                    CatalogCourse.term == term,
                    or_(
                        CatalogCourse.course_code.ilike(search_term),
                        CatalogCourse.title.ilike(search_term),
                        CatalogCourse.section.ilike(search_term),
                    ),
                )
                .order_by(CatalogCourse.course_code, CatalogCourse.id)
                .limit(limit)
            ).scalars().all()
            return [r.to_section() for r in rows]

    def get_sections(
        self,
        course_code: str,
        term: Optional[str] = None,
    ) -> dict[CourseType, list[CourseSection]]:
        """Sections of one course grouped by type."""
        return group_by_type(self.get_courses(term), course_code.upper())

    def get_subjects(self, term: Optional[str] = None) -> list[str]:
        """Unique subject codes present for a term."""
        return sorted({c.subject for c in self.get_courses(term)})


# Convenience function
def create_service() -> CatalogService:
    """Create a CatalogService instance with default configuration."""
    return CatalogService()
