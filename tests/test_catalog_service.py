from datetime import datetime, timedelta

from sqlalchemy import update

from coursebuddy.models.course import CourseType
from coursebuddy.models.database import CatalogCourse
from coursebuddy.services.catalog_service import CatalogService


class FailingSource:
    def fetch_subject(self, subject, term):
        raise ConnectionError("registration site down")


class ListSource:
    def __init__(self, sections):
        self.sections = sections
        self.calls = []

    def fetch_subject(self, subject, term):
        self.calls.append((subject, term))
        return [s for s in self.sections if s.subject == subject]


def test_refresh_loads_sample_subject(catalog_service):
    courses = catalog_service.get_courses("2025W")
    assert len(courses) == 18
    assert catalog_service.get_subjects("2025W") == ["COMM"]


def test_recent_rows_are_served_from_cache(catalog_service):
    courses, cached = catalog_service.fetch_courses(term="2025W")
    assert cached is True
    assert len(courses) == 18


def test_stale_rows_are_not_cached(catalog_service, session_factory):
    with session_factory() as session:
        session.execute(update(CatalogCourse).values(updated_at=datetime.utcnow() - timedelta(days=2)))
        session.commit()

    courses, cached = catalog_service.fetch_courses(term="2025W")

    assert cached is False
    assert len(courses) == 18


def test_refresh_replaces_subject_rows(session_factory, make_section):
    source = ListSource([
        make_section("CPSC 110", "101", ["MON"], "09:00"),
        make_section("CPSC 110", "L1A", ["FRI"], "13:00"),
        make_section("MATH 100", "101", ["TUE"], "10:00"),
    ])
    service = CatalogService(session_factory=session_factory, source=source)
    service.fetch_courses(term="2025W", refresh=True, subjects=["cpsc", "math"])

    source.sections = [make_section("CPSC 110", "102", ["TUE"], "11:00")]
    service.fetch_courses(term="2025W", refresh=True, subjects=["CPSC"])

    assert [(c.course_code, c.section) for c in service.get_courses("2025W")] == [
        ("CPSC 110", "102"),
        ("MATH 100", "101"),
    ]
    assert ("CPSC", "2025W") in source.calls


def test_failing_subject_is_skipped(session_factory):
    service = CatalogService(session_factory=session_factory, source=FailingSource())
    courses, cached = service.fetch_courses(term="2025W", refresh=True, subjects=["CPSC"])
    assert courses == []
    assert cached is False


def test_search_matches_code_title_and_section(catalog_service):
    assert {c.course_code for c in catalog_service.search("comm 29")} == {"COMM 290", "COMM 291", "COMM 292", "COMM 298"}
    assert {c.course_code for c in catalog_service.search("finance")} == {"COMM 298"}
    assert {c.section for c in catalog_service.search("L1A")} == {"L1A"}
    assert catalog_service.search("   ") == []


def test_sections_grouped_by_type(catalog_service):
    grouped = catalog_service.get_sections("comm 101")
    assert [c.section for c in grouped[CourseType.LECTURE]] == ["101", "102"]
    assert [c.section for c in grouped[CourseType.LAB]] == ["L1A"]
    assert [c.section for c in grouped[CourseType.TUTORIAL]] == ["T1A"]


def test_store_sections_upserts(session_factory, make_section):
    service = CatalogService(session_factory=session_factory)
    service.store_sections([make_section("CPSC 110", "101", ["MON"], "09:00", status="Open")])
    service.store_sections([make_section("CPSC 110", "101", ["MON"], "09:00", status="Full")])

    courses = service.get_courses("2025W")
    assert len(courses) == 1
    assert courses[0].status == "Full"
