"""
SQLAlchemy database models for CourseBuddy Scheduler.

Tables:
- courses: catalog sections per term (cached from the registration site)
- users: local mirror of hosted-auth accounts
- user_schedules: saved schedule blocks, grouped by (user, schedule name)
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    create_engine,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    relationship,
    sessionmaker,
    Mapped,
    mapped_column,
)

from coursebuddy.config import settings
from coursebuddy.models.course import CourseSection, ScheduledBlock


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class CatalogCourse(Base):
    """
    One section of a course for a term (e.g., CPSC 110 section 101, 2025W).

    Identity is (course_code, section, term); refreshes upsert on that key.
    """
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True)

    course_code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    section: Mapped[str] = mapped_column(String(10), nullable=False)
    term: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(200))
    campus: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[Optional[str]] = mapped_column(String(20))  # Open, Full, Restricted, Unknown

    seats_total: Mapped[Optional[int]] = mapped_column(Integer)
    seats_available: Mapped[Optional[int]] = mapped_column(Integer)

    # Meeting info
    days: Mapped[Optional[list]] = mapped_column(JSON)  # e.g., ["MON", "WED"]
    time_start: Mapped[Optional[str]] = mapped_column(String(5))  # "09:00"
    time_end: Mapped[Optional[str]] = mapped_column(String(5))
    instructor: Mapped[Optional[str]] = mapped_column(String(100))
    location: Mapped[Optional[str]] = mapped_column(String(100))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True
    )

    __table_args__ = (
        UniqueConstraint("course_code", "section", "term", name="uq_courses_code_section_term"),
        Index("ix_courses_term_code", "term", "course_code"),
    )

    def to_section(self) -> CourseSection:
        return CourseSection(
            course_code=self.course_code,
            section=self.section,
            term=self.term,
            title=self.title,
            campus=self.campus,
            status=self.status,
            seats_total=self.seats_total,
            seats_available=self.seats_available,
            days=tuple(self.days or ()),
            time_start=self.time_start,
            time_end=self.time_end,
            instructor=self.instructor,
            location=self.location,
        )

    def __repr__(self) -> str:
        return f"<CatalogCourse(code='{self.course_code}', section='{self.section}', term='{self.term}')>"


class User(Base):
    """
    User account synced with the hosted auth provider.

    Created the first time a valid token for the account is seen.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    auth_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    username: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))

    has_seen_tutorial: Mapped[bool] = mapped_column(Boolean, default=False)

    schedules: Mapped[list["SavedScheduleRow"]] = relationship(
        "SavedScheduleRow", back_populates="user", cascade="all, delete-orphan"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class SavedScheduleRow(Base):
    """
    One scheduled block of a named schedule.

    Rows sharing (user_id, schedule_name) form a saved schedule; there is no
    unique key on the pair.
    """
    __tablename__ = "user_schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    schedule_name: Mapped[str] = mapped_column(String(100), nullable=False)

    course_name: Mapped[str] = mapped_column(String(20), nullable=False)
    course_section: Mapped[Optional[str]] = mapped_column(String(10))
    day: Mapped[str] = mapped_column(String(3), nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20))
    color: Mapped[Optional[str]] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped["User"] = relationship("User", back_populates="schedules")

    __table_args__ = (
        Index("ix_user_schedules_user_name", "user_id", "schedule_name"),
    )

    def to_block(self) -> ScheduledBlock:
        return ScheduledBlock(
            name=self.course_name,
            section=self.course_section or "",
            day=self.day,
            time=self.time,
            status=self.status,
            color=self.color,
        )

    def __repr__(self) -> str:
        return f"<SavedScheduleRow(user_id={self.user_id}, name='{self.schedule_name}', course='{self.course_name}')>"


# =============================================================================
# Database Engine and Session Management
# =============================================================================

_engine = None
_session_factory = None


def get_engine(url: Optional[str] = None):
    """Get or create synchronous database engine."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            url or settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.debug,
        )
    return _engine


def get_session_factory(engine=None):
    """Get or create synchronous session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=engine or get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


def init_db(engine=None):
    """Initialize database, creating all tables."""
    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(engine)
