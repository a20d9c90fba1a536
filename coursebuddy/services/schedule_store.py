"""
Persistence for named schedules.

A saved schedule is the set of user_schedules rows sharing (user, name).
Saving replaces the previous rows for that name inside one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy import select, delete

from coursebuddy.models.course import CourseSection, ScheduledBlock
from coursebuddy.models.database import (
    SavedScheduleRow,
    get_engine,
    get_session_factory,
    init_db,
)
from coursebuddy.services.selection import Selection

logger = logging.getLogger(__name__)


class ScheduleNameError(ValueError):
    """Raised for a missing or overlong schedule name."""


@dataclass
class SavedScheduleSummary:
    """A saved schedule as listed in the load dialog."""
    name: str
    course_count: int
    created_at: Optional[datetime]


@dataclass
class LoadedSchedule:
    name: str
    blocks: tuple[ScheduledBlock, ...]


def normalize_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ScheduleNameError("Please enter a schedule name")
    if len(name) > 100:
        raise ScheduleNameError("Schedule name must be at most 100 characters")
    return name


def rebuild_selection(
    blocks: Iterable[ScheduledBlock],
    catalog: Iterable[CourseSection],
) -> Selection:
    """
    Reconstruct the selection map from loaded blocks.

    Each block is matched to the catalog by (course code, section); the first
    match per (course code, type) wins and unmatched blocks are ignored.
    """
    catalog = list(catalog)
    entries: dict = {}
    for block in blocks:
        match = next(
            (c for c in catalog if c.course_code == block.name and c.section == block.section),
            None,
        )
        if match is None:
            continue
        type_map = entries.setdefault(match.course_code, {})
        type_map.setdefault(match.course_type, match)
    return Selection(entries)


class ScheduleStore:
    """Reads and writes saved schedules."""

    def __init__(self, session_factory=None):
        if session_factory is None:
            engine = get_engine()
            init_db(engine)
            session_factory = get_session_factory(engine)
        self.session_factory = session_factory

    def save(self, user_id: int, name: str, blocks: Iterable[ScheduledBlock]) -> int:
        """
        Replace the rows of schedule ``name`` with ``blocks``.

        The delete and the inserts commit together; on failure the previous
        rows are kept. Returns the number of rows written.
        """
        name = normalize_name(name)
        blocks = list(blocks)

        with self.session_factory() as session:
            try:
                session.execute(
                    delete(SavedScheduleRow).where(
                        SavedScheduleRow.user_id == user_id,
                        SavedScheduleRow.schedule_name == name,
                    )
                )
                now = datetime.utcnow()
                session.add_all([
                    SavedScheduleRow(
                        user_id=user_id,
                        schedule_name=name,
                        course_name=block.name,
                        course_section=block.section,
                        day=block.day,
                        time=block.time,
                        status=block.status,
                        color=block.color,
                        created_at=now,
                        updated_at=now,
                    )
                    for block in blocks
                ])
                session.commit()
            except Exception:
                session.rollback()
                logger.error(f"Error saving schedule '{name}' for user {user_id}")
                raise

        logger.info(f"Saved schedule '{name}' for user {user_id} ({len(blocks)} blocks)")
        return len(blocks)

    def load(self, user_id: int, name: str) -> Optional[LoadedSchedule]:
        """Load one schedule by name; None if it has no rows."""
        name = normalize_name(name)
        with self.session_factory() as session:
            rows = session.execute(
                select(SavedScheduleRow)
                .where(
                    SavedScheduleRow.user_id == user_id,
                    SavedScheduleRow.schedule_name == name,
                )
                .order_by(SavedScheduleRow.id)
            ).scalars().all()

        if not rows:
            return None
        return LoadedSchedule(name=name, blocks=tuple(r.to_block() for r in rows))

    def load_latest(self, user_id: int) -> Optional[LoadedSchedule]:
        """Load the most recently created schedule of the user."""
        summaries = self.list_schedules(user_id)
        if not summaries:
            return None
        return self.load(user_id, summaries[0].name)

    def list_schedules(self, user_id: int) -> list[SavedScheduleSummary]:
        """Saved schedules grouped by name, newest first."""
        with self.session_factory() as session:
            rows = session.execute(
                select(SavedScheduleRow.schedule_name, SavedScheduleRow.created_at)
                .where(SavedScheduleRow.user_id == user_id)
                .order_by(SavedScheduleRow.created_at.desc(), SavedScheduleRow.id.desc())
            ).all()

        grouped: dict[str, SavedScheduleSummary] = {}
        for schedule_name, created_at in rows:
            summary = grouped.get(schedule_name)
            if summary is None:
                grouped[schedule_name] = SavedScheduleSummary(
                    name=schedule_name, course_count=1, created_at=created_at
                )
            else:
                summary.course_count += 1
        return list(grouped.values())

    def delete(self, user_id: int, name: str) -> int:
        """Delete a saved schedule; returns the number of rows removed."""
        name = normalize_name(name)
        with self.session_factory() as session:
            result = session.execute(
                delete(SavedScheduleRow).where(
                    SavedScheduleRow.user_id == user_id,
                    SavedScheduleRow.schedule_name == name,
                )
            )
            session.commit()
            return result.rowcount or 0


def create_store() -> ScheduleStore:
    """Create a ScheduleStore with default configuration."""
    return ScheduleStore()
