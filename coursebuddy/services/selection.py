"""
Selection manager.

Tracks which section of each type (lecture, lab, tutorial, discussion) the
student has chosen for every course code. Snapshots are immutable; every
operation returns a fresh one so callers can compare old and new state.
"""
from typing import Iterator, Optional

from coursebuddy.models.course import (
    CourseSection,
    CourseType,
    COURSE_TYPE_ORDER,
)


class DuplicateSectionError(ValueError):
    """Raised when a course already has a section of the requested type."""

    def __init__(self, course_code: str, course_type: CourseType, existing: CourseSection):
        self.course_code = course_code
        self.course_type = course_type
        self.existing = existing
        super().__init__(
            f"{course_code} already has a {course_type.value}: Section {existing.section}"
        )


class Selection:
    """Immutable mapping of course code -> section type -> chosen section."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[dict[str, dict[CourseType, CourseSection]]] = None):
        # Deep copy so the snapshot never shares type maps with its parent
        self._entries = {
            code: dict(type_map)
            for code, type_map in (entries or {}).items()
            if type_map
        }

    def __contains__(self, course_code: str) -> bool:
        return course_code in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Selection):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"<Selection(courses={list(self._entries)})>"

    def get(self, course_code: str, course_type: CourseType) -> Optional[CourseSection]:
        return self._entries.get(course_code, {}).get(course_type)

    def types_for(self, course_code: str) -> dict[CourseType, CourseSection]:
        return dict(self._entries.get(course_code, {}))

    def courses(self) -> list[CourseSection]:
        """All chosen sections in insertion order."""
        return [course for type_map in self._entries.values() for course in type_map.values()]

    def sorted_entries(self) -> list[tuple[str, CourseType, CourseSection]]:
        """Entries ordered by course code, then lecture/lab/tutorial/discussion."""
        entries = [
            (code, course_type, course)
            for code, type_map in self._entries.items()
            for course_type, course in type_map.items()
        ]
        return sorted(entries, key=lambda e: (e[0], COURSE_TYPE_ORDER.index(e[1])))

    def with_added(self, course: CourseSection) -> "Selection":
        course_type = course.course_type
        existing = self.get(course.course_code, course_type)
        if existing is not None:
            raise DuplicateSectionError(course.course_code, course_type, existing)
        entries = self._copy_entries()
        entries.setdefault(course.course_code, {})[course_type] = course
        return Selection(entries)

    def with_removed(self, course_code: str, course_type: CourseType) -> "Selection":
        entries = self._copy_entries()
        type_map = entries.get(course_code)
        if type_map is not None:
            type_map.pop(course_type, None)
            if not type_map:
                del entries[course_code]
        return Selection(entries)

    def with_replaced(
        self,
        course_code: str,
        course_type: CourseType,
        course: CourseSection,
    ) -> "Selection":
        """Swap in ``course`` for an already-selected course code."""
        if course_code not in self._entries:
            return self
        entries = self._copy_entries()
        entries[course_code][course_type] = course
        return Selection(entries)

    def to_dict(self) -> dict:
        return {
            code: {course_type.value: course.to_dict() for course_type, course in type_map.items()}
            for code, type_map in self._entries.items()
        }

    def _copy_entries(self) -> dict[str, dict[CourseType, CourseSection]]:
        return {code: dict(type_map) for code, type_map in self._entries.items()}


class SelectionManager:
    """Holds the current selection snapshot and applies copy-on-write updates."""

    def __init__(self, selection: Optional[Selection] = None):
        self.snapshot = selection or Selection()

    def add(self, course: CourseSection) -> Selection:
        """Add a section; raises DuplicateSectionError and keeps the snapshot on conflict."""
        self.snapshot = self.snapshot.with_added(course)
        return self.snapshot

    def remove(self, course_code: str, course_type: CourseType) -> Selection:
        self.snapshot = self.snapshot.with_removed(course_code, course_type)
        return self.snapshot

    def replace(self, course_code: str, course_type: CourseType, course: CourseSection) -> Selection:
        self.snapshot = self.snapshot.with_replaced(course_code, course_type, course)
        return self.snapshot

    def set(self, selection: Selection) -> Selection:
        self.snapshot = selection
        return self.snapshot

    def clear(self) -> Selection:
        self.snapshot = Selection()
        return self.snapshot
