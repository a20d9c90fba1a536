"""Data models for course sections and weekly schedules."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Iterable, Any


WEEKDAYS = ["MON", "TUE", "WED", "THU", "FRI"]
TIME_SLOTS = [
    "08:00", "09:00", "10:00", "11:00", "12:00", "13:00",
    "14:00", "15:00", "16:00", "17:00", "18:00", "19:00", "20:00", "21:00",
]


class CourseType(str, Enum):
    """Kind of meeting a section represents."""
    LECTURE = "Lecture"
    LAB = "Lab"
    TUTORIAL = "Tutorial"
    DISCUSSION = "Discussion"


# Sidebar display order
COURSE_TYPE_ORDER = [
    CourseType.LECTURE,
    CourseType.LAB,
    CourseType.TUTORIAL,
    CourseType.DISCUSSION,
]


def get_course_type(section: str) -> CourseType:
    """Classify a section identifier by its first character (e.g. "L1A" -> Lab)."""
    section_upper = (section or "").upper()
    if section_upper.startswith("L"):
        return CourseType.LAB
    if section_upper.startswith("T"):
        return CourseType.TUTORIAL
    if section_upper.startswith("D"):
        return CourseType.DISCUSSION
    return CourseType.LECTURE


@dataclass(frozen=True)
class CourseSection:
    """One section of a course for a term, as listed in the catalog."""
    course_code: str  # e.g., "CPSC 110"
    section: str  # e.g., "101", "L1A", "T2B"
    term: str  # e.g., "2025W"
    title: Optional[str] = None
    campus: Optional[str] = None
    status: Optional[str] = None  # Open, Full, Restricted, Unknown
    seats_total: Optional[int] = None
    seats_available: Optional[int] = None
    days: tuple[str, ...] = ()  # e.g., ("MON", "WED")
    time_start: Optional[str] = None  # "HH:MM"
    time_end: Optional[str] = None
    instructor: Optional[str] = None
    location: Optional[str] = None

    @property
    def course_type(self) -> CourseType:
        return get_course_type(self.section)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.course_code, self.section, self.term)

    @property
    def subject(self) -> str:
        return self.course_code.split(" ", 1)[0]

    @property
    def schedule_display(self) -> str:
        """Human-readable schedule string."""
        if not self.days:
            return "TBA"
        time_str = f"{self.time_start}-{self.time_end}" if self.time_start and self.time_end else ""
        return f"{' '.join(self.days)} {time_str}".strip()

    def meets_at(self, day: str, time: str) -> bool:
        """True if this section meets on ``day`` starting exactly at ``time``."""
        return day.upper() in self.days and self.time_start == time

    def to_dict(self) -> dict:
        return {
            "course_code": self.course_code,
            "section": self.section,
            "title": self.title,
            "term": self.term,
            "campus": self.campus,
            "status": self.status,
            "seats_total": self.seats_total,
            "seats_available": self.seats_available,
            "days": list(self.days),
            "time_start": self.time_start,
            "time_end": self.time_end,
            "instructor": self.instructor,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourseSection":
        return cls(
            course_code=data["course_code"],
            section=data["section"],
            term=data.get("term") or "",
            title=data.get("title"),
            campus=data.get("campus"),
            status=data.get("status"),
            seats_total=data.get("seats_total"),
            seats_available=data.get("seats_available"),
            days=tuple(d.upper() for d in (data.get("days") or [])),
            time_start=data.get("time_start"),
            time_end=data.get("time_end"),
            instructor=data.get("instructor"),
            location=data.get("location"),
        )


def group_by_type(
    courses: Iterable[CourseSection],
    course_code: str,
) -> dict[CourseType, list[CourseSection]]:
    """Bucket the catalog sections of one course by section type."""
    grouped: dict[CourseType, list[CourseSection]] = {t: [] for t in COURSE_TYPE_ORDER}
    for course in courses:
        if course.course_code == course_code:
            grouped[course.course_type].append(course)
    return grouped


@dataclass(frozen=True)
class ScheduledBlock:
    """A section placed on the weekly grid for a single meeting day."""
    name: str  # course code
    day: str
    time: str
    section: str = ""
    status: Optional[str] = None
    color: Optional[str] = None

    @property
    def block_id(self) -> str:
        """Stable identifier used by the grid for drag handles."""
        return f"{self.name}-{self.section}-{self.day}-{self.time}"

    @property
    def course_type(self) -> CourseType:
        return get_course_type(self.section)

    def as_tuple(self) -> tuple:
        return (self.name, self.section, self.day, self.time, self.status, self.color)

    def to_dict(self) -> dict:
        return {
            "id": self.block_id,
            "name": self.name,
            "section": self.section,
            "day": self.day,
            "time": self.time,
            "status": self.status,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduledBlock":
        return cls(
            name=data["name"],
            day=data["day"],
            time=data["time"],
            section=data.get("section") or "",
            status=data.get("status"),
            color=data.get("color"),
        )


@dataclass(frozen=True)
class ScheduleChange:
    """A section swap proposed by the assistant."""
    course_code: str
    old_section: str
    new_section: str
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "courseCode": self.course_code,
            "oldSection": self.old_section,
            "newSection": self.new_section,
            "reason": self.reason,
        }


@dataclass
class ChatMessage:
    """A message in the assistant conversation."""
    role: str  # "user" or "assistant"
    content: str
    changes: list[ScheduleChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"role": self.role, "content": self.content}
        if self.changes:
            data["changes"] = [c.to_dict() for c in self.changes]
        return data
