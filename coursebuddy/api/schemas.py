"""
Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# Catalog
# =============================================================================

class CourseSectionResponse(BaseModel):
    """API response for one catalog section."""
    course_code: str
    section: str
    term: Optional[str] = None
    title: Optional[str] = None
    campus: Optional[str] = None
    status: Optional[str] = None  # Open, Full, Restricted, Unknown
    seats_total: Optional[int] = None
    seats_available: Optional[int] = None
    days: list[str] = []
    time_start: Optional[str] = None  # "09:00"
    time_end: Optional[str] = None
    instructor: Optional[str] = None
    location: Optional[str] = None


class FetchCoursesRequest(BaseModel):
    """Body of the fetch-courses function."""
    term: Optional[str] = Field(None, max_length=10, description="Term code, e.g. 2025W")
    refresh: bool = Field(False, description="Re-pull subjects before returning")
    subjects: Optional[list[str]] = Field(None, max_length=50, description="Subjects to refresh")


class FetchCoursesResponse(BaseModel):
    courses: list[CourseSectionResponse]
    cached: bool


class SectionsByTypeResponse(BaseModel):
    """Sections of one course grouped by Lecture/Lab/Tutorial/Discussion."""
    course_code: str
    term: str
    sections: dict[str, list[CourseSectionResponse]]


# =============================================================================
# Assistant
# =============================================================================

class ChatTurn(BaseModel):
    role: str = Field(..., pattern="^(user|assistant)$")
    content: str = Field(..., max_length=8000)


class OptimizeScheduleRequest(BaseModel):
    """Stateless assistant call: conversation plus course context."""
    messages: list[ChatTurn] = Field(..., min_length=1, max_length=50)
    selectedCourses: list[dict] = []
    allCourses: list[dict] = []


class ScheduleChangeResponse(BaseModel):
    courseCode: str
    oldSection: str
    newSection: str
    reason: Optional[str] = None


class OptimizeScheduleResponse(BaseModel):
    response: str
    changes: list[ScheduleChangeResponse] = []


class IssueReportRequest(BaseModel):
    # Bounds are checked by the reporter so errors come back as {error}
    name: str = ""
    email: str = ""
    issue: str = ""


# =============================================================================
# Auth
# =============================================================================

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9._-]+$")
    password: str = Field(..., min_length=6, max_length=128)


class UserResponse(BaseModel):
    """Local user profile."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: Optional[str] = None
    email: str
    full_name: Optional[str] = None
    has_seen_tutorial: bool = False
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    created: bool = False  # account was provisioned by this login
    message: str


class TutorialResponse(BaseModel):
    has_seen_tutorial: bool


# =============================================================================
# Planner
# =============================================================================

class NoticeResponse(BaseModel):
    level: str
    message: str


class BlockResponse(BaseModel):
    id: str
    name: str
    section: str
    day: str
    time: str
    status: Optional[str] = None
    color: Optional[str] = None


class SelectionEntryResponse(BaseModel):
    course_code: str
    course_type: str
    course: CourseSectionResponse


class ChatMessageResponse(BaseModel):
    role: str
    content: str
    changes: list[ScheduleChangeResponse] = []


class PlannerStateResponse(BaseModel):
    term: str
    schedule_name: Optional[str] = None
    schedule: list[BlockResponse]
    selection: list[SelectionEntryResponse]
    can_undo: bool
    can_redo: bool
    drag_state: str
    messages: list[ChatMessageResponse] = []
    notice: Optional[NoticeResponse] = None


class TermRequest(BaseModel):
    term: str = Field(..., min_length=1, max_length=10)
    refresh: bool = False


class SelectionRequest(BaseModel):
    course_code: str = Field(..., min_length=1, max_length=20)
    section: str = Field(..., min_length=1, max_length=10)


class DeselectRequest(BaseModel):
    course_code: str = Field(..., min_length=1, max_length=20)
    course_type: str = Field(..., pattern="^(Lecture|Lab|Tutorial|Discussion)$")


class DragStartRequest(BaseModel):
    block_id: str = Field(..., min_length=1, max_length=100)


class DropRequest(BaseModel):
    day: str = Field(..., pattern="^(MON|TUE|WED|THU|FRI)$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")


class CellResponse(BaseModel):
    day: str
    time: str


class DragStartResponse(BaseModel):
    alternatives: list[CourseSectionResponse]
    valid_targets: list[CellResponse]


class GridCellResponse(BaseModel):
    day: str
    block: Optional[BlockResponse] = None
    valid_drop: bool = False


class GridRowResponse(BaseModel):
    time: str
    cells: list[GridCellResponse]


class PlannerChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class PlannerChatResponse(BaseModel):
    reply: ChatMessageResponse
    state: PlannerStateResponse


# =============================================================================
# Saved schedules
# =============================================================================

class SavedScheduleSummaryResponse(BaseModel):
    name: str
    course_count: int
    created_at: Optional[datetime] = None


class BlockRequest(BaseModel):
    """A scheduled block as sent by the client; the id is derived on save."""
    name: str = Field(..., min_length=1, max_length=20)
    section: str = Field("", max_length=10)
    day: str = Field(..., pattern="^(MON|TUE|WED|THU|FRI)$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    status: Optional[str] = Field(None, max_length=20)
    color: Optional[str] = Field(None, max_length=20)


class SaveScheduleRequest(BaseModel):
    name: str = Field(..., max_length=100)
    # Omitted: save the workspace's current schedule
    blocks: Optional[list[BlockRequest]] = None


class SaveScheduleResponse(BaseModel):
    name: str
    blocks_saved: int
    message: str
