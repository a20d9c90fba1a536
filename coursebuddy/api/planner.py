"""
Planner workspace API endpoints.

Every request works on the signed-in user's workspace and holds its lock for
the whole operation, so requests from one user are applied one at a time.
"""
import logging
from typing import Optional

import anthropic
from fastapi import APIRouter, Depends, HTTPException, Request

from coursebuddy.api.auth import get_current_user
from coursebuddy.api.deps import (
    get_catalog_service,
    get_planner_registry,
    get_schedule_assistant,
)
from coursebuddy.api.rate_limit import chat_limit, refresh_limit
from coursebuddy.api.schemas import (
    CellResponse,
    CourseSectionResponse,
    DeselectRequest,
    DragStartRequest,
    DragStartResponse,
    DropRequest,
    GridRowResponse,
    PlannerChatRequest,
    PlannerChatResponse,
    PlannerStateResponse,
    SelectionRequest,
    TermRequest,
)
from coursebuddy.models.course import CourseType
from coursebuddy.models.database import User
from coursebuddy.services.assistant import AssistantResponseError, ScheduleAssistant
from coursebuddy.services.catalog_service import CatalogService
from coursebuddy.services.drag_engine import DragError
from coursebuddy.services.planner import (
    Notice,
    PlannerError,
    PlannerRegistry,
    PlannerSession,
)
from coursebuddy.services.selection import DuplicateSectionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/planner", tags=["Planner"])


def get_workspace(
    user: User = Depends(get_current_user),
    registry: PlannerRegistry = Depends(get_planner_registry),
    catalog: CatalogService = Depends(get_catalog_service),
) -> PlannerSession:
    """The user's workspace, created with the default term's catalog."""
    def create() -> PlannerSession:
        courses, _ = catalog.fetch_courses()
        return PlannerSession(user_id=user.id, catalog=courses)

    return registry.get(user.id, create)


def state_response(workspace: PlannerSession, notice: Optional[Notice] = None) -> PlannerStateResponse:
    state = workspace.state()
    if notice is not None:
        state["notice"] = notice.to_dict()
    return PlannerStateResponse(**state)


@router.get("", response_model=PlannerStateResponse)
async def get_planner(workspace: PlannerSession = Depends(get_workspace)):
    """Current schedule, selection, history flags, and conversation."""
    with workspace.lock:
        return state_response(workspace)


@router.post("/term", response_model=PlannerStateResponse)
@refresh_limit
async def switch_term(
    request: Request,
    body: TermRequest,
    workspace: PlannerSession = Depends(get_workspace),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Load another term's catalog into the workspace."""
    with workspace.lock:
        courses, _ = catalog.fetch_courses(term=body.term, refresh=body.refresh)
        workspace.set_catalog(courses, term=body.term)
        return state_response(workspace, Notice("info", f"Loaded {len(courses)} sections for {body.term}"))


# =============================================================================
# Selection and schedule
# =============================================================================

@router.post("/selection", response_model=PlannerStateResponse)
async def add_selection(
    body: SelectionRequest,
    workspace: PlannerSession = Depends(get_workspace),
):
    """Add one section; a second section of the same type is rejected."""
    with workspace.lock:
        try:
            course = workspace.find_course(body.course_code.upper(), body.section.upper())
        except PlannerError as e:
            raise HTTPException(status_code=404, detail=str(e))
        try:
            notice = workspace.select(course)
        except DuplicateSectionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return state_response(workspace, notice)


@router.delete("/selection", response_model=PlannerStateResponse)
async def remove_selection(
    body: DeselectRequest,
    workspace: PlannerSession = Depends(get_workspace),
):
    with workspace.lock:
        notice = workspace.deselect(body.course_code.upper(), CourseType(body.course_type))
        return state_response(workspace, notice)


@router.post("/generate", response_model=PlannerStateResponse)
async def generate(workspace: PlannerSession = Depends(get_workspace)):
    """Regenerate the grid from the selection."""
    with workspace.lock:
        try:
            notice = workspace.generate()
        except PlannerError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return state_response(workspace, notice)


@router.post("/clear", response_model=PlannerStateResponse)
async def clear(workspace: PlannerSession = Depends(get_workspace)):
    with workspace.lock:
        return state_response(workspace, workspace.clear())


@router.post("/undo", response_model=PlannerStateResponse)
async def undo(workspace: PlannerSession = Depends(get_workspace)):
    with workspace.lock:
        return state_response(workspace, workspace.undo())


@router.post("/redo", response_model=PlannerStateResponse)
async def redo(workspace: PlannerSession = Depends(get_workspace)):
    with workspace.lock:
        return state_response(workspace, workspace.redo())


@router.get("/grid", response_model=list[GridRowResponse])
async def get_grid(workspace: PlannerSession = Depends(get_workspace)):
    """Weekly grid; cells that accept the dragged block have valid_drop set."""
    with workspace.lock:
        return workspace.grid()


# =============================================================================
# Drag and drop
# =============================================================================

@router.post("/drag/start", response_model=DragStartResponse)
async def start_drag(
    body: DragStartRequest,
    workspace: PlannerSession = Depends(get_workspace),
):
    """Pick up a block; returns its alternative sections and drop targets."""
    with workspace.lock:
        try:
            alternatives = workspace.start_drag(body.block_id)
        except DragError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {
            "alternatives": [CourseSectionResponse(**c.to_dict()) for c in alternatives],
            "valid_targets": [CellResponse(day=d, time=t) for d, t in workspace.valid_targets()],
        }


@router.post("/drag/drop", response_model=PlannerStateResponse)
async def drop(
    body: DropRequest,
    workspace: PlannerSession = Depends(get_workspace),
):
    """Drop the dragged block; an invalid cell just ends the drag."""
    with workspace.lock:
        try:
            notice = workspace.drop(body.day, body.time)
        except DragError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return state_response(workspace, notice)


@router.post("/drag/cancel", response_model=PlannerStateResponse)
async def cancel_drag(workspace: PlannerSession = Depends(get_workspace)):
    with workspace.lock:
        workspace.cancel_drag()
        return state_response(workspace)


# =============================================================================
# Assistant
# =============================================================================

@router.post("/chat", response_model=PlannerChatResponse)
@chat_limit
async def chat(
    request: Request,
    body: PlannerChatRequest,
    workspace: PlannerSession = Depends(get_workspace),
    assistant: Optional[ScheduleAssistant] = Depends(get_schedule_assistant),
):
    """
    Send a message to the assistant; proposed swaps are applied to the
    workspace as one undoable step.
    """
    if assistant is None:
        raise HTTPException(status_code=503, detail="AI assistant is temporarily unavailable")

    with workspace.lock:
        try:
            reply, notices = workspace.send_chat(body.message, assistant)
        except PlannerError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except AssistantResponseError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except anthropic.APIError as e:
            logger.error(f"Assistant call failed for user {workspace.user_id}: {e}")
            raise HTTPException(status_code=502, detail="AI assistant request failed")

        return PlannerChatResponse(
            reply=reply.to_dict(),
            state=state_response(workspace, notices[0] if notices else None),
        )
