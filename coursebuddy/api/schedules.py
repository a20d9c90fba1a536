"""
Saved schedule API endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from coursebuddy.api.auth import get_current_user
from coursebuddy.api.deps import get_schedule_store
from coursebuddy.api.planner import get_workspace, state_response
from coursebuddy.api.rate_limit import write_limit
from coursebuddy.api.schemas import (
    PlannerStateResponse,
    SavedScheduleSummaryResponse,
    SaveScheduleRequest,
    SaveScheduleResponse,
)
from coursebuddy.models.course import ScheduledBlock
from coursebuddy.models.database import User
from coursebuddy.services.planner import PlannerSession
from coursebuddy.services.schedule_store import ScheduleNameError, ScheduleStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"])


@router.get("", response_model=list[SavedScheduleSummaryResponse])
async def list_schedules(
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_schedule_store),
):
    """The user's saved schedules, newest first."""
    return [
        SavedScheduleSummaryResponse(name=s.name, course_count=s.course_count, created_at=s.created_at)
        for s in store.list_schedules(user.id)
    ]


@router.post("", response_model=SaveScheduleResponse)
@write_limit
async def save_schedule(
    request: Request,
    body: SaveScheduleRequest,
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_schedule_store),
    workspace: PlannerSession = Depends(get_workspace),
):
    """
    Save a schedule under a name, replacing any schedule with that name.

    Without ``blocks`` the workspace's current schedule is saved.
    """
    with workspace.lock:
        if body.blocks is None:
            blocks = list(workspace.schedule)
        else:
            blocks = [ScheduledBlock.from_dict(b.model_dump()) for b in body.blocks]

        try:
            count = store.save(user.id, body.name, blocks)
        except ScheduleNameError as e:
            raise HTTPException(status_code=400, detail=str(e))

        name = body.name.strip()
        workspace.schedule_name = name

    return SaveScheduleResponse(
        name=name,
        blocks_saved=count,
        message=f'Schedule "{name}" saved successfully!',
    )


@router.post("/latest", response_model=PlannerStateResponse)
async def load_latest_schedule(
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_schedule_store),
    workspace: PlannerSession = Depends(get_workspace),
):
    """Load the most recently saved schedule into the workspace."""
    loaded = store.load_latest(user.id)
    if loaded is None:
        raise HTTPException(status_code=404, detail="No saved schedules")
    with workspace.lock:
        return state_response(workspace, workspace.load(loaded))


@router.post("/{name}/load", response_model=PlannerStateResponse)
async def load_schedule(
    name: str,
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_schedule_store),
    workspace: PlannerSession = Depends(get_workspace),
):
    """Load a saved schedule into the workspace; undo history restarts from it."""
    try:
        loaded = store.load(user.id, name)
    except ScheduleNameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if loaded is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    with workspace.lock:
        return state_response(workspace, workspace.load(loaded))


@router.delete("/{name}")
@write_limit
async def delete_schedule(
    request: Request,
    name: str,
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_schedule_store),
):
    try:
        deleted = store.delete(user.id, name)
    except ScheduleNameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Schedule not found")
    logger.info(f"Deleted schedule '{name}' for user {user.id}")
    return {"deleted": deleted}
