"""
Stateless schedule assistant endpoint.

The client sends the whole conversation and its course context; nothing is
stored. Workspace-bound chat lives under /planner/chat.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from coursebuddy.api.deps import get_schedule_assistant
from coursebuddy.api.rate_limit import chat_limit
from coursebuddy.api.schemas import OptimizeScheduleRequest, OptimizeScheduleResponse
from coursebuddy.models.course import ChatMessage
from coursebuddy.services.assistant import ERROR_REPLY, ScheduleAssistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Assistant"])


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": message, "response": ERROR_REPLY, "changes": []},
    )


@router.post("/optimize-schedule-ai", response_model=OptimizeScheduleResponse)
@chat_limit
async def optimize_schedule(
    request: Request,
    body: OptimizeScheduleRequest,
    assistant: Optional[ScheduleAssistant] = Depends(get_schedule_assistant),
):
    """
    Ask the assistant about courses or for section swaps.

    Failures of any kind answer 500 with a fallback reply the client can show.
    """
    if assistant is None:
        return _error_response("ANTHROPIC_API_KEY not configured")

    try:
        result = assistant.complete(
            messages=[ChatMessage(role=m.role, content=m.content) for m in body.messages],
            selected_courses=body.selectedCourses,
            all_courses=body.allCourses,
        )
    except Exception as e:
        logger.error(f"Error in optimize-schedule-ai: {e}")
        return _error_response(str(e) or "Unknown error")

    return OptimizeScheduleResponse(
        response=result.response,
        changes=[c.to_dict() for c in result.changes],
    )
