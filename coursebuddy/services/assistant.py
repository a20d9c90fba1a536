"""
AI schedule assistant using Anthropic Claude.

Answers questions about the course catalog and proposes section swaps for the
student's current selection. The model replies with a JSON payload:

    {"response": "...", "changes": [{"courseCode", "oldSection", "newSection", "reason"}]}
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Iterable, Any

import anthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coursebuddy.config import settings
from coursebuddy.models.course import ChatMessage, CourseSection, ScheduleChange
from coursebuddy.services.selection import Selection

logger = logging.getLogger(__name__)

# Catalog rows sent as context, depending on whether the student has a schedule
CONTEXT_COURSES_WITH_SELECTION = 100
CONTEXT_COURSES_WITHOUT_SELECTION = 150

ERROR_REPLY = "Sorry, I encountered an error. Please try again."


SYSTEM_PROMPT = """You are an intelligent course scheduling assistant chatbot. You can:
1. Answer questions about available courses, times, and instructors
2. Help users explore course options before adding them to their schedule
3. Make schedule optimization suggestions when users have courses selected
4. Provide helpful information and advice

Course data structure:
- course_code: e.g., "CPSC 110"
- section: e.g., "101", "L1A" (lectures start with numbers, labs with "L", tutorials with "T")
- days: array of days the course meets (e.g., ["MON", "WED", "FRI"])
- time_start: start time in HH:MM format
- time_end: end time in HH:MM format
- instructor: instructor name
- status: course status (e.g., "Full", "Open")

When responding:
1. For general questions: Search through available courses and provide helpful answers
2. For schedule optimization: Only suggest changes if user has courses in their schedule

Response format (valid JSON only, no markdown):
{
  "response": "Your conversational response here",
  "changes": [
    {
      "courseCode": "CPSC 110",
      "oldSection": "101",
      "newSection": "102",
      "reason": "Brief reason"
    }
  ]
}

If only answering (no changes needed):
{
  "response": "Your answer here",
  "changes": []
}

Rules:
- Be conversational and helpful
- Answer questions about courses even when user has no schedule
- When suggesting changes, only suggest sections that exist in the available courses
- Match course codes exactly
- Preserve course types (lecture/lab/tutorial)
- Consider time conflicts
- Keep responses concise but friendly
- If user has no courses selected, focus on helping them explore options"""


class AssistantResponseError(ValueError):
    """The model reply was not valid JSON or did not have the expected shape."""


class ChangeItem(BaseModel):
    """A proposed swap as it appears on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    course_code: str = Field(..., alias="courseCode")
    old_section: str = Field(..., alias="oldSection")
    new_section: str = Field(..., alias="newSection")
    reason: Optional[str] = None

    def to_change(self) -> ScheduleChange:
        return ScheduleChange(
            course_code=self.course_code,
            old_section=self.old_section,
            new_section=self.new_section,
            reason=self.reason,
        )


class AssistantReply(BaseModel):
    """Validated model reply."""
    response: str
    changes: list[ChangeItem] = []


@dataclass
class AssistantResult:
    """Parsed assistant turn."""
    response: str
    changes: list[ScheduleChange]
    model: str


_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")


def parse_reply(text: str) -> AssistantReply:
    """Parse the model text, unwrapping a fenced code block if present."""
    match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
    payload = match.group(1) if match else text
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise AssistantResponseError("AI returned invalid JSON response") from e
    try:
        return AssistantReply.model_validate(data)
    except ValidationError as e:
        raise AssistantResponseError(f"AI response has unexpected shape: {e.error_count()} errors") from e


def apply_changes(
    selection: Selection,
    catalog: Iterable[CourseSection],
    changes: Iterable[ScheduleChange],
) -> tuple[Selection, list[ScheduleChange]]:
    """
    Substitute proposed sections into the selection.

    A change applies only when (courseCode, oldSection) is currently selected
    and (courseCode, newSection) exists in the catalog; anything else is
    dropped. Lookups use the selection as it was before any change.
    """
    catalog = list(catalog)
    selected = selection.courses()
    updated = selection
    applied: list[ScheduleChange] = []

    for change in changes:
        old_course = next(
            (c for c in selected
             if c.course_code == change.course_code and c.section == change.old_section),
            None,
        )
        if old_course is None:
            logger.warning(f"Dropping change for {change.course_code}: section {change.old_section} not selected")
            continue

        new_course = next(
            (c for c in catalog
             if c.course_code == change.course_code and c.section == change.new_section),
            None,
        )
        if new_course is None:
            logger.warning(f"Dropping change for {change.course_code}: section {change.new_section} not in catalog")
            continue

        updated = updated.with_replaced(change.course_code, old_course.course_type, new_course)
        applied.append(change)

    return updated, applied


class ScheduleAssistant:
    """Client for the schedule assistant model."""

    def __init__(self, client: Optional[Any] = None, model: Optional[str] = None):
        if client is None:
            if not settings.anthropic_api_key:
                raise RuntimeError("ANTHROPIC_API_KEY not configured")
            client = anthropic.Anthropic(api_key=settings.anthropic_api_key)

        self.client = client
        self.model = model or settings.assistant_model

    def _build_context(
        self,
        selected_courses: list[dict],
        all_courses: list[dict],
    ) -> str:
        """Context appended to the latest user turn."""
        if selected_courses:
            available = all_courses[:CONTEXT_COURSES_WITH_SELECTION]
            return f"""Current schedule context:
Selected courses: {json.dumps(selected_courses, indent=2)}

Available courses: {json.dumps(available, indent=2)}
(showing first {CONTEXT_COURSES_WITH_SELECTION} courses for context)

Please respond to my latest message."""

        available = all_courses[:CONTEXT_COURSES_WITHOUT_SELECTION]
        return f"""User has no courses selected yet. Here are available courses to help answer their question:

Available courses: {json.dumps(available, indent=2)}
(showing first {CONTEXT_COURSES_WITHOUT_SELECTION} courses for context)

Please respond to my latest message about available courses."""

    def _build_messages(self, messages: list[ChatMessage], context: str) -> list[dict]:
        api_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role in ("user", "assistant") and msg.content
        ]

        # The context rides along with the latest user turn
        if api_messages and api_messages[-1]["role"] == "user":
            last = api_messages[-1]
            last["content"] = [
                {"type": "text", "text": last["content"]},
                {"type": "text", "text": context},
            ]
        else:
            api_messages.append({"role": "user", "content": context})
        return api_messages

    def complete(
        self,
        messages: list[ChatMessage],
        selected_courses: list[dict],
        all_courses: list[dict],
    ) -> AssistantResult:
        """
        Run one assistant turn.

        Args:
            messages: Conversation so far, ending with the new user message
            selected_courses: The student's chosen sections (dicts)
            all_courses: Catalog sections for the term (dicts)

        Returns:
            AssistantResult with the reply text and proposed changes

        Raises:
            AssistantResponseError: reply could not be parsed
            anthropic.APIError: the completion call failed
        """
        context = self._build_context(selected_courses, all_courses)
        api_messages = self._build_messages(messages, context)

        logger.info(f"Calling {self.model} for schedule chat ({len(api_messages)} messages)")
        response = self.client.messages.create(
            model=self.model,
            max_tokens=settings.assistant_max_tokens,
            temperature=settings.assistant_temperature,
            system=SYSTEM_PROMPT,
            messages=api_messages,
        )

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", "text") == "text"
        )
        try:
            reply = parse_reply(text)
        except AssistantResponseError:
            logger.error(f"Failed to parse AI response: {text[:500]}")
            raise

        return AssistantResult(
            response=reply.response,
            changes=[c.to_change() for c in reply.changes],
            model=self.model,
        )


# Singleton instance
_assistant: Optional[ScheduleAssistant] = None


def get_assistant() -> ScheduleAssistant:
    """Get or create the assistant singleton."""
    global _assistant
    if _assistant is None:
        _assistant = ScheduleAssistant()
    return _assistant
