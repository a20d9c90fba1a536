"""
Planner workspace.

Coordinates the pieces behind the schedule page: the selection manager, the
generated schedule, the undo/redo history, the drag engine and the assistant
conversation. Components talk through messages (SwapRequest from the drag
engine, AssistantResult from the assistant) and the workspace is the only
place where selection, schedule and history change.

Operations return Notice objects, the user-facing confirmations shown by the
client. Rejections raise (DuplicateSectionError, PlannerError, DragError).
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Iterable

from coursebuddy.config import settings
from coursebuddy.models.course import (
    ChatMessage,
    CourseSection,
    CourseType,
    ScheduledBlock,
    WEEKDAYS,
)
from coursebuddy.services.assistant import ScheduleAssistant, apply_changes
from coursebuddy.services.drag_engine import (
    DragEngine,
    DragError,
    DropResolutionError,
    SwapRequest,
)
from coursebuddy.services.history import HistoryController
from coursebuddy.services.schedule_builder import (
    generate_schedule,
    remove_course_blocks,
    render_grid,
)
from coursebuddy.services.schedule_store import LoadedSchedule, rebuild_selection
from coursebuddy.services.selection import Selection, SelectionManager

logger = logging.getLogger(__name__)


class PlannerError(ValueError):
    """A planner request that cannot be carried out (shown to the user)."""


@dataclass(frozen=True)
class Notice:
    """A transient message for the user."""
    level: str  # "success", "info", "error"
    message: str

    def to_dict(self) -> dict:
        return {"level": self.level, "message": self.message}


class PlannerSession:
    """One student's planning workspace."""

    def __init__(
        self,
        user_id: int,
        term: Optional[str] = None,
        catalog: Optional[Iterable[CourseSection]] = None,
        history_max_entries: Optional[int] = None,
    ):
        self.user_id = user_id
        self.term = term or settings.default_term
        self.catalog: list[CourseSection] = list(catalog or [])
        self.selection = SelectionManager()
        self.schedule: tuple[ScheduledBlock, ...] = ()
        self.history: HistoryController[tuple[ScheduledBlock, ...]] = HistoryController(
            max_entries=history_max_entries or settings.history_max_entries
        )
        self.drag = DragEngine()
        self._drop_targets: set[tuple[str, str]] = set()
        self.messages: list[ChatMessage] = []
        self.schedule_name: Optional[str] = None
        self.lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def set_catalog(self, courses: Iterable[CourseSection], term: Optional[str] = None) -> None:
        if term:
            self.term = term
        self.catalog = list(courses)
        # Alternatives follow the new data; highlighted cells stay as they were
        self.drag.refresh(self.catalog)

    def find_course(self, course_code: str, section: str) -> CourseSection:
        course = next(
            (c for c in self.catalog if c.course_code == course_code and c.section == section),
            None,
        )
        if course is None:
            raise PlannerError(f"{course_code} section {section} is not offered in {self.term}")
        return course

    # -------------------------------------------------------------------------
    # Selection and schedule
    # -------------------------------------------------------------------------

    def select(self, course: CourseSection) -> Notice:
        """Add a section to the selection (DuplicateSectionError on conflict)."""
        self.selection.add(course)
        return Notice("success", f"Added {course.course_code} {course.course_type.value} (Section {course.section})")

    def deselect(self, course_code: str, course_type: CourseType) -> Notice:
        """Remove a selection entry and its blocks from the schedule."""
        self.selection.remove(course_code, course_type)
        self._set_schedule(remove_course_blocks(self.schedule, course_code, course_type))
        return Notice("success", f"Removed {course_code} {course_type.value} from schedule")

    def generate(self) -> Notice:
        if not len(self.selection.snapshot):
            raise PlannerError("Please add at least one course")
        self._regenerate(self.selection.snapshot)
        return Notice("success", "Schedule generated successfully!")

    def clear(self) -> Notice:
        self.selection.clear()
        self._set_schedule(())
        return Notice("success", "Schedule cleared")

    def _regenerate(self, selection: Selection) -> None:
        self.selection.set(selection)
        self._set_schedule(generate_schedule(selection.courses()))

    def _set_schedule(self, blocks: tuple[ScheduledBlock, ...]) -> None:
        self._replace_schedule(blocks)
        self.history.push(blocks)

    def _replace_schedule(self, blocks: tuple[ScheduledBlock, ...]) -> None:
        # A grabbed block only exists on the schedule it was picked up from
        if self.drag.is_dragging:
            self.cancel_drag()
        self.schedule = blocks

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def undo(self) -> Optional[Notice]:
        snapshot = self.history.undo()
        if snapshot is None:
            return None
        self._replace_schedule(snapshot)
        return Notice("success", "Undone")

    def redo(self) -> Optional[Notice]:
        snapshot = self.history.redo()
        if snapshot is None:
            return None
        self._replace_schedule(snapshot)
        return Notice("success", "Redone")

    # -------------------------------------------------------------------------
    # Drag and drop
    # -------------------------------------------------------------------------

    def start_drag(self, block_id: str) -> list[CourseSection]:
        block = next((b for b in self.schedule if b.block_id == block_id), None)
        if block is None:
            raise DragError(f"Block {block_id} is not on the schedule")
        alternatives = self.drag.start(block, self.catalog)
        self._drop_targets = set(self.drag.valid_targets())
        return alternatives

    def valid_targets(self) -> list[tuple[str, str]]:
        if not self.drag.is_dragging:
            return []
        return sorted(self._drop_targets, key=lambda cell: (cell[1], WEEKDAYS.index(cell[0])))

    def drop(self, day: str, time: str) -> Optional[Notice]:
        """Drop the dragged block; None when the cell is not a drop target."""
        targets = self._drop_targets
        self._drop_targets = set()
        try:
            swap = self.drag.drop(day.upper(), time, valid_targets=targets)
        except DropResolutionError as e:
            logger.warning(f"Drop on {day} {time} did not resolve for user {self.user_id}")
            return Notice("error", str(e))
        if swap is None:
            return None
        return self._apply_swap(swap)

    def cancel_drag(self) -> None:
        self._drop_targets = set()
        self.drag.cancel()

    def _apply_swap(self, swap: SwapRequest) -> Notice:
        if swap.course_code not in self.selection.snapshot:
            return Notice("error", f"{swap.course_code} is not in your selection")
        selection = self.selection.snapshot.with_replaced(
            swap.course_code, swap.course_type, swap.new_course
        )
        self._regenerate(selection)
        return Notice("success", f"Switched to section {swap.new_course.section}")

    # -------------------------------------------------------------------------
    # Assistant
    # -------------------------------------------------------------------------

    def send_chat(self, text: str, assistant: ScheduleAssistant) -> tuple[ChatMessage, list[Notice]]:
        """
        Run one assistant turn against this workspace.

        The user message is appended before the call and retracted if the
        call or the reply parsing fails; the error is re-raised. Reported
        changes are applied as one batch with a single history entry.
        """
        if not text or not text.strip():
            raise PlannerError("Message cannot be empty")

        user_message = ChatMessage(role="user", content=text)
        self.messages.append(user_message)
        selected = self.selection.snapshot.courses()

        try:
            result = assistant.complete(
                messages=list(self.messages),
                selected_courses=[c.to_dict() for c in selected],
                all_courses=[c.to_dict() for c in self.catalog],
            )
        except Exception:
            self.messages.pop()
            raise

        reply = ChatMessage(role="assistant", content=result.response, changes=list(result.changes))
        self.messages.append(reply)

        notices: list[Notice] = []
        if result.changes:
            selection, applied = apply_changes(self.selection.snapshot, self.catalog, result.changes)
            logger.info(f"Applied {len(applied)}/{len(result.changes)} assistant changes for user {self.user_id}")
            self._regenerate(selection)
            notices.append(Notice("success", "Schedule updated based on your request"))
        return reply, notices

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self, loaded: LoadedSchedule) -> Notice:
        """Replace the schedule with a saved one and restart history from it."""
        self._replace_schedule(loaded.blocks)
        self.history.reset(loaded.blocks)
        self.schedule_name = loaded.name
        if self.catalog and loaded.blocks:
            self.selection.set(rebuild_selection(loaded.blocks, self.catalog))
        return Notice("success", f'Loaded "{loaded.name}"')

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def grid(self) -> list[dict]:
        """Weekly grid rows with the occupying block and drop-target flag per cell."""
        rows = []
        for row in render_grid(self.schedule):
            rows.append({
                "time": row["time"],
                "cells": [
                    {
                        "day": day,
                        "block": block.to_dict() if block else None,
                        "valid_drop": (day, row["time"]) in self._drop_targets,
                    }
                    for day, block in row["cells"].items()
                ],
            })
        return rows

    def state(self) -> dict:
        return {
            "term": self.term,
            "schedule_name": self.schedule_name,
            "schedule": [b.to_dict() for b in self.schedule],
            "selection": [
                {"course_code": code, "course_type": course_type.value, "course": course.to_dict()}
                for code, course_type, course in self.selection.snapshot.sorted_entries()
            ],
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
            "drag_state": self.drag.state.value,
            "messages": [m.to_dict() for m in self.messages],
        }


class PlannerRegistry:
    """Keeps one PlannerSession per user."""

    def __init__(self):
        self._sessions: dict[int, PlannerSession] = {}
        self._lock = threading.Lock()

    def get(
        self,
        user_id: int,
        factory: Callable[[], PlannerSession],
    ) -> PlannerSession:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = factory()
                self._sessions[user_id] = session
                logger.info(f"Created planner workspace for user {user_id}")
            return session

    def discard(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
