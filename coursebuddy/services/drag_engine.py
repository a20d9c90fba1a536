"""
Drag-and-drop substitution engine for the schedule grid.

The engine only computes alternatives and resolves drops. It never mutates
the selection or history; a successful drop yields a SwapRequest that the
planner applies.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from coursebuddy.models.course import (
    CourseSection,
    CourseType,
    ScheduledBlock,
    WEEKDAYS,
    TIME_SLOTS,
    get_course_type,
)

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESOLVED = "resolved"


class DragError(RuntimeError):
    """Raised when a drag operation is not allowed in the current state."""


class DropResolutionError(RuntimeError):
    """A drop target was marked valid but no alternative matches it anymore."""


@dataclass(frozen=True)
class SwapRequest:
    """Message from the grid asking the planner to switch a section."""
    course_code: str
    course_type: CourseType
    new_course: CourseSection


class DragEngine:
    """State machine: IDLE -> DRAGGING -> RESOLVED (or back to IDLE)."""

    def __init__(self):
        self.state = DragState.IDLE
        self.block: Optional[ScheduledBlock] = None
        self.alternatives: list[CourseSection] = []

    @property
    def is_dragging(self) -> bool:
        return self.state == DragState.DRAGGING

    def start(self, block: ScheduledBlock, catalog: Iterable[CourseSection]) -> list[CourseSection]:
        """Grab a block and compute the sections it could be swapped for."""
        self.block = block
        self.alternatives = self._find_alternatives(block, catalog)
        self.state = DragState.DRAGGING
        logger.debug(f"Dragging {block.block_id}: {len(self.alternatives)} alternatives")
        return list(self.alternatives)

    def refresh(self, catalog: Iterable[CourseSection]) -> None:
        """Recompute alternatives after the catalog changed mid-drag."""
        if self.is_dragging:
            self.alternatives = self._find_alternatives(self.block, catalog)

    @staticmethod
    def _find_alternatives(
        block: ScheduledBlock,
        catalog: Iterable[CourseSection],
    ) -> list[CourseSection]:
        course_type = get_course_type(block.section)
        return [
            c for c in catalog
            if c.course_code == block.name and c.course_type == course_type
        ]

    def is_valid_target(self, day: str, time: str) -> bool:
        if not self.is_dragging:
            return False
        return any(alt.meets_at(day, time) for alt in self.alternatives)

    def valid_targets(self) -> list[tuple[str, str]]:
        """Grid cells (day, time) the dragged block may be dropped on."""
        return [
            (day, time)
            for time in TIME_SLOTS
            for day in WEEKDAYS
            if self.is_valid_target(day, time)
        ]

    def drop(
        self,
        day: str,
        time: str,
        valid_targets: Optional[set[tuple[str, str]]] = None,
    ) -> Optional[SwapRequest]:
        """
        Drop the dragged block on a grid cell.

        ``valid_targets`` is the set of cells the grid highlighted when the
        drag started; when omitted, validity is computed from the current
        alternatives. Returns None (and goes back to IDLE) for an invalid
        target. Raises DropResolutionError when a highlighted cell no longer
        resolves to an alternative.
        """
        if not self.is_dragging:
            raise DragError("No drag in progress")

        block = self.block
        highlighted = (
            (day, time) in valid_targets if valid_targets is not None
            else self.is_valid_target(day, time)
        )
        if not highlighted:
            self._reset()
            return None

        new_course = next(
            (alt for alt in self.alternatives if alt.meets_at(day, time)),
            None,
        )
        if new_course is None:
            self._reset()
            raise DropResolutionError("No section available for this time slot")

        self.state = DragState.RESOLVED
        self.alternatives = []
        return SwapRequest(
            course_code=block.name,
            course_type=get_course_type(block.section),
            new_course=new_course,
        )

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.block = None
        self.alternatives = []
