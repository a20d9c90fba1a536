"""Planner services - catalog, schedule building, history, drag and drop, assistant."""
from .history import HistoryController
from .planner import PlannerRegistry, PlannerSession
from .schedule_builder import generate_schedule
from .selection import Selection, SelectionManager

__all__ = [
    "HistoryController",
    "PlannerRegistry",
    "PlannerSession",
    "generate_schedule",
    "Selection",
    "SelectionManager",
]
