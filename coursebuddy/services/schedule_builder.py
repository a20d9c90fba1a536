"""
Schedule generation for the weekly grid.

Turns chosen sections into scheduled blocks (one per meeting day) and lays
those blocks onto the MON-FRI time grid.
"""
from typing import Iterable, Optional

from coursebuddy.models.course import (
    CourseSection,
    CourseType,
    ScheduledBlock,
    WEEKDAYS,
    TIME_SLOTS,
)

COLOR_PALETTE = ["purple", "green", "tan", "orange", "blue"]


def generate_schedule(courses: Iterable[CourseSection]) -> tuple[ScheduledBlock, ...]:
    """
    Build scheduled blocks for a flat list of chosen sections.

    Sections without meeting days or a start time are skipped. Colors are
    assigned by first-seen course code, cycling through the palette, so all
    sections of one course share a color.
    """
    blocks: list[ScheduledBlock] = []
    color_map: dict[str, str] = {}

    for course in courses:
        if not course.days or not course.time_start:
            continue

        if course.course_code not in color_map:
            color_map[course.course_code] = COLOR_PALETTE[len(color_map) % len(COLOR_PALETTE)]

        for day in course.days:
            blocks.append(ScheduledBlock(
                name=course.course_code,
                section=course.section,
                status=course.status or "Unknown",
                color=color_map[course.course_code],
                day=day,
                time=course.time_start,
            ))

    return tuple(blocks)


def block_at(blocks: Iterable[ScheduledBlock], day: str, time: str) -> Optional[ScheduledBlock]:
    """Return the block occupying a grid cell; the first match wins."""
    return next((b for b in blocks if b.day == day and b.time == time), None)


def remove_course_blocks(
    blocks: Iterable[ScheduledBlock],
    course_code: str,
    course_type: CourseType,
) -> tuple[ScheduledBlock, ...]:
    """Drop every block of ``course_code`` whose section is of ``course_type``."""
    return tuple(
        b for b in blocks
        if b.name != course_code or b.course_type != course_type
    )


def render_grid(blocks: Iterable[ScheduledBlock]) -> list[dict]:
    """
    Lay blocks onto the weekly grid.

    Returns one row per time slot: ``{"time": "09:00", "cells": {"MON": block|None, ...}}``.
    Blocks whose day or time falls outside the grid are not shown.
    """
    blocks = list(blocks)
    return [
        {"time": time, "cells": {day: block_at(blocks, day, time) for day in WEEKDAYS}}
        for time in TIME_SLOTS
    ]


def format_grid(blocks: Iterable[ScheduledBlock], cell_width: int = 14) -> str:
    """Plain-text rendering of the weekly grid for the CLI."""
    lines = ["      " + "".join(day.ljust(cell_width) for day in WEEKDAYS)]
    for row in render_grid(blocks):
        cells = []
        for day in WEEKDAYS:
            block = row["cells"][day]
            label = f"{block.name} {block.section}" if block else "."
            cells.append(label[:cell_width - 1].ljust(cell_width))
        lines.append(f"{row['time']} " + "".join(cells))
    return "\n".join(lines)
