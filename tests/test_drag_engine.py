import pytest

from coursebuddy.models.course import CourseType, ScheduledBlock
from coursebuddy.services.drag_engine import (
    DragEngine,
    DragError,
    DragState,
    DropResolutionError,
)


@pytest.fixture()
def catalog(make_section):
    return [
        make_section("CPSC 110", "101", ["MON", "WED"], "09:00", "10:00"),
        make_section("CPSC 110", "102", ["TUE", "THU"], "11:00", "12:00"),
        make_section("CPSC 110", "L1A", ["FRI"], "13:00", "14:00"),
        make_section("CPSC 121", "101", ["TUE"], "14:00", "15:00"),
    ]


@pytest.fixture()
def lecture_block():
    return ScheduledBlock(name="CPSC 110", section="101", day="MON", time="09:00")


def test_alternatives_share_code_and_type(catalog, lecture_block):
    engine = DragEngine()
    alternatives = engine.start(lecture_block, catalog)

    assert [c.section for c in alternatives] == ["101", "102"]
    assert engine.state == DragState.DRAGGING
    assert set(engine.valid_targets()) == {
        ("MON", "09:00"), ("WED", "09:00"), ("TUE", "11:00"), ("THU", "11:00"),
    }


def test_drop_on_valid_cell_requests_swap(catalog, lecture_block):
    engine = DragEngine()
    engine.start(lecture_block, catalog)

    swap = engine.drop("TUE", "11:00")

    assert swap.course_code == "CPSC 110"
    assert swap.course_type == CourseType.LECTURE
    assert swap.new_course.section == "102"
    assert engine.state == DragState.RESOLVED


def test_drop_on_invalid_cell_returns_to_idle(catalog, lecture_block):
    engine = DragEngine()
    engine.start(lecture_block, catalog)

    assert engine.drop("FRI", "13:00") is None
    assert engine.state == DragState.IDLE


def test_highlighted_cell_without_match_raises(catalog, lecture_block, make_section):
    engine = DragEngine()
    engine.start(lecture_block, catalog)
    highlighted = set(engine.valid_targets())

    # Catalog changes mid-drag: section 102 moves
    engine.refresh([
        make_section("CPSC 110", "101", ["MON", "WED"], "09:00"),
        make_section("CPSC 110", "102", ["FRI"], "15:00"),
    ])

    with pytest.raises(DropResolutionError):
        engine.drop("TUE", "11:00", valid_targets=highlighted)
    assert engine.state == DragState.IDLE


def test_drop_without_drag_is_an_error():
    with pytest.raises(DragError):
        DragEngine().drop("MON", "09:00")


def test_cancel_and_restart(catalog, lecture_block):
    engine = DragEngine()
    engine.start(lecture_block, catalog)
    engine.cancel()
    assert engine.state == DragState.IDLE
    assert engine.valid_targets() == []

    lab = ScheduledBlock(name="CPSC 110", section="L1A", day="FRI", time="13:00")
    engine.start(lecture_block, catalog)
    alternatives = engine.start(lab, catalog)
    assert [c.section for c in alternatives] == ["L1A"]
