import pytest

from coursebuddy.models.course import CourseType
from coursebuddy.services.selection import (
    DuplicateSectionError,
    Selection,
    SelectionManager,
)


def test_add_sections_of_different_types(make_section):
    manager = SelectionManager()
    manager.add(make_section("CPSC 110", "101"))
    manager.add(make_section("CPSC 110", "L1A"))

    types = manager.snapshot.types_for("CPSC 110")
    assert set(types) == {CourseType.LECTURE, CourseType.LAB}


def test_duplicate_type_is_rejected_and_map_unchanged(make_section):
    manager = SelectionManager()
    manager.add(make_section("CPSC 110", "101"))
    before = manager.snapshot

    with pytest.raises(DuplicateSectionError) as exc:
        manager.add(make_section("CPSC 110", "102"))

    assert str(exc.value) == "CPSC 110 already has a Lecture: Section 101"
    assert manager.snapshot is before
    assert manager.snapshot.get("CPSC 110", CourseType.LECTURE).section == "101"


def test_removing_last_type_drops_course_code(make_section):
    manager = SelectionManager()
    manager.add(make_section("CPSC 110", "101"))
    manager.add(make_section("CPSC 110", "L1A"))

    manager.remove("CPSC 110", CourseType.LAB)
    assert "CPSC 110" in manager.snapshot

    manager.remove("CPSC 110", CourseType.LECTURE)
    assert "CPSC 110" not in manager.snapshot
    assert len(manager.snapshot) == 0


def test_snapshots_do_not_share_state(make_section):
    first = Selection().with_added(make_section("CPSC 110", "101"))
    second = first.with_added(make_section("CPSC 110", "L1A"))

    assert first.types_for("CPSC 110").keys() == {CourseType.LECTURE}
    assert second.types_for("CPSC 110").keys() == {CourseType.LECTURE, CourseType.LAB}


def test_replace_only_touches_selected_codes(make_section):
    selection = Selection().with_added(make_section("CPSC 110", "101"))

    replaced = selection.with_replaced("CPSC 110", CourseType.LECTURE, make_section("CPSC 110", "102"))
    assert replaced.get("CPSC 110", CourseType.LECTURE).section == "102"

    untouched = selection.with_replaced("MATH 100", CourseType.LECTURE, make_section("MATH 100", "101"))
    assert untouched == selection


def test_sorted_entries_order(make_section):
    selection = (
        Selection()
        .with_added(make_section("MATH 100", "T1A"))
        .with_added(make_section("CPSC 110", "L1A"))
        .with_added(make_section("CPSC 110", "101"))
    )
    assert [(code, t.value) for code, t, _ in selection.sorted_entries()] == [
        ("CPSC 110", "Lecture"),
        ("CPSC 110", "Lab"),
        ("MATH 100", "Tutorial"),
    ]
