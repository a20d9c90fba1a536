import json

import pytest

from coursebuddy.models.course import ChatMessage, CourseType, ScheduleChange
from coursebuddy.services.assistant import (
    AssistantResponseError,
    CONTEXT_COURSES_WITHOUT_SELECTION,
    ScheduleAssistant,
    apply_changes,
    parse_reply,
)
from coursebuddy.services.selection import Selection


def test_parse_plain_json():
    reply = parse_reply('{"response": "Hi", "changes": []}')
    assert reply.response == "Hi"
    assert reply.changes == []


def test_parse_fenced_json():
    text = 'Sure!\n```json\n{"response": "Done", "changes": [{"courseCode": "CPSC 110", "oldSection": "101", "newSection": "102", "reason": "later"}]}\n```'
    reply = parse_reply(text)
    assert reply.changes[0].course_code == "CPSC 110"
    assert reply.changes[0].to_change().new_section == "102"


def test_parse_rejects_non_json():
    with pytest.raises(AssistantResponseError):
        parse_reply("I think you should take CPSC 110.")


def test_parse_rejects_wrong_shape():
    with pytest.raises(AssistantResponseError):
        parse_reply('{"answer": "no response key"}')


@pytest.fixture()
def cpsc_catalog(make_section):
    return [
        make_section("CPSC 110", "101", ["MON", "WED"], "09:00"),
        make_section("CPSC 110", "102", ["TUE", "THU"], "11:00"),
        make_section("CPSC 110", "L1A", ["FRI"], "13:00"),
    ]


def test_apply_change_when_new_section_exists(cpsc_catalog):
    selection = Selection().with_added(cpsc_catalog[0])
    change = ScheduleChange(course_code="CPSC 110", old_section="101", new_section="102")

    updated, applied = apply_changes(selection, cpsc_catalog, [change])

    assert updated.get("CPSC 110", CourseType.LECTURE).section == "102"
    assert applied == [change]


def test_change_to_missing_section_is_dropped(cpsc_catalog):
    catalog = [c for c in cpsc_catalog if c.section != "102"]
    selection = Selection().with_added(cpsc_catalog[0])
    change = ScheduleChange(course_code="CPSC 110", old_section="101", new_section="102")

    updated, applied = apply_changes(selection, catalog, [change])

    assert updated == selection
    assert applied == []


def test_change_for_unselected_section_is_dropped(cpsc_catalog):
    selection = Selection().with_added(cpsc_catalog[0])
    change = ScheduleChange(course_code="CPSC 110", old_section="L1A", new_section="102")

    updated, applied = apply_changes(selection, cpsc_catalog, [change])

    assert updated == selection
    assert applied == []


def test_complete_sends_context_with_latest_turn(fake_anthropic, make_section):
    fake_anthropic.queue(json.dumps({"response": "CPSC 110 has two lectures.", "changes": []}))
    assistant = ScheduleAssistant(client=fake_anthropic, model="test-model")
    catalog = [make_section("COMM 101", str(100 + i), ["MON"], "09:00").to_dict() for i in range(200)]

    result = assistant.complete(
        messages=[ChatMessage(role="user", content="What lectures are there?")],
        selected_courses=[],
        all_courses=catalog,
    )

    assert result.response == "CPSC 110 has two lectures."
    assert result.model == "test-model"
    call = fake_anthropic.calls[0]
    assert call["model"] == "test-model"
    assert len(call["messages"]) == 1
    blocks = call["messages"][0]["content"]
    assert blocks[0]["text"] == "What lectures are there?"
    assert "no courses selected" in blocks[1]["text"]
    assert f"first {CONTEXT_COURSES_WITHOUT_SELECTION} courses" in blocks[1]["text"]


def test_complete_raises_on_unparseable_reply(fake_anthropic):
    fake_anthropic.queue("not json at all")
    assistant = ScheduleAssistant(client=fake_anthropic)

    with pytest.raises(AssistantResponseError):
        assistant.complete([ChatMessage(role="user", content="hi")], [], [])


def test_missing_api_key(monkeypatch):
    from coursebuddy.config import settings

    monkeypatch.setattr(settings, "anthropic_api_key", None)
    with pytest.raises(RuntimeError, match="not configured"):
        ScheduleAssistant()
