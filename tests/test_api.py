import json

from coursebuddy.config import settings


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == settings.app_name


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


# =============================================================================
# Catalog
# =============================================================================

def test_fetch_courses_from_cache(client):
    response = client.post("/functions/fetch-courses", json={"term": "2025W"})
    assert response.status_code == 200
    body = response.json()
    assert body["cached"] is True
    assert len(body["courses"]) == 18
    assert body["courses"][0]["course_code"] == "COMM 101"


def test_fetch_courses_refresh(client):
    response = client.post("/functions/fetch-courses", json={"refresh": True, "subjects": ["COMM"]})
    assert response.status_code == 200
    assert response.json()["cached"] is False


def test_fetch_courses_is_rate_limited(client):
    for _ in range(10):
        assert client.post("/functions/fetch-courses", json={"refresh": True}).status_code == 200

    response = client.post("/functions/fetch-courses", json={"refresh": True})
    assert response.status_code == 429
    assert "error" in response.json()


def test_search_courses(client):
    response = client.get("/courses", params={"q": "business"})
    assert response.status_code == 200
    codes = {c["course_code"] for c in response.json()}
    assert "COMM 101" in codes


def test_sections_by_type(client):
    response = client.get("/courses/COMM 101/sections")
    assert response.status_code == 200
    sections = response.json()["sections"]
    assert [s["section"] for s in sections["Lecture"]] == ["101", "102"]
    assert [s["section"] for s in sections["Lab"]] == ["L1A"]


# =============================================================================
# Stateless assistant and issue reports
# =============================================================================

def test_optimize_schedule(client, fake_anthropic):
    fake_anthropic.queue(json.dumps({
        "response": "Switch to 102.",
        "changes": [{"courseCode": "COMM 101", "oldSection": "101", "newSection": "102", "reason": "Fits better"}],
    }))

    response = client.post("/functions/optimize-schedule-ai", json={
        "messages": [{"role": "user", "content": "Any better lecture?"}],
        "selectedCourses": [{"course_code": "COMM 101", "section": "101"}],
        "allCourses": [],
    })

    assert response.status_code == 200
    assert response.json()["changes"][0]["newSection"] == "102"


def test_optimize_schedule_error_envelope(client, fake_anthropic):
    fake_anthropic.queue("nope")

    response = client.post("/functions/optimize-schedule-ai", json={
        "messages": [{"role": "user", "content": "hi"}],
    })

    assert response.status_code == 500
    body = response.json()
    assert body["response"] == "Sorry, I encountered an error. Please try again."
    assert body["changes"] == []
    assert body["error"]


def test_report_issue(client, sent_emails, monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    monkeypatch.setattr(settings, "issue_report_recipient", "maintainers@example.com")

    response = client.post("/functions/report-issue", json={
        "name": "Sam", "email": "sam@example.com", "issue": "Undo does nothing",
    })

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(sent_emails) == 1


def test_report_issue_validation(client, sent_emails):
    response = client.post("/functions/report-issue", json={"name": "Sam", "email": "bad", "issue": "x"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email address"}
    assert sent_emails == []


# =============================================================================
# Planner
# =============================================================================

def select(client, code, section):
    return client.post("/planner/selection", json={"course_code": code, "section": section})


def test_planner_flow(client):
    assert client.get("/planner").json()["schedule"] == []

    assert select(client, "COMM 101", "101").status_code == 200
    assert select(client, "COMM 101", "L1A").status_code == 200

    duplicate = select(client, "COMM 101", "102")
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "COMM 101 already has a Lecture: Section 101"

    generated = client.post("/planner/generate").json()
    assert {b["id"] for b in generated["schedule"]} == {
        "COMM 101-101-MON-09:00", "COMM 101-101-WED-09:00", "COMM 101-L1A-FRI-13:00",
    }
    assert generated["notice"]["message"] == "Schedule generated successfully!"

    removed = client.request("DELETE", "/planner/selection", json={"course_code": "COMM 101", "course_type": "Lab"})
    assert len(removed.json()["schedule"]) == 2
    assert removed.json()["can_undo"] is True

    undone = client.post("/planner/undo").json()
    assert len(undone["schedule"]) == 3
    assert undone["can_redo"] is True

    redone = client.post("/planner/redo").json()
    assert len(redone["schedule"]) == 2


def test_unknown_section_is_404(client):
    assert select(client, "COMM 101", "999").status_code == 404


def test_generate_without_selection(client):
    response = client.post("/planner/generate")
    assert response.status_code == 400
    assert response.json()["detail"] == "Please add at least one course"


def test_drag_and_drop(client):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")

    started = client.post("/planner/drag/start", json={"block_id": "COMM 101-101-MON-09:00"})
    assert started.status_code == 200
    targets = {(c["day"], c["time"]) for c in started.json()["valid_targets"]}
    assert targets == {("MON", "09:00"), ("WED", "09:00"), ("TUE", "11:00"), ("THU", "11:00")}

    grid = client.get("/planner/grid").json()
    eleven = next(row for row in grid if row["time"] == "11:00")
    assert next(c for c in eleven["cells"] if c["day"] == "TUE")["valid_drop"] is True

    dropped = client.post("/planner/drag/drop", json={"day": "TUE", "time": "11:00"}).json()
    assert dropped["notice"]["message"] == "Switched to section 102"
    assert {b["section"] for b in dropped["schedule"]} == {"102"}


def test_drop_on_invalid_cell(client):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")
    client.post("/planner/drag/start", json={"block_id": "COMM 101-101-MON-09:00"})

    dropped = client.post("/planner/drag/drop", json={"day": "FRI", "time": "08:00"}).json()

    assert dropped["notice"] is None
    assert dropped["drag_state"] == "idle"
    assert {b["section"] for b in dropped["schedule"]} == {"101"}


def test_clear_during_drag(client):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")
    client.post("/planner/drag/start", json={"block_id": "COMM 101-101-MON-09:00"})

    cleared = client.post("/planner/clear").json()
    assert cleared["drag_state"] == "idle"

    grid = client.get("/planner/grid").json()
    assert not any(cell["valid_drop"] for row in grid for cell in row["cells"])
    assert client.post("/planner/drag/drop", json={"day": "TUE", "time": "11:00"}).status_code == 409


def test_switch_term(client):
    response = client.post("/planner/term", json={"term": "2025W"})
    assert response.status_code == 200
    assert response.json()["notice"]["message"] == "Loaded 18 sections for 2025W"


def test_drop_without_drag(client):
    response = client.post("/planner/drag/drop", json={"day": "MON", "time": "09:00"})
    assert response.status_code == 409


def test_planner_chat(client, fake_anthropic):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")
    fake_anthropic.queue(json.dumps({
        "response": "Moved you to section 102.",
        "changes": [{"courseCode": "COMM 101", "oldSection": "101", "newSection": "102", "reason": "No Mondays"}],
    }))

    response = client.post("/planner/chat", json={"message": "No Monday classes please"})

    assert response.status_code == 200
    body = response.json()
    assert body["reply"]["content"] == "Moved you to section 102."
    assert {b["section"] for b in body["state"]["schedule"]} == {"102"}
    assert [m["role"] for m in body["state"]["messages"]] == ["user", "assistant"]


def test_planner_chat_bad_reply(client, fake_anthropic):
    fake_anthropic.queue("not json")

    response = client.post("/planner/chat", json={"message": "hello"})

    assert response.status_code == 502
    assert client.get("/planner").json()["messages"] == []


def test_planner_chat_unavailable(client):
    from coursebuddy.api import deps
    from coursebuddy.api.main import app

    app.dependency_overrides[deps.get_schedule_assistant] = lambda: None
    response = client.post("/planner/chat", json={"message": "hello"})
    assert response.status_code == 503


# =============================================================================
# Saved schedules
# =============================================================================

def test_save_list_and_load(client):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")

    saved = client.post("/schedules", json={"name": "  Term 1  "})
    assert saved.status_code == 200
    assert saved.json() == {"name": "Term 1", "blocks_saved": 2, "message": 'Schedule "Term 1" saved successfully!'}

    listed = client.get("/schedules").json()
    assert [(s["name"], s["course_count"]) for s in listed] == [("Term 1", 2)]

    client.post("/planner/clear")
    loaded = client.post("/schedules/Term 1/load").json()
    assert loaded["schedule_name"] == "Term 1"
    assert len(loaded["schedule"]) == 2
    assert loaded["can_undo"] is False
    assert [e["course"]["section"] for e in loaded["selection"]] == ["101"]


def test_save_explicit_blocks_and_latest(client):
    blocks = [{"name": "COMM 196", "section": "101", "day": "TUE", "time": "10:00", "status": "Open", "color": "green"}]
    assert client.post("/schedules", json={"name": "Draft", "blocks": blocks}).status_code == 200

    latest = client.post("/schedules/latest").json()
    assert latest["schedule_name"] == "Draft"
    assert latest["schedule"][0]["id"] == "COMM 196-101-TUE-10:00"


def test_save_rejects_malformed_blocks(client):
    block = {"name": "COMM 196", "section": "101", "day": "TUE", "time": "10:00", "status": "Open", "color": "green"}

    for bad in ({"day": "SAT"}, {"time": "10am"}, {"name": "X" * 21}, {"section": "L" * 11}, {"color": "c" * 21}):
        response = client.post("/schedules", json={"name": "Draft", "blocks": [{**block, **bad}]})
        assert response.status_code == 422

    assert client.get("/schedules").json() == []


def test_loading_a_schedule_needs_post(client):
    assert client.get("/schedules/Term 1").status_code == 405


def test_save_requires_name(client):
    response = client.post("/schedules", json={"name": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a schedule name"


def test_load_missing_schedule(client):
    assert client.post("/schedules/Nope/load").status_code == 404
    assert client.post("/schedules/latest").status_code == 404


def test_delete_schedule(client):
    select(client, "COMM 101", "101")
    client.post("/planner/generate")
    client.post("/schedules", json={"name": "Temp"})

    assert client.delete("/schedules/Temp").json() == {"deleted": 2}
    assert client.delete("/schedules/Temp").status_code == 404
