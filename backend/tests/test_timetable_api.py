import json
import os

import pytest

from timetabler.core.config import Settings, get_settings
from timetabler.main import app


def _create_subject(client, code, schedules, tutorials=()):
    response = client.post(
        "/api/subjects/",
        json={"code": code, "name": f"Subject {code}", "schedules": schedules, "tutorials": list(tutorials)},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
def subjects(client):
    cs = _create_subject(
        client,
        "CS101",
        [
            {"type": "lecture", "day_of_week": 1, "start_time": "09:00", "end_time": "10:30", "venue": "Room A101"},
            {"type": "lab", "day_of_week": 5, "start_time": "14:00", "end_time": "16:00", "venue": "Computer Lab 1"},
        ],
        [{"group_name": "Tutorial Group A", "day_of_week": 2, "start_time": "13:00", "end_time": "14:00", "venue": "Room A105"}],
    )
    math = _create_subject(
        client,
        "MATH201",
        [{"type": "lecture", "day_of_week": 1, "start_time": "10:00", "end_time": "11:30", "venue": "Room A101"}],
    )
    return cs, math


def _start_session(client, subjects, **extra):
    cs, math = subjects
    payload = {"selections": [{"subject_id": cs["id"]}, {"subject_id": math["id"]}], **extra}
    response = client.post("/api/timetable/sessions", json=payload)
    assert response.status_code == 201
    return response.json()


def _slot_id(slots, code, kind):
    return next(slot["id"] for slot in slots if slot["subject_code"] == code and slot["kind"] == kind)


def test_create_session_unplaces_both_sides_of_a_clash(client, subjects):
    state = _start_session(client, subjects)

    assert state["name"] == "My Timetable"
    assert [(slot["subject_code"], slot["kind"]) for slot in state["displayed"]] == [("CS101", "lab")]
    assert [(slot["subject_code"], slot["kind"]) for slot in state["unplaced"]] == [
        ("CS101", "lecture"),
        ("MATH201", "lecture"),
    ]
    assert [slot["id"] for slot in state["non_conflicting"]] == [state["displayed"][0]["id"]]

    clash = state["clashes"][0]
    assert len(state["clashes"]) == 1
    assert clash["kind"] == "venue"
    assert clash["subject_codes"] == ["CS101", "MATH201"]
    assert clash["message"] == "CS101 (lecture) and MATH201 (lecture) clash in venue Room A101 for 30 minutes."
    assert clash["severity"] == "error"
    assert clash["overlap_minutes"] == 30
    assert (clash["start_time"], clash["end_time"]) == ("10:00", "10:30")
    assert set(clash["slot_ids"]) == {slot["id"] for slot in state["unplaced"]}


def test_place_displays_slot_and_keeps_clash(client, subjects):
    state = _start_session(client, subjects)
    math_slot = _slot_id(state["unplaced"], "MATH201", "lecture")
    cs_lecture = _slot_id(state["unplaced"], "CS101", "lecture")

    response = client.post(f"/api/timetable/sessions/{state['session_id']}/place", json={"slot_id": math_slot})
    assert response.status_code == 200
    placed = response.json()
    assert [slot["id"] for slot in placed["unplaced"]] == [cs_lecture]
    assert math_slot in [slot["id"] for slot in placed["displayed"]]
    assert math_slot not in [slot["id"] for slot in placed["non_conflicting"]]
    assert len(placed["clashes"]) == 1
    assert placed["revision"] == state["revision"] + 1


def test_replace_drops_counterpart(client, subjects):
    state = _start_session(client, subjects)
    session_id = state["session_id"]
    math_slot = _slot_id(state["unplaced"], "MATH201", "lecture")
    cs_lecture = _slot_id(state["unplaced"], "CS101", "lecture")

    response = client.post(
        f"/api/timetable/sessions/{session_id}/replace",
        json={"slot_id": math_slot, "conflicting_slot_id": cs_lecture},
    )
    assert response.status_code == 200
    replaced = response.json()
    assert [slot["id"] for slot in replaced["dropped"]] == [cs_lecture]
    assert [(slot["subject_code"], slot["kind"]) for slot in replaced["displayed"]] == [
        ("CS101", "lab"),
        ("MATH201", "lecture"),
    ]
    assert replaced["unplaced"] == []
    assert replaced["clashes"] == []
    assert len(replaced["non_conflicting"]) == 2


def test_replace_rejects_non_clashing_pair(client, subjects):
    state = _start_session(client, subjects)
    math_slot = _slot_id(state["unplaced"], "MATH201", "lecture")
    cs_lab = _slot_id(state["displayed"], "CS101", "lab")

    response = client.post(
        f"/api/timetable/sessions/{state['session_id']}/replace",
        json={"slot_id": math_slot, "conflicting_slot_id": cs_lab},
    )
    assert response.status_code == 409
    assert response.json()["details"] == {"slot_id": math_slot, "conflicting_slot_id": cs_lab}

    after = client.get(f"/api/timetable/sessions/{state['session_id']}").json()
    assert after["revision"] == state["revision"]
    assert [slot["id"] for slot in after["unplaced"]] == [slot["id"] for slot in state["unplaced"]]
    assert after["dropped"] == []


def test_unknown_slot_returns_not_found(client, subjects):
    state = _start_session(client, subjects)
    response = client.post(f"/api/timetable/sessions/{state['session_id']}/place", json={"slot_id": "nope"})
    assert response.status_code == 404
    assert response.json()["details"] == {"slot_id": "nope", "expected_in": "unplaced"}

    cs_lab = _slot_id(state["displayed"], "CS101", "lab")
    response = client.post(f"/api/timetable/sessions/{state['session_id']}/remove", json={"slot_id": cs_lab})
    assert response.status_code == 404


def test_remove_is_undone_by_regenerate(client, subjects):
    state = _start_session(client, subjects)
    session_id = state["session_id"]
    math_slot = _slot_id(state["unplaced"], "MATH201", "lecture")
    cs_lecture = _slot_id(state["unplaced"], "CS101", "lecture")

    removed = client.post(f"/api/timetable/sessions/{session_id}/remove", json={"slot_id": math_slot}).json()
    assert [slot["id"] for slot in removed["unplaced"]] == [cs_lecture]
    assert removed["clashes"] == []
    assert [slot["id"] for slot in removed["dropped"]] == [math_slot]

    regenerated = client.post(f"/api/timetable/sessions/{session_id}/regenerate").json()
    assert [slot["subject_code"] for slot in regenerated["unplaced"]] == ["CS101", "MATH201"]
    assert regenerated["dropped"] == []


def test_place_all_and_remove_all(client, subjects):
    state = _start_session(client, subjects)
    session_id = state["session_id"]

    placed = client.post(f"/api/timetable/sessions/{session_id}/place-all").json()
    assert placed["unplaced"] == []
    assert len(placed["displayed"]) == 3
    assert len(placed["clashes"]) == 1

    client.post(f"/api/timetable/sessions/{session_id}/regenerate")
    removed = client.post(f"/api/timetable/sessions/{session_id}/remove-all").json()
    assert removed["unplaced"] == []
    assert removed["clashes"] == []
    assert [slot["subject_code"] for slot in removed["dropped"]] == ["CS101", "MATH201"]
    assert [(slot["subject_code"], slot["kind"]) for slot in removed["displayed"]] == [("CS101", "lab")]


def test_resolutions_and_stats(client, subjects):
    state = _start_session(client, subjects)
    session_id = state["session_id"]
    cs_lecture = _slot_id(state["unplaced"], "CS101", "lecture")
    math_slot = _slot_id(state["unplaced"], "MATH201", "lecture")

    resolutions = client.get(f"/api/timetable/sessions/{session_id}/resolutions").json()
    assert len(resolutions) == 1
    options = resolutions[0]["options"]
    assert [option["action"] for option in options] == ["place", "replace", "remove"] * 2
    assert [option["slot_id"] for option in options] == [cs_lecture] * 3 + [math_slot] * 3
    assert options[1]["conflicting_slot_id"] == math_slot
    assert options[4]["conflicting_slot_id"] == cs_lecture

    stats = {item["subject_code"]: item for item in client.get(f"/api/timetable/sessions/{session_id}/stats").json()}
    assert (stats["CS101"]["total"], stats["CS101"]["conflicting"], stats["CS101"]["non_conflicting"]) == (2, 1, 1)
    assert (stats["MATH201"]["total"], stats["MATH201"]["conflicting"], stats["MATH201"]["non_conflicting"]) == (1, 1, 0)


def test_chosen_tutorial_group_and_color(client, subjects):
    cs, _ = subjects
    group_id = cs["tutorials"][0]["id"]
    response = client.post(
        "/api/timetable/sessions",
        json={"name": "Semester 1", "selections": [{"subject_id": cs["id"], "chosen_group_id": group_id, "color": "#123456"}]},
    )
    assert response.status_code == 201
    state = response.json()
    assert state["name"] == "Semester 1"
    tutorial = next(slot for slot in state["displayed"] if slot["from_tutorial"])
    assert tutorial["group_name"] == "Tutorial Group A"
    assert {slot["color"] for slot in state["displayed"]} == {"#123456"}


def test_update_selections_rebuilds_state(client, subjects):
    cs, _ = subjects
    state = _start_session(client, subjects)
    session_id = state["session_id"]

    response = client.put(
        f"/api/timetable/sessions/{session_id}/selections",
        json={"selections": [{"subject_id": cs["id"]}]},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["unplaced"] == []
    assert updated["clashes"] == []
    assert len(updated["displayed"]) == 2


def test_selection_validation(client, subjects):
    cs, _ = subjects
    duplicate = {"selections": [{"subject_id": cs["id"]}, {"subject_id": cs["id"]}]}
    assert client.post("/api/timetable/sessions", json=duplicate).status_code == 422

    too_many = {"selections": [{"subject_id": f"subject-{index}"} for index in range(13)]}
    assert client.post("/api/timetable/sessions", json=too_many).status_code == 422

    bad_color = {"selections": [{"subject_id": cs["id"], "color": "purple"}]}
    assert client.post("/api/timetable/sessions", json=bad_color).status_code == 422


def test_unknown_subjects_are_skipped(client):
    response = client.post("/api/timetable/sessions", json={"selections": [{"subject_id": "missing"}]})
    assert response.status_code == 201
    state = response.json()
    assert state["displayed"] == []
    assert state["clashes"] == []


def test_missing_and_deleted_sessions(client, subjects):
    assert client.get("/api/timetable/sessions/does-not-exist").status_code == 404

    state = _start_session(client, subjects)
    session_id = state["session_id"]
    assert client.delete(f"/api/timetable/sessions/{session_id}").json() == {"success": True}
    assert client.get(f"/api/timetable/sessions/{session_id}").status_code == 404


def _write_catalog(path, subject_id, start, end):
    path.write_text(
        json.dumps(
            [
                {
                    "id": subject_id,
                    "code": "ENG105",
                    "name": "Academic Writing",
                    "schedules": [
                        {"id": "eng-lec", "type": "lecture", "day_of_week": 1, "start_time": start, "end_time": end, "venue": "Room C301"}
                    ],
                }
            ]
        ),
        encoding="utf-8",
    )


def test_file_catalog_long_ids_and_reload(client, tmp_path):
    subject_id = "english-department/academic-writing-105-fall"
    assert len(subject_id) > 36
    path = tmp_path / "catalog.json"
    _write_catalog(path, subject_id, "14:00", "15:30")
    app.dependency_overrides[get_settings] = lambda: Settings(catalog_file=str(path))

    response = client.post("/api/timetable/sessions", json={"selections": [{"subject_id": subject_id}]})
    assert response.status_code == 201
    state = response.json()
    assert [(slot["subject_id"], slot["start_time"]) for slot in state["displayed"]] == [(subject_id, "14:00")]

    _write_catalog(path, subject_id, "16:00", "17:30")
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

    regenerated = client.post(f"/api/timetable/sessions/{state['session_id']}/regenerate").json()
    assert [slot["start_time"] for slot in regenerated["displayed"]] == ["16:00"]
