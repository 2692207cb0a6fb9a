# tests/test_api_today.py

import pytest

DAY = "2026-03-10"


def _today(client):
    resp = client.get(f"/api/today?date={DAY}")
    assert resp.status_code == 200
    return resp.get_json()["data"]


def _logs(client):
    return client.get("/api/logs?limit=50").get_json()["data"]


def test_first_visit_seeds_default_template(onboarded):
    today = _today(onboarded)
    assert today["origin"] == "defaulted"
    assert [row["item"]["name"] for row in today["items"]] == ["Bench", "Row", "Squat"]
    assert today["run"] == {"type": "Easy", "distance": 5}
    assert today["progress"] == 0
    assert today["undo"] is None

    # segunda visita: mismos ids
    again = _today(onboarded)
    assert [r["item"]["id"] for r in again["items"]] == [r["item"]["id"] for r in today["items"]]


def test_complete_then_undo_keeps_flag(onboarded):
    bench_id = _today(onboarded)["items"][0]["item"]["id"]

    resp = onboarded.post(f"/api/today/strength/{bench_id}/complete?date={DAY}")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["logged"]["exercise"] == "Bench"
    assert data["logged"]["date"] == DAY
    assert data["today"]["progress"] == 25
    assert data["today"]["undo"]["entry_id"] == data["logged"]["id"]
    assert len(_logs(onboarded)) == 1

    resp = onboarded.post("/api/today/undo")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["undone"] is True
    assert _logs(onboarded) == []

    today = _today(onboarded)
    assert today["items"][0]["done"] is True
    assert today["undo"] is None

    assert onboarded.post("/api/today/undo").status_code == 409


def test_completing_twice_logs_once(onboarded):
    row_id = _today(onboarded)["items"][1]["item"]["id"]
    onboarded.post(f"/api/today/strength/{row_id}/complete?date={DAY}")
    second = onboarded.post(f"/api/today/strength/{row_id}/complete?date={DAY}")
    assert second.get_json()["data"]["logged"] is None
    assert len(_logs(onboarded)) == 1


def test_unknown_item_is_404(onboarded):
    _today(onboarded)
    assert onboarded.post(f"/api/today/strength/zzz/complete?date={DAY}").status_code == 404


def test_bad_date_is_400(onboarded):
    assert onboarded.get("/api/today?date=10/03/2026").status_code == 400


def test_complete_run_logs_distance(onboarded):
    resp = onboarded.post(f"/api/today/run/complete?date={DAY}")
    logged = resp.get_json()["data"]["logged"]
    assert logged["type"] == "run"
    assert (logged["runType"], logged["distance"], logged["duration"]) == ("Easy", 5, 45)
    assert logged["session"] == "Solo"


def test_complete_all_is_idempotent(onboarded):
    first = onboarded.post(f"/api/today/complete-all?date={DAY}").get_json()["data"]
    assert len(first["logged"]) == 4
    assert first["today"]["progress"] == 100
    second = onboarded.post(f"/api/today/complete-all?date={DAY}").get_json()["data"]
    assert second["logged"] == []
    assert len(_logs(onboarded)) == 4


def test_logged_entry_marks_checklist(onboarded):
    _today(onboarded)
    onboarded.post("/api/logs", json={"type": "strength", "date": DAY, "exercise": "Squat", "sets": 5, "reps": 3})
    today = _today(onboarded)
    assert [r["done"] for r in today["items"]] == [False, False, True]


def test_skip_counts_progress_without_logging(onboarded):
    resp = onboarded.post(f"/api/today/skip?date={DAY}", json={"run": True})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["run_done"] is True
    assert resp.get_json()["data"]["progress"] == 25
    assert _logs(onboarded) == []


def test_draft_edit_and_commit(onboarded):
    today = _today(onboarded)
    bench_id = today["items"][0]["item"]["id"]

    assert onboarded.post(f"/api/today/draft?date={DAY}").status_code == 201
    added = onboarded.post("/api/today/draft/items", json={"name": "Pull Up", "sets": 3, "reps": 10})
    assert added.status_code == 201
    assert onboarded.delete(f"/api/today/draft/items/{bench_id}").status_code == 200
    onboarded.put("/api/today/draft/run", json={"run": {"type": "Tempo", "distance": 6}})

    # sin confirmar, la plantilla no cambia
    assert _today(onboarded)["origin"] == "defaulted"

    resp = onboarded.post(f"/api/today/draft/commit?date={DAY}")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["origin"] == "edited"
    assert [r["item"]["name"] for r in data["items"]] == ["Row", "Squat", "Pull Up"]
    assert data["run"] == {"type": "Tempo", "distance": 6.0}
    assert onboarded.get("/api/today/draft").get_json()["data"] is None


def test_draft_routes_need_open_draft(onboarded):
    assert onboarded.post("/api/today/draft/items", json={"name": "X"}).status_code == 404
    assert onboarded.post(f"/api/today/draft/commit?date={DAY}").status_code == 404


def test_draft_move_validates_direction(onboarded):
    _today(onboarded)
    draft = onboarded.post(f"/api/today/draft?date={DAY}").get_json()["data"]
    row_id = draft["strength"][1]["id"]
    assert onboarded.post(f"/api/today/draft/items/{row_id}/move", json={"direction": 2}).status_code == 400
    moved = onboarded.post(f"/api/today/draft/items/{row_id}/move", json={"direction": -1}).get_json()["data"]
    assert moved["moved"] is True
    assert moved["draft"]["strength"][0]["name"] == "Row"


def test_apply_week_day_resets_flags(onboarded):
    onboarded.post(f"/api/today/complete-all?date={DAY}")
    resp = onboarded.post(f"/api/today/apply?date={DAY}", json={"source": "week", "week": 1, "weekday": 2})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["origin"] == "applied"
    assert data["source"] == "week"
    assert [r["item"]["name"] for r in data["items"]] == ["Squat", "Hip Thrust", "Back Extension"]
    assert data["run"] is None
    assert data["progress"] == 0


def test_apply_text_without_run_blocks_run_completion(onboarded):
    resp = onboarded.post(f"/api/today/apply?date={DAY}", json={"source": "text", "text": "Bench 3x5\nRow 3x8"})
    assert resp.get_json()["data"]["source"] == "legacy"
    assert onboarded.post(f"/api/today/run/complete?date={DAY}").status_code == 409


def test_apply_text_with_overflowing_distance(onboarded):
    resp = onboarded.post(f"/api/today/apply?date={DAY}", json={"source": "text", "text": "Easy " + "9" * 400 + " mi"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["run"] is None


def test_apply_structured_plan(onboarded):
    plan = {"strength": [{"name": "Squat", "sets": 5, "reps": 3}], "run": {"type": "Long", "distance": 20, "unit": "km"}}
    data = onboarded.post(f"/api/today/apply?date={DAY}", json={"source": "structured", "plan": plan}).get_json()["data"]
    assert data["source"] == "structured"
    assert data["run"] == {"type": "Long", "distance": 12.0}


def test_apply_default_grid(onboarded):
    data = onboarded.post(f"/api/today/apply?date={DAY}", json={"source": "grid"}).get_json()["data"]
    assert data["items"][0]["item"] == {"id": data["items"][0]["item"]["id"],
                                        "name": "Upper (Bench/Row), easy 4", "sets": 4, "reps": 8}
    assert data["run"] == {"type": "Long", "distance": 14.0}


@pytest.mark.parametrize("body,status", [
    ({"source": "nope"}, 400),
    ({"source": "week", "week": 17}, 400),
    ({"source": "version", "id": "missing"}, 404),
    ({"source": "grid", "grid": {"days": "x"}}, 400),
])
def test_apply_rejects_bad_sources(onboarded, body, status):
    assert onboarded.post(f"/api/today/apply?date={DAY}", json=body).status_code == status


def test_apply_saved_version(onboarded):
    version = onboarded.post("/api/plan/versions", json={"content": "Deadlift 3x5\nEasy 4 mi"}).get_json()["data"]
    data = onboarded.post(f"/api/today/apply?date={DAY}",
                          json={"source": "version", "id": version["id"]}).get_json()["data"]
    assert [r["item"]["name"] for r in data["items"]] == ["Deadlift"]
    assert data["run"] == {"type": "Easy", "distance": 4.0}
