# tests/test_api_plan_logs.py

def test_plan_overview(onboarded):
    resp = onboarded.get("/api/plan")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert len(data["weeks"]) == 16
    assert data["weeks"][0]["weekly_distance"] == 35
    assert 1 <= data["current_week"] <= 16
    assert data["notes"] == [""] * 16
    assert data["no_deadlift"] is True
    assert all("Deadlift" not in day for week in data["weeks"] for day in week["days"])


def test_plan_markdown_and_checklist(onboarded):
    md = onboarded.get("/api/plan/markdown")
    assert md.status_code == 200
    assert md.mimetype == "text/markdown"
    assert md.get_data(as_text=True).count("## Week ") == 16

    week = onboarded.get("/api/plan/weeks/2/checklist").get_data(as_text=True)
    assert week.startswith("### Week 2")
    assert onboarded.get("/api/plan/weeks/0/checklist").status_code == 404


def test_paces(onboarded):
    data = onboarded.get("/api/plan/paces?goal=3:00:00").get_json()["data"]
    assert data["mp"] == "6:52/mi"
    assert data["unit"] == "mi"
    blank = onboarded.get("/api/plan/paces?goal=abc").get_json()["data"]
    assert blank["mp"] == ""


def test_week_grid(onboarded):
    grid = onboarded.get("/api/plan/week-grid").get_json()["data"]
    assert [d["name"] for d in grid["days"]] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def test_add_and_list_logs(onboarded):
    resp = onboarded.post("/api/logs", json={"type": "wellness", "date": "2026-03-09", "sleep": "7.5", "calories": "abc"})
    assert resp.status_code == 201
    entry = resp.get_json()["data"]
    assert entry["sleep"] == 7.5 and entry["calories"] == 0

    onboarded.post("/api/logs", json={"type": "run", "date": "2026-03-10", "distance": 3})
    runs = onboarded.get("/api/logs?type=run").get_json()["data"]
    assert [e["type"] for e in runs] == ["run"]
    latest = onboarded.get("/api/logs?limit=1").get_json()["data"]
    assert latest[0]["date"] == "2026-03-10"


def test_add_log_with_non_finite_number(onboarded):
    resp = onboarded.post("/api/logs", json={"type": "wellness", "calories": "nan", "sleep": "inf"})
    assert resp.status_code == 201
    entry = resp.get_json()["data"]
    assert entry["calories"] == 0 and entry["sleep"] == 0


def test_add_log_validation(onboarded):
    assert onboarded.post("/api/logs", json={"type": "yoga"}).status_code == 400
    assert onboarded.post("/api/logs", data="x").status_code == 415


def test_weekly_summary(onboarded):
    onboarded.post("/api/logs", json={"type": "run", "date": "2026-01-01", "distance": 5})
    onboarded.post("/api/logs", json={"type": "run", "date": "2025-12-24", "distance": 3})
    onboarded.post("/api/logs", json={"type": "strength", "date": "2025-12-31", "exercise": "Back Squat", "sets": 5})

    data = onboarded.get("/api/logs/summary?date=2026-01-01").get_json()["data"]
    assert data["summary"] == {"strength_sets": 5, "mileage": 5, "streak": 2}
    assert data["targets"] == {"strength_sets": 24, "mileage": 35}
    assert data["unit"] == "mi"
    assert len(data["recent"]) == 3
    assert onboarded.get("/api/logs/summary?date=yesterday").status_code == 400


def test_exercises_with_suggestions(onboarded):
    onboarded.post("/api/logs", json={"type": "strength", "date": "2026-03-10", "exercise": "Bench Press",
                                      "sets": 5, "reps": 5, "weight": 135})
    data = onboarded.get("/api/logs/exercises").get_json()["data"]
    by_name = {e["name"]: e for e in data}
    assert "Deadlift" not in by_name
    assert by_name["Bench Press"]["suggested"] == 137.5
    assert by_name["Back Squat"]["suggested"] == 45
    assert by_name["Back Squat"]["unit"] == "lb"


def test_cli_plan_commands(app, onboarded):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["plan", "paces", "3:00:00"])
    assert result.exit_code == 0
    assert "MP  6:52/mi" in result.output

    result = runner.invoke(args=["plan", "show", "--week", "16"])
    assert result.exit_code == 0
    assert result.output.startswith("### Week 16")

    assert runner.invoke(args=["plan", "paces", "fast"]).exit_code != 0
