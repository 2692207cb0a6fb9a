from datetime import datetime, timedelta

import pytest
from force3.services import today as engine
from force3.services.profile import Profile
from force3.services.training_log import RunLog, StrengthLog, TrainingLog

DAY = "2026-03-10"


@pytest.fixture
def template():
    return engine.default_template(Profile())


@pytest.fixture
def logs():
    return TrainingLog()


def _fresh(template):
    return engine.TodayDone(strength={it.id: False for it in template.strength})


def test_default_template():
    t = engine.default_template(Profile())
    assert [(i.name, i.sets, i.reps) for i in t.strength] == [("Bench", 5, 5), ("Row", 4, 8), ("Squat", 5, 3)]
    assert t.run == engine.TodayRun("Easy", 5)
    assert t.origin == "defaulted"
    assert engine.default_template(Profile(double_runs=True)).run.distance == 4


def test_ensure_template_seeds_only_once(template):
    seeded, was_seeded = engine.ensure_template(None, Profile())
    assert was_seeded and seeded.origin == "defaulted"
    same, was_seeded = engine.ensure_template(template, Profile())
    assert same is template and not was_seeded


def test_complete_appends_one_log_and_flips_one_flag(template, logs):
    done = _fresh(template)
    bench = template.strength[0]
    entry = engine.complete_strength(template, done, logs, bench.id, DAY)

    assert len(logs) == 1
    assert isinstance(entry, StrengthLog)
    assert (entry.exercise, entry.sets, entry.reps, entry.date) == ("Bench", 5, 5, DAY)
    assert done.is_done(bench.id)
    assert [done.is_done(i.id) for i in template.strength] == [True, False, False]

    # ya hecho: no vuelve a registrar
    assert engine.complete_strength(template, done, logs, bench.id, DAY) is None
    assert len(logs) == 1


def test_complete_unknown_item_raises(template, logs):
    with pytest.raises(KeyError):
        engine.complete_strength(template, _fresh(template), logs, "nope", DAY)


def test_complete_run_fields(template, logs):
    done = _fresh(template)
    entry = engine.complete_run(template, done, logs, Profile(), DAY)
    assert isinstance(entry, RunLog)
    assert (entry.run_type, entry.session, entry.distance) == ("Easy", "Solo", 5)
    assert entry.duration == 45
    assert entry.pace == "9:00"
    assert done.run

    doubles = engine.default_template(Profile(double_runs=True))
    am = engine.complete_run(doubles, _fresh(doubles), TrainingLog(), Profile(double_runs=True), DAY)
    assert am.session == "AM" and am.duration == 36


def test_undo_removes_log_but_keeps_flag(template, logs):
    done = _fresh(template)
    item = template.strength[1]
    now = datetime(2026, 3, 10, 12, 0, 0)
    entry = engine.complete_strength(template, done, logs, item.id, DAY)
    ticket = engine.issue_undo(entry.id, entry.type, DAY, now=now)

    assert engine.undo(ticket, logs, now=now + timedelta(seconds=3)) is True
    assert len(logs) == 0
    assert done.is_done(item.id)


def test_undo_after_window_does_nothing(template, logs):
    done = _fresh(template)
    now = datetime(2026, 3, 10, 12, 0, 0)
    entry = engine.complete_strength(template, done, logs, template.strength[0].id, DAY)
    ticket = engine.issue_undo(entry.id, entry.type, DAY, now=now)

    assert engine.undo(ticket, logs, now=now + timedelta(seconds=7)) is False
    assert len(logs) == 1
    assert engine.undo(None, logs) is False


def test_undo_ticket_roundtrip():
    ticket = engine.issue_undo("abc", "run", DAY, now=datetime(2026, 3, 10, 8, 0, 0))
    assert engine.UndoTicket.from_dict(ticket.to_dict()) == ticket
    assert engine.UndoTicket.from_dict({"entry_id": "x"}) is None


def test_undo_window_uses_local_clock():
    ticket = engine.issue_undo("abc", "run", DAY)
    assert ticket.is_valid()
    assert not ticket.is_valid(datetime.now() + timedelta(seconds=7))


def test_mark_all_done_is_idempotent(template, logs):
    done = _fresh(template)
    first = engine.mark_all_done(template, done, logs, Profile(), DAY)
    assert len(first) == 4
    assert engine.progress_pct(template, done) == 100

    second = engine.mark_all_done(template, done, logs, Profile(), DAY)
    assert second == []
    assert len(logs) == 4


def test_reconcile_is_union_with_logs(template, logs):
    done = _fresh(template)
    logs.add(StrengthLog(id="l1", date=DAY, exercise="Row", sets=4))
    logs.add(StrengthLog(id="l2", date="2026-03-09", exercise="Squat", sets=5))
    logs.add(StrengthLog(id="l3", date=DAY, exercise="Bench", completed=False))

    merged = engine.reconcile(template, done, logs, DAY)
    assert [merged.is_done(i.id) for i in template.strength] == [False, True, False]
    assert merged.run is False

    logs.add(RunLog(id="r1", date=DAY, distance=3))
    assert engine.reconcile(template, merged, logs, DAY).run is True


def test_reconcile_never_unmarks(template, logs):
    done = _fresh(template)
    done.strength[template.strength[2].id] = True
    done.run = True
    merged = engine.reconcile(template, done, logs, DAY)
    assert merged.is_done(template.strength[2].id)
    assert merged.run


def test_progress_counts_run(template):
    done = _fresh(template)
    done.strength[template.strength[0].id] = True
    assert engine.progress_pct(template, done) == 25

    no_run = engine.TodayTemplate(strength=template.strength, origin="edited")
    assert engine.progress_pct(no_run, done) == 33
    assert engine.progress_pct(engine.TodayTemplate(), engine.TodayDone()) == 0


def test_checklist_is_ordered_pairs(template):
    done = _fresh(template)
    done.strength[template.strength[1].id] = True
    rows = engine.checklist(template, done)
    assert [r["item"]["name"] for r in rows] == ["Bench", "Row", "Squat"]
    assert [r["done"] for r in rows] == [False, True, False]


def test_skip_marks_without_logging(template, logs):
    done = engine.skip(_fresh(template), item_id=template.strength[0].id)
    done = engine.skip(done, run=True)
    assert done.is_done(template.strength[0].id) and done.run
    assert len(logs) == 0
    assert engine.progress_pct(template, done) == 50


def test_draft_edits_only_apply_on_commit(template):
    draft = engine.begin_draft(template)
    squat = template.strength[2]
    added = engine.draft_add(draft, "Pull Up", 3, 10)
    assert engine.draft_remove(draft, template.strength[0].id)
    assert engine.draft_move(draft, squat.id, -1)
    assert not engine.draft_move(draft, squat.id, -1)
    engine.draft_update(draft, added.id, reps="12")
    engine.draft_set_run(draft, {"type": "Tempo", "distance": "6"})

    # la plantilla original no cambia hasta confirmar
    assert [i.name for i in template.strength] == ["Bench", "Row", "Squat"]

    committed = engine.commit_draft(draft)
    assert committed.origin == "edited"
    assert [i.name for i in committed.strength] == ["Squat", "Row", "Pull Up"]
    assert committed.item(added.id).reps == 12
    assert committed.run == engine.TodayRun("Tempo", 6.0)


def test_ids_survive_reorder(template):
    done = _fresh(template)
    done.strength[template.strength[0].id] = True
    draft = engine.begin_draft(template)
    engine.draft_move(draft, template.strength[0].id, 1)
    committed = engine.commit_draft(draft)
    assert [r["done"] for r in engine.checklist(committed, done)] == [False, True, False]


def test_apply_resets_flags_and_ids(template):
    template_new, done = engine.apply_template(
        [{"id": "keep", "name": "Deadlift", "sets": 3, "reps": 5}], {"type": "Long", "distance": 12}
    )
    assert template_new.origin == "applied"
    assert template_new.strength[0].id != "keep"
    assert done.strength == {template_new.strength[0].id: False}
    assert done.run is False
    assert template_new.run == engine.TodayRun("Long", 12.0)


def test_template_from_dict_tolerates_bad_input():
    assert engine.TodayTemplate.from_dict(None) == engine.TodayTemplate()
    t = engine.TodayTemplate.from_dict({"strength": [{"name": "", "sets": "x"}], "run": {}, "origin": "??"})
    assert t.strength[0].name == "Exercise"
    assert t.strength[0].sets == 3
    assert t.run is None
    assert t.origin == "edited"
