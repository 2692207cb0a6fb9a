# force3/routes/today_api.py
"""
Checklist de hoy.

Cada completado añade la entrada al registro, marca el flag y deja un
ticket de deshacer; las tres cosas se guardan en un solo commit.
"""
from datetime import date

from flask import Blueprint, current_app, jsonify, request

from force3.services import today as engine
from force3.services.app_state import (
    TODAY_DONE_KEY,
    TODAY_DRAFT_KEY,
    UNDO_KEY,
    current_state,
    onboarding_required,
    state_manager,
)
from force3.services.coach_gateway import CoachClient, CoachError
from force3.services.plan_generator import PLAN_WEEKS, generate_plan, week_index_for
from force3.services.plan_parser import (
    default_week_grid,
    parse_today,
    today_from_week_grid,
    today_from_week_plan,
    validate_week_grid,
)

today_bp = Blueprint("today_api", __name__, url_prefix="/api/today")


def _day() -> date:
    raw = (request.args.get("date") or "").strip()
    return date.fromisoformat(raw) if raw else date.today()


def _load(day: date):
    """
    Plantilla (sembrada si hace falta) y flags reconciliados con el registro.
    Persiste solo si algo cambió.
    """
    state = current_state()
    mgr = state_manager()
    date_iso = day.isoformat()

    template, seeded = engine.ensure_template(state.today, state.profile)
    stored = mgr.today_done(date_iso)
    done = engine.reconcile(template, stored, state.logs, date_iso)

    if seeded or done != stored:
        state.today = template
        mgr.save(state, today_done=mgr.today_done_doc(date_iso, done))
    return state, template, done


def _view(day: date, template: engine.TodayTemplate, done: engine.TodayDone):
    ticket = state_manager().undo_ticket()
    return {
        "date": day.isoformat(),
        "origin": template.origin,
        "items": engine.checklist(template, done),
        "run": template.run.to_dict() if template.run else None,
        "run_done": done.run,
        "progress": engine.progress_pct(template, done),
        "undo": ticket.to_dict() if ticket and ticket.is_valid() else None,
    }


def _bad_date():
    return jsonify({"error": "date debe ser YYYY-MM-DD"}), 400


def _commit_completion(day, state, done, entries):
    """Registro + flags + ticket del último completado, un solo commit."""
    mgr = state_manager()
    docs = {TODAY_DONE_KEY: mgr.today_done_doc(day.isoformat(), done)}
    if entries:
        last = entries[-1]
        docs[UNDO_KEY] = engine.issue_undo(last.id, last.type, day.isoformat()).to_dict()
    mgr.save(state, **docs)


@today_bp.get("")
@onboarding_required
def get_today():
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    _, template, done = _load(day)
    return jsonify({"data": _view(day, template, done)}), 200


# ---------- Completado ----------

@today_bp.post("/strength/<item_id>/complete")
@onboarding_required
def complete_strength(item_id):
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    state, template, done = _load(day)
    try:
        entry = engine.complete_strength(template, done, state.logs, item_id, day.isoformat())
    except KeyError:
        return jsonify({"error": "item no encontrado"}), 404
    entries = [entry] if entry else []
    _commit_completion(day, state, done, entries)
    return jsonify({"data": {
        "logged": entry.to_dict() if entry else None,
        "today": _view(day, template, done),
    }}), 200


@today_bp.post("/run/complete")
@onboarding_required
def complete_run():
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    state, template, done = _load(day)
    if template.run is None:
        return jsonify({"error": "no hay carrera programada"}), 409
    entry = engine.complete_run(template, done, state.logs, state.profile, day.isoformat())
    entries = [entry] if entry else []
    _commit_completion(day, state, done, entries)
    return jsonify({"data": {
        "logged": entry.to_dict() if entry else None,
        "today": _view(day, template, done),
    }}), 200


@today_bp.post("/complete-all")
@onboarding_required
def complete_all():
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    state, template, done = _load(day)
    entries = engine.mark_all_done(template, done, state.logs, state.profile, day.isoformat())
    _commit_completion(day, state, done, entries)
    return jsonify({"data": {
        "logged": [e.to_dict() for e in entries],
        "today": _view(day, template, done),
    }}), 200


@today_bp.post("/skip")
@onboarding_required
def skip():
    """Body JSON: {"item_id": "..."} o {"run": true}. Marca sin registrar."""
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    body = request.get_json(silent=True) or {}
    state, template, done = _load(day)
    item_id = body.get("item_id")
    if item_id is not None and template.item(item_id) is None:
        return jsonify({"error": "item no encontrado"}), 404
    done = engine.skip(done, item_id=item_id, run=bool(body.get("run")))
    mgr = state_manager()
    mgr.store.set(TODAY_DONE_KEY, mgr.today_done_doc(day.isoformat(), done))
    return jsonify({"data": _view(day, template, done)}), 200


@today_bp.post("/undo")
@onboarding_required
def undo():
    """
    Quita del registro la última entrada completada (ventana de 6 s).
    El flag de completado NO se revierte.
    """
    mgr = state_manager()
    ticket = mgr.undo_ticket()
    if ticket is None or not ticket.is_valid():
        return jsonify({"error": "undo_expired"}), 409
    state = current_state()
    removed = engine.undo(ticket, state.logs)
    mgr.save(state, **{UNDO_KEY: None})
    return jsonify({"data": {"undone": removed, "entry_id": ticket.entry_id}}), 200


# ---------- Borrador de edición ----------

def _draft_or_404():
    draft = state_manager().draft()
    if draft is None:
        return None, (jsonify({"error": "no hay borrador abierto"}), 404)
    return draft, None


@today_bp.get("/draft")
@onboarding_required
def get_draft():
    draft = state_manager().draft()
    return jsonify({"data": draft.to_dict() if draft else None}), 200


@today_bp.post("/draft")
@onboarding_required
def begin_draft():
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    _, template, _ = _load(day)
    draft = engine.begin_draft(template)
    state_manager().save_draft(draft)
    return jsonify({"data": draft.to_dict()}), 201


@today_bp.delete("/draft")
@onboarding_required
def discard_draft():
    state_manager().save_draft(None)
    return jsonify({"data": {"discarded": True}}), 200


@today_bp.post("/draft/items")
@onboarding_required
def draft_add_item():
    """Body JSON: {"name": "Bench", "sets": 3, "reps": 8, "suggested": 135}"""
    draft, err = _draft_or_404()
    if err:
        return err
    b = request.get_json(silent=True) or {}
    name = (b.get("name") or "").strip()
    if not name:
        return jsonify({"error": "name es obligatorio"}), 400
    item = engine.draft_add(draft, name, b.get("sets", 3), b.get("reps", 8), b.get("suggested"))
    state_manager().save_draft(draft)
    return jsonify({"data": {"item": item.to_dict(), "draft": draft.to_dict()}}), 201


@today_bp.patch("/draft/items/<item_id>")
@onboarding_required
def draft_update_item(item_id):
    draft, err = _draft_or_404()
    if err:
        return err
    item = engine.draft_update(draft, item_id, **(request.get_json(silent=True) or {}))
    if item is None:
        return jsonify({"error": "item no encontrado"}), 404
    state_manager().save_draft(draft)
    return jsonify({"data": draft.to_dict()}), 200


@today_bp.delete("/draft/items/<item_id>")
@onboarding_required
def draft_remove_item(item_id):
    draft, err = _draft_or_404()
    if err:
        return err
    if not engine.draft_remove(draft, item_id):
        return jsonify({"error": "item no encontrado"}), 404
    state_manager().save_draft(draft)
    return jsonify({"data": draft.to_dict()}), 200


@today_bp.post("/draft/items/<item_id>/move")
@onboarding_required
def draft_move_item(item_id):
    """Body JSON: {"direction": -1 | 1}"""
    draft, err = _draft_or_404()
    if err:
        return err
    direction = (request.get_json(silent=True) or {}).get("direction")
    if direction not in (-1, 1):
        return jsonify({"error": "direction debe ser -1 o 1"}), 400
    moved = engine.draft_move(draft, item_id, direction)
    if moved:
        state_manager().save_draft(draft)
    return jsonify({"data": {"moved": moved, "draft": draft.to_dict()}}), 200


@today_bp.put("/draft/run")
@onboarding_required
def draft_set_run():
    """Body JSON: {"run": {"type": "Easy", "distance": 5}} o {"run": null}"""
    draft, err = _draft_or_404()
    if err:
        return err
    engine.draft_set_run(draft, (request.get_json(silent=True) or {}).get("run"))
    state_manager().save_draft(draft)
    return jsonify({"data": draft.to_dict()}), 200


@today_bp.post("/draft/commit")
@onboarding_required
def commit_draft():
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    draft, err = _draft_or_404()
    if err:
        return err
    state = current_state()
    state.today = engine.commit_draft(draft)
    state_manager().save(state, **{TODAY_DRAFT_KEY: None})
    _, template, done = _load(day)
    return jsonify({"data": _view(day, template, done)}), 200


# ---------- Aplicar plantilla completa ----------

def _parsed_from_source(body, state, day):
    """ParsedToday según body["source"]; (None, respuesta) si hay error."""
    source = body.get("source")
    profile = state.profile
    unit = profile.units.distance

    if source == "week":
        week = body.get("week") or week_index_for(day) + 1
        weekday = body.get("weekday", day.weekday())
        if not isinstance(week, int) or not 1 <= week <= PLAN_WEEKS:
            return None, (jsonify({"error": "week debe estar entre 1 y 16"}), 400)
        if not isinstance(weekday, int) or not 0 <= weekday <= 6:
            return None, (jsonify({"error": "weekday debe estar entre 0 y 6"}), 400)
        return today_from_week_plan(generate_plan(profile)[week - 1], weekday, profile), None

    if source == "text":
        return parse_today(body.get("text") or "", unit), None

    if source == "structured":
        return parse_today(body.get("plan"), unit), None

    if source == "version":
        version = state_manager().plan_version(str(body.get("id") or ""))
        if version is None:
            return None, (jsonify({"error": "versión no encontrada"}), 404)
        return parse_today(version.content, unit), None

    if source == "grid":
        grid = body.get("grid") or default_week_grid(profile)
        problem = validate_week_grid(grid)
        if problem:
            return None, (jsonify({"error": problem}), 400)
        return today_from_week_grid(grid), None

    if source == "ai":
        try:
            return CoachClient.from_config(current_app.config).today_plan(profile), None
        except CoachError as e:
            return None, (jsonify({"error": e.user_message, "kind": e.kind}), e.http_status)

    return None, (jsonify({"error": "source debe ser week, text, structured, version, grid o ai"}), 400)


@today_bp.post("/apply")
@onboarding_required
def apply_plan():
    """
    Sustituye la plantilla de hoy (se pierden las ediciones) y pone los
    flags del día a cero.
    Body JSON: {"source": "week", "week": 3, "weekday": 0} | {"source": "text", "text": "..."}
               | {"source": "structured", "plan": {...}} | {"source": "version", "id": "..."}
               | {"source": "grid", "grid": {...}} | {"source": "ai"}
    """
    try:
        day = _day()
    except ValueError:
        return _bad_date()
    body = request.get_json(silent=True) or {}
    state = current_state()
    parsed, err = _parsed_from_source(body, state, day)
    if err:
        return err

    template, done = engine.apply_template(parsed.strength, parsed.run)
    state.today = template
    mgr = state_manager()
    mgr.save(state, today_done=mgr.today_done_doc(day.isoformat(), done), **{TODAY_DRAFT_KEY: None})
    return jsonify({"data": dict(_view(day, template, done), source=parsed.source)}), 200
