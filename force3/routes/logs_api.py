# force3/routes/logs_api.py
from datetime import date

from flask import Blueprint, jsonify, request

from force3.services.app_state import current_state, onboarding_required, state_manager
from force3.services.plan_generator import planned_weekly_mileage
from force3.services.training_log import (
    STRENGTH_SETS_TARGET,
    allowed_exercises,
    log_entry_from_dict,
    suggest_weight,
    summarize_weekly,
)

logs_bp = Blueprint("logs_api", __name__, url_prefix="/api/logs")


def _date_arg(name: str = "date") -> date:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return date.today()
    return date.fromisoformat(raw)


@logs_bp.get("")
@onboarding_required
def list_logs():
    kind = (request.args.get("type") or "").strip()
    limit = request.args.get("limit", type=int) or 8
    state = current_state()
    entries = state.logs.recent(limit=len(state.logs))
    if kind:
        entries = [e for e in entries if e.type == kind]
    return jsonify({"data": [e.to_dict() for e in entries[:limit]]}), 200


@logs_bp.post("")
@onboarding_required
def add_log():
    """
    Body JSON: {"type": "strength"|"run"|"wellness", "date": "YYYY-MM-DD", ...}
    Los campos numéricos inválidos se guardan como 0 / null.
    """
    if not request.is_json:
        return jsonify({"error": "Content-Type must be application/json"}), 415
    try:
        entry = log_entry_from_dict(request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state = current_state()
    state.logs.add(entry)
    state_manager().save(state)
    return jsonify({"data": entry.to_dict()}), 201


@logs_bp.get("/summary")
@onboarding_required
def weekly_summary():
    """Resumen de los últimos 7 días + objetivos + últimas 8 entradas."""
    try:
        day = _date_arg()
    except ValueError:
        return jsonify({"error": "date debe ser YYYY-MM-DD"}), 400
    state = current_state()
    summary = summarize_weekly(state.logs, now=day)
    return jsonify({"data": {
        "date": day.isoformat(),
        "summary": summary.to_dict(),
        "targets": {
            "strength_sets": STRENGTH_SETS_TARGET,
            "mileage": planned_weekly_mileage(state.profile, day),
        },
        "unit": state.profile.units.distance,
        "recent": [e.to_dict() for e in state.logs.recent(8)],
    }}), 200


@logs_bp.get("/exercises")
@onboarding_required
def exercises():
    state = current_state()
    unit = state.profile.units.weight
    data = [
        dict(ex, suggested=suggest_weight(state.logs, ex["name"], unit), unit=unit)
        for ex in allowed_exercises(state.profile)
    ]
    return jsonify({"data": data}), 200
