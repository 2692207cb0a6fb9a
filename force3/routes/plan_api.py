# force3/routes/plan_api.py
from datetime import date

from flask import Blueprint, Response, jsonify, request

from force3.services.app_state import current_state, onboarding_required, state_manager
from force3.services.plan_generator import (
    PLAN_WEEKS,
    generate_plan,
    plan_to_markdown,
    week_checklist_markdown,
    week_index_for,
)
from force3.services.plan_parser import default_week_grid
from force3.utils.units import goal_paces

plan_bp = Blueprint("plan_api", __name__, url_prefix="/api/plan")


def _markdown(text: str, filename: str) -> Response:
    return Response(
        text,
        mimetype="text/markdown",
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )


@plan_bp.get("")
@onboarding_required
def get_plan():
    """Las 16 semanas en la unidad del usuario + semana actual + notas."""
    state = current_state()
    unit = state.profile.units.distance
    plan = generate_plan(state.profile)
    return jsonify({"data": {
        "weeks": [w.to_dict(unit) for w in plan],
        "current_week": week_index_for(date.today()) + 1,
        "notes": state_manager().week_notes(),
        "doubles": state.profile.double_runs,
        "no_deadlift": state.profile.no_deadlift,
    }}), 200


@plan_bp.get("/markdown")
@onboarding_required
def plan_markdown():
    """Plan base en Markdown; ?version=<id> devuelve el texto de esa versión."""
    version_id = (request.args.get("version") or "").strip()
    if version_id:
        version = state_manager().plan_version(version_id)
        if version is None:
            return jsonify({"error": "versión no encontrada"}), 404
        return _markdown(version.content, f"{version_id}.md")
    return _markdown(plan_to_markdown(generate_plan(current_state().profile)), "force3_plan.md")


@plan_bp.get("/weeks/<int:week>/checklist")
@onboarding_required
def week_checklist(week):
    if not 1 <= week <= PLAN_WEEKS:
        return jsonify({"error": "week debe estar entre 1 y 16"}), 404
    plan = generate_plan(current_state().profile)
    return _markdown(week_checklist_markdown(plan[week - 1]), f"week_{week}.md")


@plan_bp.get("/week-grid")
@onboarding_required
def week_grid():
    return jsonify({"data": default_week_grid(current_state().profile)}), 200


@plan_bp.get("/paces")
@onboarding_required
def paces():
    """?goal=3:00:00 -> ritmos de maratón, media (x0.95) y 10K (x0.90)."""
    goal = (request.args.get("goal") or "").strip()
    unit = current_state().profile.units.distance
    return jsonify({"data": dict(goal_paces(goal, unit), unit=unit, goal=goal)}), 200


# ---------- Versiones del plan del coach ----------

@plan_bp.get("/versions")
@onboarding_required
def list_versions():
    return jsonify({"data": [v.to_dict() for v in state_manager().plan_versions()]}), 200


@plan_bp.post("/versions")
@onboarding_required
def save_version():
    """Body JSON: {"content": "...", "name": "opcional"}"""
    b = request.get_json(silent=True) or {}
    content = str(b.get("content") or "")
    if not content.strip():
        return jsonify({"error": "Nothing to save: content is empty."}), 400
    version = state_manager().add_plan_version(content, name=str(b.get("name") or ""))
    return jsonify({"data": version.to_dict()}), 201


@plan_bp.get("/versions/<version_id>")
@onboarding_required
def get_version(version_id):
    version = state_manager().plan_version(version_id)
    if version is None:
        return jsonify({"error": "versión no encontrada"}), 404
    return jsonify({"data": version.to_dict()}), 200


@plan_bp.delete("/versions/<version_id>")
@onboarding_required
def delete_version(version_id):
    deleted = state_manager().delete_plan_version(version_id)
    return jsonify({"data": {"deleted": deleted}}), 200


# ---------- Notas por semana ----------

@plan_bp.get("/notes")
@onboarding_required
def get_notes():
    return jsonify({"data": state_manager().week_notes()}), 200


@plan_bp.put("/notes/<int:week>")
@onboarding_required
def set_note(week):
    """Body JSON: {"text": "..."}; week es 1..16."""
    if not 1 <= week <= PLAN_WEEKS:
        return jsonify({"error": "week debe estar entre 1 y 16"}), 404
    text = str((request.get_json(silent=True) or {}).get("text") or "")
    notes = state_manager().set_week_note(week - 1, text)
    return jsonify({"data": notes}), 200
