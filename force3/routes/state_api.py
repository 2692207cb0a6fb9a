# force3/routes/state_api.py
from dataclasses import replace
from datetime import date

from flask import Blueprint, current_app, jsonify, request

from force3.services.app_state import (
    StateImportError,
    current_state,
    replace_state,
    state_manager,
)
from force3.services.profile import ACCENTS, DENSITIES, Settings
from force3.utils.units import DISTANCE_UNITS, WEIGHT_UNITS, kg_to_lb, lb_to_kg

state_bp = Blueprint("state_api", __name__, url_prefix="/api")


# ---------- Backup ----------

@state_bp.get("/state/export")
def export_state():
    doc = state_manager().export_state(current_state())
    resp = jsonify(doc)
    resp.headers["Content-Disposition"] = f"attachment; filename=force3_backup_{date.today().isoformat()}.json"
    return resp, 200


@state_bp.post("/state/import")
def import_state():
    """Body JSON: el documento exportado. Exige profile y logs."""
    doc = request.get_json(silent=True)
    try:
        state = state_manager().import_state(doc)
    except StateImportError as e:
        return jsonify({"error": str(e)}), 400
    replace_state(state)
    return jsonify({"data": {"logs": len(state.logs), "authed": state.authed}}), 200


@state_bp.post("/state/reset")
def reset_state():
    state = replace_state(state_manager().reset())
    current_app.logger.info("[state] reset desde la API")
    return jsonify({"data": state.to_dict()}), 200


# ---------- Ajustes ----------

def _settings_payload(state):
    return {
        "accent": state.settings.accent,
        "density": state.settings.density,
        "units": {"weight": state.profile.units.weight, "distance": state.profile.units.distance},
    }


@state_bp.get("/settings")
def get_settings():
    return jsonify({"data": _settings_payload(current_state())}), 200


@state_bp.put("/settings")
def update_settings():
    """
    Body JSON (todo opcional):
      {"accent": "blue|mint|purple", "density": "cozy|compact",
       "units": {"weight": "lb|kg", "distance": "mi|km"}}
    Cambiar la unidad de peso convierte también el peso del perfil.
    """
    b = request.get_json(silent=True) or {}
    errors = {}
    if "accent" in b and b["accent"] not in ACCENTS:
        errors["accent"] = f"debe ser uno de {', '.join(ACCENTS)}"
    if "density" in b and b["density"] not in DENSITIES:
        errors["density"] = f"debe ser uno de {', '.join(DENSITIES)}"
    units = b.get("units") if isinstance(b.get("units"), dict) else {}
    if "weight" in units and units["weight"] not in WEIGHT_UNITS:
        errors["units.weight"] = "debe ser lb o kg"
    if "distance" in units and units["distance"] not in DISTANCE_UNITS:
        errors["units.distance"] = "debe ser mi o km"
    if errors:
        return jsonify({"error": "validation_error", "fields": errors}), 400

    state = current_state()
    state.settings = Settings(
        accent=b.get("accent", state.settings.accent),
        density=b.get("density", state.settings.density),
    )

    profile = state.profile
    new_weight = units.get("weight")
    if new_weight and new_weight != profile.units.weight and profile.weight:
        converted = kg_to_lb(profile.weight) if new_weight == "lb" else lb_to_kg(profile.weight)
        converted = round(converted, 1)
        profile = replace(profile, weight=converted)
    state.profile = profile.with_units(weight=new_weight, distance=units.get("distance"))

    state_manager().save(state)
    return jsonify({"data": _settings_payload(state)}), 200
