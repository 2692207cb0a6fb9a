# force3/routes/onboarding_api.py
from flask import Blueprint, current_app, jsonify, request

from force3.forms.onboarding_form import OnboardingForm
from force3.services.app_state import current_state, state_manager
from force3.services.profile import missing_for_dashboard, profile_from_answers
from force3.services.questionnaire import QUESTIONNAIRE

onboarding_bp = Blueprint("onboarding_api", __name__, url_prefix="/api")


@onboarding_bp.get("/onboarding/questions")
def questions():
    return jsonify({"data": QUESTIONNAIRE}), 200


@onboarding_bp.post("/onboarding")
def submit_answers():
    """
    Body JSON: respuestas del cuestionario (ids de QUESTIONNAIRE).
    Valida lo obligatorio, comprueba el código beta y sustituye el perfil.
    """
    if not request.is_json:
        return jsonify({"error": "Content-Type must be application/json"}), 415
    answers = request.get_json(silent=True) or {}
    if not isinstance(answers, dict):
        return jsonify({"error": "answers debe ser un objeto"}), 400

    form = OnboardingForm.from_answers(answers)
    if not form.validate():
        return jsonify({"error": "validation_error", "fields": form.errors}), 400

    # Puerta beta: comparación en texto plano
    if (form.beta.data or "").strip() != current_app.config["BETA_CODE"]:
        return jsonify({"error": "invalid_beta_code"}), 403

    state = current_state()
    state.profile = profile_from_answers(answers)
    state.authed = True
    state_manager().save(state)
    current_app.logger.info("[onboarding] perfil guardado (%s)", state.profile.unit_system)

    return jsonify({"data": {"profile": state.profile.to_dict(), "authed": True}}), 200


@onboarding_bp.get("/profile")
def get_profile():
    state = current_state()
    return jsonify({"data": {
        "profile": state.profile.to_dict(),
        "authed": state.authed,
        "onboarded": state.onboarded,
        "missing": missing_for_dashboard(state.profile),
    }}), 200
