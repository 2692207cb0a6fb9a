# force3/routes/coach_api.py
from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from force3.services.coach_gateway import CoachClient, CoachError, StreamSlot
from force3.services.profile import profile_from_answers
from force3.services.questionnaire import public_questions

coach_bp = Blueprint("coach_api", __name__, url_prefix="/api/coach")

STAGES = ("answers", "chat")


def _client() -> CoachClient:
    return CoachClient.from_config(current_app.config)


def _stream_slot() -> StreamSlot:
    return current_app.extensions.setdefault("force3.stream_slot", StreamSlot())


def _coach_error(err: CoachError):
    current_app.logger.warning("[coach] %s (%s): %s", err.kind, err.status, err.detail)
    return jsonify({"error": err.user_message, "kind": err.kind}), err.http_status


@coach_bp.get("")
def get_questionnaire():
    return jsonify({"coach": current_app.config["COACH_NAME"], "questions": public_questions()}), 200


@coach_bp.post("")
def ask_coach():
    """
    Body JSON:
      {"stage": "answers", "answers": {...}, "brief": false}
      {"stage": "chat", "message": "..."}
    Devuelve el documento de plan {title, summary, sections, next_actions}.
    """
    body = request.get_json(silent=True) or {}
    stage = body.get("stage") or "answers"
    if stage not in STAGES:
        return jsonify({"error": "Unknown stage."}), 400

    try:
        if stage == "answers":
            profile = profile_from_answers(body.get("answers") or {})
            doc = _client().plan_document(profile, brief=bool(body.get("brief")))
        else:
            doc = _client().chat_reply(str(body.get("message") or ""))
    except CoachError as err:
        return _coach_error(err)
    return jsonify(doc), 200


@coach_bp.post("/plan")
def text_plan():
    """
    Body JSON: {"profile": {...}, "questions": {...}}
    ?stream=1 -> text/plain por trozos, en orden de llegada. Un stream
    nuevo cancela el que estuviera en curso.
    """
    body = request.get_json(silent=True) or {}
    profile = body.get("profile") if isinstance(body.get("profile"), dict) else {}
    questions = body.get("questions") if isinstance(body.get("questions"), dict) else {}
    client = _client()

    if request.args.get("stream") not in ("1", "true"):
        try:
            return jsonify({"plan": client.text_plan(profile, questions)}), 200
        except CoachError as err:
            return _coach_error(err)

    slot = _stream_slot()
    token = slot.start()
    chunks = client.stream_text_plan(profile, questions, cancel=token)
    try:
        # el primer trozo se pide aquí para que los errores salgan como JSON
        first = next(chunks, None)
    except CoachError as err:
        slot.finish(token)
        return _coach_error(err)

    def generate():
        try:
            if first is not None:
                yield first
            for chunk in chunks:
                yield chunk
        except CoachError as err:
            # la respuesta ya empezó: se corta el texto sin status de error
            current_app.logger.warning("[coach] stream cortado: %s", err.detail)
        finally:
            slot.finish(token)

    return Response(stream_with_context(generate()), mimetype="text/plain")
