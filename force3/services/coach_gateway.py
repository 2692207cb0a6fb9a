# force3/services/coach_gateway.py
"""
Cliente del coach IA (API de chat completions compatible con OpenAI).

- Documento de plan estructurado validado con pydantic; si la salida del
  modelo no encaja, se envuelve en un documento de respaldo.
- Plan en texto (Markdown) completo o en streaming.
- Plantilla de hoy estructurada (TodayPlanSchema); el parser por regex
  queda como respaldo.

Los fallos se traducen a CoachError(kind, status); nunca se reintenta.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from force3.services.plan_parser import ParsedToday, parse_today
from force3.services.profile import Profile, profile_for_prompt

logger = logging.getLogger(__name__)


class CoachError(Exception):
    def __init__(self, kind: str, status: int, detail: str = "", coach: str = "Coach"):
        super().__init__(detail or kind)
        self.kind = kind
        self.status = status
        self.detail = detail
        self.coach = coach

    @property
    def user_message(self) -> str:
        if self.kind == "auth":
            return f"{self.coach} can't access the API. Check your API key and project access."
        if self.kind == "quota":
            return "Rate limit or billing quota reached. Try again later or enable billing."
        if self.kind == "network":
            return f"Network error: {self.detail}"
        if self.kind == "malformed":
            return f"{self.coach} returned a response that could not be read."
        if self.kind == "config":
            return "Missing OPENAI_API_KEY. Add it to .env and restart."
        return f"Coach error: {self.status} {self.detail}".strip()

    @property
    def http_status(self) -> int:
        """Status que devuelve nuestra API."""
        if self.kind in ("network", "malformed"):
            return 502
        if self.kind == "config":
            return 500
        return self.status if self.status >= 400 else 502


# -------------------------------------------------------------------
# Prompts
# -------------------------------------------------------------------
SYSTEM_PROMPT = """
You are {coach}, a generalized hybrid fitness coach for FORCE3.
Audience: anyone from lifting-only to multi-sport (run, bike, swim, HIIT, mobility).
Tone: supportive, concise, actionable; avoid fluff.
Always read and incorporate profile.other_notes into the plan (preferences, travel, schedule quirks).

Return VALID JSON with keys:
- "title": string
- "summary": string
- "sections": array of objects with:
  - "heading": string
  - optional "bullets": string[]
  - optional "table": {{ "columns": string[], "rows": string[][] }}
- "next_actions": string[] (1-5 items)

PLANNING RULES:
- Build plans ONLY for the modalities the user selected (strength, run, bike, swim, hiit, mobility, walk).
- Match weekly volume and difficulty to experience + days/week and exercise_frequency/current_goal.
- Strength: follow preferred split (or choose sensible one). Replace excluded movements (e.g., if "no_deadlifts").
- Cardio: include intensity guidance (RPE/HR or pace/watts if provided).
- Mobility: add short sessions 2-5x/week.
- Nutrition: include high-level guidance only if relevant, respect diet_type.
- Respect preferred rest days.
- Use user's units; state assumptions when unclear.
- Always include actionable next steps.
"""

TEXT_PLAN_PROMPT = """
You are {coach}, a hybrid marathon + strength coach for FORCE3.
Write a 16-week plan in Markdown: one "## Week N" heading per week, one bullet per day (Mon-Sun).
Strength lines use "Exercise SETSxREPS" (e.g., "Bench 5x5"). Runs state type and distance in the user's units.
Never program deadlifts when noDeadlift is true. Respect constraints and preferred rest days.
"""

TODAY_PROMPT = """
You are {coach}. Return ONLY JSON for today's session:
{{"strength": [{{"name": string, "sets": int, "reps": int, "suggested": number?}}],
  "run": {{"type": "Easy"|"Long"|"Tempo"|"Intervals"|"Recovery", "distance": number, "unit": "mi"|"km"}} | null}}
At most 5 strength items. Use the user's units.
"""


# -------------------------------------------------------------------
# Documento de plan
# -------------------------------------------------------------------
class PlanTable(BaseModel):
    columns: List[str]
    rows: List[List[str]]


class PlanSection(BaseModel):
    heading: str
    bullets: Optional[List[str]] = None
    table: Optional[PlanTable] = None


class PlanDocument(BaseModel):
    title: str
    summary: str
    sections: List[PlanSection] = Field(default_factory=list)
    next_actions: List[str] = Field(default_factory=list)


EMPTY_PLAN = '{"title":"Plan","summary":"No content","sections":[],"next_actions":[]}'
EMPTY_REPLY = '{"title":"Coach","summary":"No content","sections":[],"next_actions":[]}'


def fallback_document(content: str, stage: str, coach: str) -> Dict[str, Any]:
    """Envoltorio cuando el modelo no devuelve el JSON pedido."""
    if stage == "chat":
        return {
            "title": f"{coach} Reply",
            "summary": "Structured JSON was expected.",
            "sections": [{"heading": "Message", "bullets": [content]}],
            "next_actions": ["Ask a follow-up.", "Provide more details."],
        }
    return {
        "title": f"{coach} Plan",
        "summary": "Structured JSON was expected.",
        "sections": [{"heading": "Content", "bullets": [content]}],
        "next_actions": ["Review and request adjustments."],
    }


def parse_plan_document(content: str, stage: str, coach: str) -> Dict[str, Any]:
    try:
        doc = PlanDocument.model_validate_json(content)
    except ValidationError:
        logger.info("Respuesta del coach sin JSON válido (stage=%s); usando envoltorio", stage)
        return fallback_document(content, stage, coach)
    return doc.model_dump(exclude_none=True)


# -------------------------------------------------------------------
# Un solo stream activo
# -------------------------------------------------------------------
class StreamSlot:
    """Al empezar un stream nuevo se cancela el anterior."""

    def __init__(self):
        self._lock = threading.Lock()
        self._current: Optional[threading.Event] = None

    def start(self) -> threading.Event:
        with self._lock:
            if self._current is not None:
                self._current.set()
            self._current = threading.Event()
            return self._current

    def finish(self, token: threading.Event) -> None:
        with self._lock:
            if self._current is token:
                self._current = None


# -------------------------------------------------------------------
# Cliente HTTP
# -------------------------------------------------------------------
class CoachClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        coach: str = "Coach",
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.coach = coach
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "CoachClient":
        return cls(
            api_key=config.get("OPENAI_API_KEY", ""),
            model=config.get("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=config.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            coach=config.get("COACH_NAME", "Coach"),
            timeout=config.get("COACH_TIMEOUT", 60),
            session=session,
        )

    # -------------------- bajo nivel --------------------
    def _post(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int,
              stream: bool = False) -> requests.Response:
        if not self.api_key:
            raise CoachError("config", 500, "OPENAI_API_KEY missing", coach=self.coach)
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if stream:
            payload["stream"] = True
        try:
            r = self.session.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            logger.warning("Coach: fallo de red: %s", e)
            raise CoachError("network", 502, str(e), coach=self.coach) from e

        if r.status_code in (401, 403):
            raise CoachError("auth", r.status_code, r.reason or "", coach=self.coach)
        if r.status_code == 429:
            raise CoachError("quota", 429, r.reason or "", coach=self.coach)
        if r.status_code >= 400:
            logger.warning("Coach: HTTP %s del proveedor", r.status_code)
            raise CoachError("http", r.status_code, r.reason or "", coach=self.coach)
        return r

    def complete(self, messages: List[Dict[str, str]], temperature: float = 0.4,
                 max_tokens: int = 1200) -> Optional[str]:
        r = self._post(messages, temperature, max_tokens)
        try:
            data = r.json()
        except ValueError as e:
            raise CoachError("malformed", 502, "invalid JSON from provider", coach=self.coach) from e
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None

    def stream(self, messages: List[Dict[str, str]], cancel: Optional[threading.Event] = None,
               temperature: float = 0.4, max_tokens: int = 2000) -> Iterator[str]:
        """Trozos de texto en orden de llegada (SSE 'data: ...')."""
        r = self._post(messages, temperature, max_tokens, stream=True)
        try:
            for line in r.iter_lines(decode_unicode=True):
                if cancel is not None and cancel.is_set():
                    logger.info("Coach: stream cancelado por uno nuevo")
                    break
                if not line or not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                try:
                    delta = json.loads(data)["choices"][0].get("delta", {}).get("content")
                except (ValueError, KeyError, IndexError, TypeError):
                    logger.debug("Coach: trozo SSE ilegible: %r", data[:80])
                    continue
                if delta:
                    yield delta
        except requests.RequestException as e:
            logger.warning("Coach: stream interrumpido: %s", e)
            raise CoachError("network", 502, str(e), coach=self.coach) from e
        finally:
            r.close()

    # -------------------- operaciones --------------------
    def plan_document(self, profile: Profile, brief: bool = False) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT.format(coach=self.coach)},
            {"role": "user", "content": json.dumps({
                "task": "Create a personalized plan ONLY for the selected modalities. "
                        "Be sure to incorporate 'other_notes' preferences.",
                "brief": bool(brief),
                "profile": profile_for_prompt(profile),
            })},
        ]
        content = self.complete(messages, temperature=0.4, max_tokens=1200) or EMPTY_PLAN
        return parse_plan_document(content, "answers", self.coach)

    def chat_reply(self, message: str) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT.format(coach=self.coach)},
            {"role": "user", "content": message or "Hello, coach."},
        ]
        content = self.complete(messages, temperature=0.7, max_tokens=700) or EMPTY_REPLY
        return parse_plan_document(content, "chat", self.coach)

    def _text_plan_messages(self, profile: Dict[str, Any], questions: Dict[str, Any]) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": TEXT_PLAN_PROMPT.format(coach=self.coach)},
            {"role": "user", "content": json.dumps({"profile": profile, "questions": questions})},
        ]

    def text_plan(self, profile: Dict[str, Any], questions: Dict[str, Any]) -> str:
        return self.complete(self._text_plan_messages(profile, questions), max_tokens=2000) or ""

    def stream_text_plan(self, profile: Dict[str, Any], questions: Dict[str, Any],
                         cancel: Optional[threading.Event] = None) -> Iterator[str]:
        return self.stream(self._text_plan_messages(profile, questions), cancel=cancel)

    def today_plan(self, profile: Profile) -> ParsedToday:
        """Plantilla de hoy estructurada; si no valida, parser por regex."""
        messages = [
            {"role": "system", "content": TODAY_PROMPT.format(coach=self.coach)},
            {"role": "user", "content": json.dumps({"profile": profile_for_prompt(profile)})},
        ]
        content = self.complete(messages, temperature=0.3, max_tokens=500) or ""
        return parse_today(content, profile.units.distance)
