# force3/services/app_state.py
"""
Estado de la aplicación y documentos persistidos.

Ciclo de vida explícito: se carga al empezar la petición (una vez, en g),
se guarda en cada mutación y se puede resetear entero.

Documentos (una fila StoredDocument por clave):
  state          {authed, betaCode, profile, logs, settings, today}
  today_done     {fecha ISO -> TodayDone}
  today_draft    cambios pendientes de la plantilla
  undo_ticket    último completado deshacible
  plan_versions  versiones del plan del coach (más nueva primero, máx. 50)
  week_notes     16 notas, una por semana

Registro y flags se cruzan solo por la fecha (YYYY-MM-DD); el cruce se hace
en today.reconcile.

Los fallos de almacenamiento (JSON corrupto, errores de BD) se registran en
WARNING y se sustituyen por los valores por defecto; no llegan al usuario.
"""
from __future__ import annotations

import json
import logging
import uuid
from functools import wraps
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from force3 import db
from force3.models.storage import StoredDocument
from force3.services.plan_generator import PLAN_WEEKS
from force3.services.profile import Profile, Settings, missing_for_dashboard
from force3.services.today import TodayDone, TodayDraft, TodayTemplate, UndoTicket
from force3.services.training_log import TrainingLog, parse_logs

logger = logging.getLogger(__name__)

STATE_KEY = "state"
TODAY_DONE_KEY = "today_done"
TODAY_DRAFT_KEY = "today_draft"
UNDO_KEY = "undo_ticket"
VERSIONS_KEY = "plan_versions"
NOTES_KEY = "week_notes"

ALL_KEYS = (STATE_KEY, TODAY_DONE_KEY, TODAY_DRAFT_KEY, UNDO_KEY, VERSIONS_KEY, NOTES_KEY)

MAX_PLAN_VERSIONS = 50


class StateImportError(ValueError):
    """Backup sin profile o sin logs."""


# -------------------------------------------------------------------
# Almacén clave -> JSON
# -------------------------------------------------------------------
class DocumentStore:
    """Lectura/escritura de documentos JSON sobre StoredDocument."""

    def get(self, key: str, default: Any = None) -> Any:
        try:
            row = StoredDocument.query.filter_by(key=key).first()
        except SQLAlchemyError as e:
            logger.warning("[storage] lectura de %s fallida: %s", key, e)
            db.session.rollback()
            return default
        if row is None:
            return default
        try:
            value = json.loads(row.payload)
        except (TypeError, ValueError) as e:
            logger.warning("[storage] JSON corrupto en %s: %s", key, e)
            return default
        return default if value is None else value

    def set_many(self, docs: Dict[str, Any]) -> bool:
        """Escribe varios documentos en un único commit."""
        try:
            for key, value in docs.items():
                row = StoredDocument.query.filter_by(key=key).first()
                if row is None:
                    row = StoredDocument(key=key)
                    db.session.add(row)
                row.payload = json.dumps(value)
            db.session.commit()
            return True
        except (SQLAlchemyError, TypeError, ValueError) as e:
            db.session.rollback()
            logger.warning("[storage] escritura de %s fallida: %s", ", ".join(docs), e)
            return False

    def set(self, key: str, value: Any) -> bool:
        return self.set_many({key: value})

    def delete(self, *keys: str) -> bool:
        try:
            StoredDocument.query.filter(StoredDocument.key.in_(keys)).delete(synchronize_session=False)
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("[storage] borrado fallido: %s", e)
            return False


# -------------------------------------------------------------------
# Estado principal
# -------------------------------------------------------------------
@dataclass
class AppState:
    authed: bool = False
    beta_code: str = "FORCE3BETA"
    profile: Profile = field(default_factory=Profile)
    logs: TrainingLog = field(default_factory=TrainingLog)
    settings: Settings = field(default_factory=Settings)
    today: Optional[TodayTemplate] = None

    @property
    def onboarded(self) -> bool:
        return self.authed and not missing_for_dashboard(self.profile)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authed": self.authed,
            "betaCode": self.beta_code,
            "profile": self.profile.to_dict(),
            "logs": self.logs.to_list(),
            "settings": {"accent": self.settings.accent, "density": self.settings.density},
            "today": self.today.to_dict() if self.today else None,
        }

    @classmethod
    def from_dict(cls, raw: Any, beta_code: str = "FORCE3BETA") -> "AppState":
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            authed=bool(raw.get("authed")),
            beta_code=str(raw.get("betaCode") or beta_code),
            profile=Profile.from_dict(raw.get("profile")),
            logs=TrainingLog(parse_logs(raw.get("logs"))),
            settings=Settings.from_dict(raw.get("settings")),
            today=TodayTemplate.from_dict(raw["today"]) if isinstance(raw.get("today"), dict) else None,
        )


@dataclass
class PlanVersion:
    id: str
    name: str
    content: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "content": self.content, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PlanVersion":
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            content=str(raw.get("content") or ""),
            created_at=str(raw.get("createdAt") or raw.get("created_at") or ""),
        )


class StateManager:
    """Punto único de acceso al estado persistido."""

    def __init__(self, store: Optional[DocumentStore] = None, beta_code: str = "FORCE3BETA"):
        self.store = store or DocumentStore()
        self.beta_code = beta_code

    # -------------------- estado --------------------
    def load(self) -> AppState:
        return AppState.from_dict(self.store.get(STATE_KEY, {}), beta_code=self.beta_code)

    def save(self, state: AppState, **extra: Any) -> bool:
        """Guarda el estado y, en el mismo commit, los documentos extra."""
        docs = {STATE_KEY: state.to_dict()}
        docs.update(extra)
        return self.store.set_many(docs)

    def reset(self) -> AppState:
        self.store.delete(*ALL_KEYS)
        logger.info("[state] estado reseteado")
        return AppState(beta_code=self.beta_code)

    # -------------------- flags por fecha --------------------
    def today_done_map(self) -> Dict[str, Any]:
        raw = self.store.get(TODAY_DONE_KEY, {})
        return raw if isinstance(raw, dict) else {}

    def today_done(self, date_iso: str) -> TodayDone:
        return TodayDone.from_dict(self.today_done_map().get(date_iso))

    def today_done_doc(self, date_iso: str, done: TodayDone) -> Dict[str, Any]:
        """Mapa completo con la fecha actualizada (para set_many / save)."""
        m = self.today_done_map()
        m[date_iso] = done.to_dict()
        return m

    # -------------------- borrador y deshacer --------------------
    def draft(self) -> Optional[TodayDraft]:
        return TodayDraft.from_dict(self.store.get(TODAY_DRAFT_KEY))

    def save_draft(self, draft: Optional[TodayDraft]) -> bool:
        return self.store.set(TODAY_DRAFT_KEY, draft.to_dict() if draft else None)

    def undo_ticket(self) -> Optional[UndoTicket]:
        return UndoTicket.from_dict(self.store.get(UNDO_KEY))

    # -------------------- versiones del plan --------------------
    def plan_versions(self) -> List[PlanVersion]:
        raw = self.store.get(VERSIONS_KEY, [])
        return [PlanVersion.from_dict(v) for v in raw if isinstance(v, dict)] if isinstance(raw, list) else []

    def add_plan_version(self, content: str, name: str = "", now: Optional[datetime] = None) -> PlanVersion:
        now = now or datetime.now()
        version = PlanVersion(
            id=uuid.uuid4().hex[:8],
            name=name.strip() or f"Plan {now:%Y-%m-%d %H:%M}",
            content=content,
            created_at=now.isoformat(),
        )
        versions = [version] + self.plan_versions()
        self.store.set(VERSIONS_KEY, [v.to_dict() for v in versions[:MAX_PLAN_VERSIONS]])
        return version

    def delete_plan_version(self, version_id: str) -> bool:
        versions = self.plan_versions()
        kept = [v for v in versions if v.id != version_id]
        if len(kept) == len(versions):
            return False
        return self.store.set(VERSIONS_KEY, [v.to_dict() for v in kept])

    def plan_version(self, version_id: str) -> Optional[PlanVersion]:
        return next((v for v in self.plan_versions() if v.id == version_id), None)

    # -------------------- notas por semana --------------------
    def week_notes(self) -> List[str]:
        raw = self.store.get(NOTES_KEY, [])
        raw = raw if isinstance(raw, list) else []
        return [str(raw[i]) if i < len(raw) and raw[i] else "" for i in range(PLAN_WEEKS)]

    def set_week_note(self, index: int, text: str) -> List[str]:
        if not 0 <= index < PLAN_WEEKS:
            raise IndexError(index)
        notes = self.week_notes()
        notes[index] = text or ""
        self.store.set(NOTES_KEY, notes)
        return notes

    # -------------------- backup --------------------
    def export_state(self, state: AppState) -> Dict[str, Any]:
        return state.to_dict()

    def import_state(self, doc: Any) -> AppState:
        if not isinstance(doc, dict) or not doc.get("profile") or not isinstance(doc.get("logs"), list):
            raise StateImportError("Invalid file: profile and logs are required.")
        state = AppState.from_dict(doc, beta_code=self.beta_code)
        self.save(state)
        logger.info("[state] backup importado (%d entradas)", len(state.logs))
        return state


# -------------------------------------------------------------------
# Acceso por petición
# -------------------------------------------------------------------
def state_manager() -> StateManager:
    if "state_manager" not in g:
        g.state_manager = StateManager(beta_code=current_app.config.get("BETA_CODE", "FORCE3BETA"))
    return g.state_manager


def current_state() -> AppState:
    """Estado cargado una sola vez por petición."""
    if "app_state" not in g:
        g.app_state = state_manager().load()
    return g.app_state


def replace_state(state: AppState) -> AppState:
    g.app_state = state
    return state


def onboarding_required(view):
    """403 {"error": "onboarding_required"} mientras no haya onboarding completo."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        state = current_state()
        missing = missing_for_dashboard(state.profile)
        if not state.authed or missing:
            return jsonify({"error": "onboarding_required", "missing": missing}), 403
        return view(*args, **kwargs)
    return wrapper


def init_app(app):
    """El estado se vuelve a cargar al empezar cada petición."""
    @app.before_request
    def _fresh_state():
        g.pop("app_state", None)
        g.pop("state_manager", None)
