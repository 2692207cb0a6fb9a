# force3/services/today.py
"""
Checklist de hoy: plantilla editable (fuerza + carrera opcional) y flags
de completado por fecha.

Cada ejercicio lleva un id estable; los flags se guardan por id, así que
añadir, quitar o reordenar no obliga a recolocar nada. La vista es una
lista ordenada de pares (item, done).

Estados de la plantilla: unset -> defaulted -> edited; 'applied' cuando se
sustituye entera desde la semana base, la rejilla o el coach.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from force3.services.profile import Profile
from force3.services.training_log import RunLog, StrengthLog, TrainingLog, new_log_id
from force3.utils.units import round_half_up

UNDO_WINDOW_SECONDS = 6
RUN_MINUTES_PER_UNIT = 9
DEFAULT_RUN_PACE = "9:00"

ORIGINS = ("unset", "defaulted", "edited", "applied")


def new_item_id() -> str:
    return uuid.uuid4().hex[:8]


def _to_int(x: Any, default: int) -> int:
    try:
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return default


def _to_float(x: Any, default):
    try:
        if x is None or x == "":
            return default
        v = float(x)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default


# -------------------------------------------------------------------
# Tipos
# -------------------------------------------------------------------
@dataclass(frozen=True)
class TodayItem:
    id: str
    name: str
    sets: int
    reps: int
    suggested: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"id": self.id, "name": self.name, "sets": self.sets, "reps": self.reps}
        if self.suggested is not None:
            d["suggested"] = self.suggested
        return d

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TodayItem":
        return cls(
            id=str(raw.get("id") or new_item_id()),
            name=str(raw.get("name") or "").strip() or "Exercise",
            sets=max(0, _to_int(raw.get("sets"), 3)),
            reps=max(0, _to_int(raw.get("reps"), 8)),
            suggested=_to_float(raw.get("suggested"), None),
        )


@dataclass(frozen=True)
class TodayRun:
    type: str
    distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "distance": self.distance}

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["TodayRun"]:
        if not isinstance(raw, dict) or not raw.get("type"):
            return None
        return cls(type=str(raw["type"]), distance=_to_float(raw.get("distance"), 0) or 0)


@dataclass(frozen=True)
class TodayTemplate:
    strength: Tuple[TodayItem, ...] = ()
    run: Optional[TodayRun] = None
    origin: str = "unset"

    def item(self, item_id: str) -> Optional[TodayItem]:
        return next((it for it in self.strength if it.id == item_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strength": [it.to_dict() for it in self.strength],
            "run": self.run.to_dict() if self.run else None,
            "origin": self.origin,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "TodayTemplate":
        if not isinstance(raw, dict):
            return cls()
        items = raw.get("strength") if isinstance(raw.get("strength"), list) else []
        origin = raw.get("origin") if raw.get("origin") in ORIGINS else "edited"
        return cls(
            strength=tuple(TodayItem.from_dict(it) for it in items if isinstance(it, dict)),
            run=TodayRun.from_dict(raw.get("run")),
            origin=origin,
        )


@dataclass
class TodayDone:
    """Flags de un día: {item_id: bool} + carrera."""
    strength: Dict[str, bool] = field(default_factory=dict)
    run: bool = False

    def is_done(self, item_id: str) -> bool:
        return bool(self.strength.get(item_id))

    def to_dict(self) -> Dict[str, Any]:
        return {"strength": dict(self.strength), "run": self.run}

    @classmethod
    def from_dict(cls, raw: Any) -> "TodayDone":
        if not isinstance(raw, dict):
            return cls()
        flags = raw.get("strength") if isinstance(raw.get("strength"), dict) else {}
        return cls(strength={str(k): bool(v) for k, v in flags.items()}, run=bool(raw.get("run")))


@dataclass(frozen=True)
class UndoTicket:
    entry_id: str
    kind: str  # strength | run
    date: str
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) <= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id, "kind": self.kind, "date": self.date,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["UndoTicket"]:
        if not isinstance(raw, dict):
            return None
        try:
            return cls(
                entry_id=str(raw["entry_id"]),
                kind=str(raw.get("kind") or "strength"),
                date=str(raw.get("date") or ""),
                expires_at=datetime.fromisoformat(raw["expires_at"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


def issue_undo(entry_id: str, kind: str, date_iso: str, now: Optional[datetime] = None) -> UndoTicket:
    now = now or datetime.now()
    return UndoTicket(entry_id, kind, date_iso, now + timedelta(seconds=UNDO_WINDOW_SECONDS))


# -------------------------------------------------------------------
# Plantillas
# -------------------------------------------------------------------
def default_template(profile: Profile) -> TodayTemplate:
    """Bench 5x5, Row 4x8, Squat 5x3 y carrera suave (4 con dobles, 5 sin)."""
    return TodayTemplate(
        strength=(
            TodayItem(new_item_id(), "Bench", 5, 5),
            TodayItem(new_item_id(), "Row", 4, 8),
            TodayItem(new_item_id(), "Squat", 5, 3),
        ),
        run=TodayRun("Easy", 4 if profile.double_runs else 5),
        origin="defaulted",
    )


def ensure_template(template: Optional[TodayTemplate], profile: Profile) -> Tuple[TodayTemplate, bool]:
    """Siembra la plantilla por defecto la primera vez (unset -> defaulted)."""
    if template is None or template.origin == "unset":
        return default_template(profile), True
    return template, False


def apply_template(strength: List[Dict[str, Any]], run: Any) -> Tuple[TodayTemplate, TodayDone]:
    """Sustituye la plantilla entera y deja los flags de hoy a cero."""
    items = tuple(TodayItem.from_dict(dict(it, id=None)) for it in strength or [])
    run_obj = run if isinstance(run, TodayRun) else TodayRun.from_dict(run)
    template = TodayTemplate(strength=items, run=run_obj, origin="applied")
    return template, TodayDone(strength={it.id: False for it in items}, run=False)


# -------------------- Borrador (cambios pendientes) --------------------
@dataclass
class TodayDraft:
    strength: List[TodayItem]
    run: Optional[TodayRun]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strength": [it.to_dict() for it in self.strength],
            "run": self.run.to_dict() if self.run else None,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["TodayDraft"]:
        if not isinstance(raw, dict):
            return None
        t = TodayTemplate.from_dict(raw)
        return cls(strength=list(t.strength), run=t.run)


def begin_draft(template: TodayTemplate) -> TodayDraft:
    return TodayDraft(strength=list(template.strength), run=template.run)


def draft_add(draft: TodayDraft, name: str, sets: Any = 3, reps: Any = 8, suggested: Any = None) -> TodayItem:
    item = TodayItem.from_dict({"name": name, "sets": sets, "reps": reps, "suggested": suggested})
    draft.strength.append(item)
    return item


def draft_remove(draft: TodayDraft, item_id: str) -> bool:
    before = len(draft.strength)
    draft.strength = [it for it in draft.strength if it.id != item_id]
    return len(draft.strength) != before


def draft_move(draft: TodayDraft, item_id: str, direction: int) -> bool:
    """Sube (-1) o baja (+1) un ejercicio. Fuera de rango no hace nada."""
    idx = next((i for i, it in enumerate(draft.strength) if it.id == item_id), None)
    if idx is None:
        return False
    j = idx + (1 if direction > 0 else -1)
    if j < 0 or j >= len(draft.strength):
        return False
    draft.strength[idx], draft.strength[j] = draft.strength[j], draft.strength[idx]
    return True


def draft_update(draft: TodayDraft, item_id: str, **fields) -> Optional[TodayItem]:
    for i, it in enumerate(draft.strength):
        if it.id != item_id:
            continue
        merged = it.to_dict()
        merged.update({k: v for k, v in fields.items() if k in ("name", "sets", "reps", "suggested")})
        updated = TodayItem.from_dict(merged)
        draft.strength[i] = updated
        return updated
    return None


def draft_set_run(draft: TodayDraft, run: Any) -> Optional[TodayRun]:
    draft.run = run if isinstance(run, TodayRun) else TodayRun.from_dict(run)
    return draft.run


def commit_draft(draft: TodayDraft) -> TodayTemplate:
    return TodayTemplate(strength=tuple(draft.strength), run=draft.run, origin="edited")


# -------------------------------------------------------------------
# Completado
# -------------------------------------------------------------------
def reconcile(template: TodayTemplate, done: TodayDone, logs: TrainingLog, date_iso: str) -> TodayDone:
    """
    Unión con el registro: un ejercicio está hecho si su flag lo está o si
    existe un log de fuerza completado con ese nombre y fecha. Nunca
    desmarca nada.
    """
    strength = dict(done.strength)
    for it in template.strength:
        if strength.get(it.id) or logs.completed_strength_on(date_iso, it.name):
            strength[it.id] = True
        else:
            strength.setdefault(it.id, False)
    run = done.run or (template.run is not None and logs.has_run_on(date_iso))
    return TodayDone(strength=strength, run=run)


def checklist(template: TodayTemplate, done: TodayDone) -> List[Dict[str, Any]]:
    return [{"item": it.to_dict(), "done": done.is_done(it.id)} for it in template.strength]


def progress_pct(template: TodayTemplate, done: TodayDone) -> int:
    total = len(template.strength) + (1 if template.run else 0)
    count = sum(1 for it in template.strength if done.is_done(it.id))
    if template.run and done.run:
        count += 1
    return round_half_up(count / max(total, 1) * 100)


def complete_strength(
    template: TodayTemplate, done: TodayDone, logs: TrainingLog, item_id: str, date_iso: str
) -> Optional[StrengthLog]:
    """
    Añade el log de fuerza y marca el flag. Si ya estaba hecho no hace nada
    y devuelve None. KeyError si el id no está en la plantilla.
    """
    item = template.item(item_id)
    if item is None:
        raise KeyError(item_id)
    if done.is_done(item_id):
        return None
    entry = StrengthLog(
        id=new_log_id(),
        date=date_iso,
        exercise=item.name,
        sets=item.sets,
        reps=item.reps,
        weight=item.suggested or 0,
        completed=True,
    )
    logs.add(entry)
    done.strength[item_id] = True
    return entry


def complete_run(
    template: TodayTemplate, done: TodayDone, logs: TrainingLog, profile: Profile, date_iso: str
) -> Optional[RunLog]:
    if template.run is None or done.run:
        return None
    distance = template.run.distance
    entry = RunLog(
        id=new_log_id(),
        date=date_iso,
        run_type=template.run.type,
        session="AM" if profile.double_runs else "Solo",
        distance=distance,
        duration=round_half_up(distance * RUN_MINUTES_PER_UNIT),
        pace=DEFAULT_RUN_PACE,
    )
    logs.add(entry)
    done.run = True
    return entry


def mark_all_done(
    template: TodayTemplate, done: TodayDone, logs: TrainingLog, profile: Profile, date_iso: str
) -> List[Any]:
    """Completa lo pendiente. Llamarlo dos veces no añade nada la segunda."""
    added: List[Any] = []
    for it in template.strength:
        entry = complete_strength(template, done, logs, it.id, date_iso)
        if entry is not None:
            added.append(entry)
    run_entry = complete_run(template, done, logs, profile, date_iso)
    if run_entry is not None:
        added.append(run_entry)
    return added


def skip(done: TodayDone, item_id: Optional[str] = None, run: bool = False) -> TodayDone:
    """
    Da un ejercicio (o la carrera) por resuelto sin registrar nada: cuenta
    para el progreso pero no suma series ni distancia.
    """
    strength = dict(done.strength)
    if item_id is not None:
        strength[item_id] = True
    return TodayDone(strength=strength, run=True if run else done.run)


def undo(ticket: Optional[UndoTicket], logs: TrainingLog, now: Optional[datetime] = None) -> bool:
    """
    Quita del registro la entrada recién añadida si el ticket sigue vivo.
    El flag de completado se queda como estaba (queda marcado).
    """
    if ticket is None or not ticket.is_valid(now):
        return False
    return logs.remove(ticket.entry_id)

