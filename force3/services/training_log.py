# force3/services/training_log.py
"""
Registro de entrenos (solo-añadir) y resumen semanal.

Tres tipos de entrada: strength, run, wellness. Cada una lleva fecha ISO
(YYYY-MM-DD) e id único. El orden interno es el de inserción; las vistas
ordenan por fecha descendente.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from force3.services.profile import Profile
from force3.utils.units import round_half_up

STREAK_LOOKBACK_DAYS = 30
WEEK_WINDOW_DAYS = 7
STRENGTH_SETS_TARGET = 24

RUN_TYPES = ("Long", "Easy", "Tempo", "Intervals", "Fartlek", "Recovery")
RUN_SESSIONS = ("AM", "PM", "Solo")

# catálogo de ejercicios (nombre, grupo)
EXERCISES = (
    ("Bench Press", "Push"),
    ("Incline DB Press", "Push"),
    ("Overhead Press", "Push"),
    ("Lat Pulldown", "Pull"),
    ("Barbell Row", "Pull"),
    ("Seated Cable Row", "Pull"),
    ("Deadlift", "Pull"),
    ("Back Squat", "Legs"),
    ("Leg Press", "Legs"),
    ("Bulgarian Split Squat", "Legs"),
)


def new_log_id() -> str:
    return uuid.uuid4().hex[:8]


def today_iso() -> str:
    return date.today().isoformat()


# -------------------- Coerción de campos numéricos --------------------
def _coerce_number(x: Any, default):
    """Número finito o default (inf, nan y texto no numérico valen default)."""
    try:
        if x is None or isinstance(x, bool):
            return default
        if isinstance(x, int):
            return x
        if isinstance(x, float):
            return x if math.isfinite(x) else default
        if isinstance(x, str) and x.strip() != "":
            v = float(x)
            if not math.isfinite(v):
                return default
            return int(v) if v.is_integer() else v
    except (TypeError, ValueError):
        pass
    return default


def _coerce_int(x: Any, default):
    v = _coerce_number(x, None)
    return default if v is None else int(v)


def _coerce_date(x: Any) -> str:
    """Fecha ISO; si no es válida, hoy."""
    if isinstance(x, datetime):
        return x.date().isoformat()
    if isinstance(x, date):
        return x.isoformat()
    s = str(x or "").strip()[:10]
    try:
        return datetime.strptime(s, "%Y-%m-%d").date().isoformat()
    except ValueError:
        return today_iso()


# -------------------------------------------------------------------
# Entradas
# -------------------------------------------------------------------
@dataclass
class StrengthLog:
    id: str
    date: str
    exercise: str
    sets: int = 0
    reps: int = 0
    weight: float = 0
    completed: bool = True
    type: str = "strength"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id, "type": self.type, "date": self.date,
            "exercise": self.exercise, "sets": self.sets, "reps": self.reps,
            "weight": self.weight, "completed": self.completed,
        }


@dataclass
class RunLog:
    id: str
    date: str
    run_type: str = "Easy"
    session: str = "Solo"
    distance: float = 0
    duration: float = 0
    pace: str = ""
    type: str = "run"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id, "type": self.type, "date": self.date,
            "runType": self.run_type, "session": self.session,
            "distance": self.distance, "duration": self.duration, "pace": self.pace,
        }


@dataclass
class WellnessLog:
    id: str
    date: str
    sleep: float = 0
    calories: int = 0
    protein: int = 0
    notes: Optional[str] = None
    type: str = "wellness"

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id, "type": self.type, "date": self.date,
            "sleep": self.sleep, "calories": self.calories, "protein": self.protein,
        }
        if self.notes is not None:
            d["notes"] = self.notes
        return d


LogEntry = Union[StrengthLog, RunLog, WellnessLog]


def strength_entry(data: Dict[str, Any]) -> StrengthLog:
    return StrengthLog(
        id=str(data.get("id") or new_log_id()),
        date=_coerce_date(data.get("date")),
        exercise=str(data.get("exercise") or "").strip(),
        sets=_coerce_int(data.get("sets"), 0),
        reps=_coerce_int(data.get("reps"), 0),
        weight=_coerce_number(data.get("weight"), 0),
        completed=bool(data.get("completed", True)),
    )


def run_entry(data: Dict[str, Any]) -> RunLog:
    distance = _coerce_number(data.get("distance"), 0)
    duration = _coerce_number(data.get("duration"), 0)
    pace = str(data.get("pace") or "").strip()
    if not pace and distance and duration:
        pace = f"{duration / distance:.1f} min"
    session = data.get("session") if data.get("session") in RUN_SESSIONS else "Solo"
    return RunLog(
        id=str(data.get("id") or new_log_id()),
        date=_coerce_date(data.get("date")),
        run_type=str(data.get("runType") or data.get("run_type") or "Easy"),
        session=session,
        distance=distance,
        duration=duration,
        pace=pace,
    )


def wellness_entry(data: Dict[str, Any]) -> WellnessLog:
    notes = data.get("notes")
    return WellnessLog(
        id=str(data.get("id") or new_log_id()),
        date=_coerce_date(data.get("date")),
        sleep=_coerce_number(data.get("sleep"), 0),
        calories=_coerce_int(data.get("calories"), 0),
        protein=_coerce_int(data.get("protein"), 0),
        notes=str(notes) if notes not in (None, "") else None,
    )


_BUILDERS = {"strength": strength_entry, "run": run_entry, "wellness": wellness_entry}


def log_entry_from_dict(data: Dict[str, Any]) -> LogEntry:
    kind = (data or {}).get("type")
    if kind not in _BUILDERS:
        raise ValueError(f"Tipo de entrada desconocido: {kind!r}")
    return _BUILDERS[kind](data)


def parse_logs(raw: Any) -> List[LogEntry]:
    """Lee la lista persistida; las entradas ilegibles se descartan."""
    out: List[LogEntry] = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, dict):
            continue
        try:
            out.append(log_entry_from_dict(item))
        except ValueError:
            continue
    return out


# -------------------------------------------------------------------
# Colección
# -------------------------------------------------------------------
class TrainingLog:
    """Colección solo-añadir. Borrar solo existe para el 'deshacer'."""

    def __init__(self, entries: Optional[Iterable[LogEntry]] = None):
        self._entries: List[LogEntry] = list(entries or [])

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def add(self, entry: LogEntry) -> LogEntry:
        self._entries.append(entry)
        return entry

    def remove(self, entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return len(self._entries) != before

    def get(self, entry_id: str) -> Optional[LogEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def recent(self, limit: int = 8) -> List[LogEntry]:
        return sorted(self._entries, key=lambda e: e.date, reverse=True)[:limit]

    def completed_strength_on(self, date_iso: str, exercise: str) -> bool:
        return any(
            isinstance(e, StrengthLog) and e.date == date_iso and e.exercise == exercise and e.completed
            for e in self._entries
        )

    def has_run_on(self, date_iso: str) -> bool:
        return any(isinstance(e, RunLog) and e.date == date_iso for e in self._entries)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._entries]


# -------------------------------------------------------------------
# Resumen semanal
# -------------------------------------------------------------------
@dataclass(frozen=True)
class WeeklySummary:
    strength_sets: int
    mileage: float
    streak: int

    def to_dict(self) -> Dict[str, Any]:
        return {"strength_sets": self.strength_sets, "mileage": self.mileage, "streak": self.streak}


def _as_day(value: Any) -> Optional[date]:
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def summarize_weekly(logs: Iterable[LogEntry], now: Optional[date] = None) -> WeeklySummary:
    """
    Proyección de solo lectura sobre los últimos 7 días naturales [now-6, now]:
      strength_sets = suma de series de fuerza
      mileage       = suma de distancia de carreras
      streak        = días seguidos con alguna entrada, desde hoy hacia atrás (máx. 30)
    """
    if isinstance(now, datetime):
        now = now.date()
    now = now or date.today()
    start = now - timedelta(days=WEEK_WINDOW_DAYS - 1)

    entries = list(logs)
    strength_sets = 0
    mileage = 0
    dates_with_logs = set()
    for e in entries:
        d = _as_day(e.date)
        if d is None:
            continue
        dates_with_logs.add(d)
        if not (start <= d <= now):
            continue
        if isinstance(e, StrengthLog):
            strength_sets += int(e.sets or 0)
        elif isinstance(e, RunLog):
            mileage += e.distance or 0

    streak = 0
    for i in range(STREAK_LOOKBACK_DAYS):
        if now - timedelta(days=i) in dates_with_logs:
            streak += 1
        else:
            break

    return WeeklySummary(strength_sets=strength_sets, mileage=mileage, streak=streak)


# -------------------------------------------------------------------
# Ejercicios y cargas sugeridas
# -------------------------------------------------------------------
def allowed_exercises(profile: Profile) -> List[Dict[str, str]]:
    return [
        {"name": name, "bodypart": part}
        for name, part in EXERCISES
        if not (profile.no_deadlift and "deadlift" in name.lower())
    ]


def suggest_weight(history: Iterable[LogEntry], exercise: str, unit: str) -> float:
    """
    Última carga completada del ejercicio + pequeño incremento
    (2.5 lb / 1.25 kg), redondeada a 0.5. Sin historial: barra vacía.
    """
    default = 45 if unit == "lb" else 20
    bump = 2.5 if unit == "lb" else 1.25
    done = [
        e for e in history
        if isinstance(e, StrengthLog) and e.exercise == exercise and e.completed
    ]
    if not done:
        return default
    last = max(done, key=lambda e: e.date)
    nxt = (last.weight or default) + bump
    return round_half_up(nxt * 2) / 2
