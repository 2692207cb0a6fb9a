# force3/services/plan_parser.py
"""
Texto / JSON del coach -> plantilla de hoy.

Camino preferente: respuesta estructurada validada con pydantic
(TodayPlanSchema). Si no valida, se usa el parser por regex, que es
aproximado: sin coincidencias devuelve lista vacía y sin carrera, nunca
lanza.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from force3.services.plan_generator import WeekPlan
from force3.services.profile import Profile
from force3.utils.units import convert_distance, miles_to_unit

logger = logging.getLogger(__name__)

MAX_STRENGTH_ITEMS = 5

LIFT_RE = re.compile(r"(bench|row|squat|press|pull|deadlift|db|curl|pushdown)", re.I)
SETS_REPS_RE = re.compile(r"(\d+)\s*[x×]\s*(\d+)", re.I)
RUN_RE = re.compile(
    r"(\bLong\b|\bEasy\b|\bTempo\b|\bIntervals?\b|\bRecovery\b).*?(\d+(?:\.\d+)?)\s*(mi|km)\b",
    re.I,
)
GRID_RUN_RE = re.compile(r"(Long|Easy|Tempo|Intervals?|Recovery).*?(\d+(?:\.\d+)?)", re.I)

GRID_KINDS = ("run", "strength", "rest")


# -------------------------------------------------------------------
# Esquema estructurado
# -------------------------------------------------------------------
class StrengthItemSchema(BaseModel):
    name: str = Field(min_length=1)
    sets: int = Field(ge=1, le=20)
    reps: int = Field(ge=1, le=100)
    suggested: Optional[float] = Field(default=None, ge=0)


class RunSchema(BaseModel):
    type: str = Field(min_length=1)
    distance: float = Field(gt=0, allow_inf_nan=False)
    unit: Literal["mi", "km"] = "mi"


class TodayPlanSchema(BaseModel):
    strength: List[StrengthItemSchema] = Field(default_factory=list)
    run: Optional[RunSchema] = None


@dataclass
class ParsedToday:
    strength: List[Dict[str, Any]] = field(default_factory=list)
    run: Optional[Dict[str, Any]] = None
    source: str = "legacy"  # structured | legacy | week | grid

    def to_dict(self) -> Dict[str, Any]:
        return {"strength": self.strength, "run": self.run, "source": self.source}


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:].lower()


def _to_number(s: str):
    v = float(s)
    return int(v) if v.is_integer() else v


# -------------------- Camino estructurado --------------------
def parse_structured(payload: Any, unit: str) -> Optional[ParsedToday]:
    """dict o texto JSON -> ParsedToday; None si no cumple el esquema."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None
    if not isinstance(payload, dict):
        return None
    try:
        plan = TodayPlanSchema.model_validate(payload)
    except ValidationError as e:
        logger.debug("Plan estructurado inválido (%d errores)", e.error_count())
        return None

    run = None
    if plan.run is not None:
        run = {
            "type": _capitalize(plan.run.type),
            "distance": convert_distance(plan.run.distance, plan.run.unit, unit),
        }
    strength = [
        item.model_dump(exclude_none=True)
        for item in plan.strength[:MAX_STRENGTH_ITEMS]
    ]
    return ParsedToday(strength=strength, run=run, source="structured")


# -------------------- Camino heredado (regex) --------------------
def parse_plan_text(text: str, unit: str) -> ParsedToday:
    """
    Aproximación por líneas: palabra clave de levantamiento + 'NxM' da un
    ejercicio (máx. 5); la primera línea 'Long|Easy|Tempo|Interval(s)|Recovery
    ... <n> mi|km' da la carrera, convertida a la unidad del usuario.
    """
    text = text or ""
    strength: List[Dict[str, Any]] = []
    for line in text.splitlines():
        lift = LIFT_RE.search(line)
        sr = SETS_REPS_RE.search(line)
        if lift and sr:
            strength.append({
                "name": _capitalize(lift.group(1)),
                "sets": int(sr.group(1)),
                "reps": int(sr.group(2)),
            })

    run = None
    m = RUN_RE.search(text)
    # "9999...9 mi" desborda a inf: sin carrera
    if m and math.isfinite(float(m.group(2))):
        run = {
            "type": _capitalize(m.group(1)),
            "distance": convert_distance(float(m.group(2)), m.group(3).lower(), unit),
        }
    return ParsedToday(strength=strength[:MAX_STRENGTH_ITEMS], run=run, source="legacy")


def parse_today(payload: Any, unit: str) -> ParsedToday:
    """Estructurado si valida; si no, regex sobre el texto."""
    parsed = parse_structured(payload, unit)
    if parsed is not None:
        return parsed
    text = payload if isinstance(payload, str) else json.dumps(payload or "")
    return parse_plan_text(text, unit)


# -------------------------------------------------------------------
# Semana base -> hoy
# -------------------------------------------------------------------
def _upper_lifts() -> List[Dict[str, Any]]:
    return [
        {"name": "Bench", "sets": 5, "reps": 5},
        {"name": "Row", "sets": 4, "reps": 8},
        {"name": "Overhead Press", "sets": 3, "reps": 8},
    ]


def _lower_lifts(profile: Profile) -> List[Dict[str, Any]]:
    lifts = [{"name": "Squat", "sets": 5, "reps": 3}]
    if profile.no_deadlift:
        lifts += [
            {"name": "Hip Thrust", "sets": 3, "reps": 10},
            {"name": "Back Extension", "sets": 3, "reps": 12},
        ]
    else:
        lifts.append({"name": "Deadlift", "sets": 3, "reps": 5})
    return lifts


def today_from_week_plan(week: WeekPlan, weekday: int, profile: Profile) -> ParsedToday:
    """
    Día `weekday` (0 = lunes) de una semana generada -> plantilla de hoy.
    Las distancias salen de la asignación de la semana, en la unidad del usuario.
    """
    unit = profile.units.distance
    a = week.allocation
    weekday = max(0, min(6, int(weekday)))
    line = week.days[weekday]

    strength: List[Dict[str, Any]] = []
    if weekday == 0:
        strength = _upper_lifts()
    elif weekday == 2:
        strength = _lower_lifts(profile)

    run_by_day = {
        0: ("Easy", a.easy3),
        1: (_workout_type(line), a.workout),
        3: ("Easy", a.easy1),
        4: ("Easy", a.easy2),
        5: ("Long", a.long_run),
        6: ("Recovery", a.recovery),
    }
    run = None
    if weekday in run_by_day:
        kind, miles = run_by_day[weekday]
        if miles > 0:
            run = {"type": kind, "distance": miles_to_unit(miles, unit)}
    return ParsedToday(strength=strength, run=run, source="week")


def _workout_type(line: str) -> str:
    low = line.lower()
    if "interval" in low:
        return "Intervals"
    if "tempo" in low:
        return "Tempo"
    if "marathon-pace" in low:
        return "Marathon pace"
    if "shakeout" in low:
        return "Shakeout"
    return "Easy"


# -------------------------------------------------------------------
# Rejilla semanal (Lun-Dom) -> hoy
# -------------------------------------------------------------------
def default_week_grid(profile: Profile) -> Dict[str, Any]:
    return {
        "days": [
            {"name": "Mon", "items": [{"kind": "strength", "label": "Upper (Bench/Row), easy 4"}]},
            {"name": "Tue", "items": [{"kind": "run", "label": "Tempo 6"}]},
            {"name": "Wed", "items": [{"kind": "strength", "label": "Lower (Squat), bike 45m"}]},
            {"name": "Thu", "items": [{"kind": "run", "label": "Easy 6"}]},
            {"name": "Fri", "items": [{"kind": "run", "label": "AM 5 / PM 3" if profile.double_runs else "Easy 7"}]},
            {"name": "Sat", "items": [{"kind": "run", "label": "Long 14"}]},
            {"name": "Sun", "items": [{"kind": "run", "label": "Recovery 4 + mobility"}]},
        ]
    }


def _grid_day(grid: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
    for day in (grid or {}).get("days") or []:
        if isinstance(day, dict) and day.get("name") == name:
            return [it for it in day.get("items") or [] if isinstance(it, dict)]
    return []


def today_from_week_grid(grid: Dict[str, Any]) -> ParsedToday:
    """
    Fuerza: los ítems 'strength' del lunes ('Label 4x8'; sin NxM, 4x8).
    Carrera: la tirada larga del sábado, si no la del domingo, si no el
    primer ítem del sábado o del domingo.
    """
    strength = []
    for it in _grid_day(grid, "Mon"):
        if it.get("kind") != "strength":
            continue
        label = str(it.get("label") or "")
        m = SETS_REPS_RE.search(label)
        name = re.sub(r"-\s*\d+\s*[x×]\s*\d+", "", label, count=1, flags=re.I)
        name = re.sub(r"\s+\d+\s*[x×]\s*\d+", "", name, count=1, flags=re.I).strip()
        strength.append({
            "name": name or "Exercise",
            "sets": int(m.group(1)) if m else 4,
            "reps": int(m.group(2)) if m else 8,
        })

    sat = _grid_day(grid, "Sat")
    sun = _grid_day(grid, "Sun")
    long_label = next((str(i.get("label")) for i in sat if re.search("long", str(i.get("label")), re.I)), None)
    if long_label is None:
        long_label = next((str(i.get("label")) for i in sun if re.search("long", str(i.get("label")), re.I)), None)
    if long_label is None:
        first = (sat or sun or [{}])[0]
        long_label = str(first.get("label") or "")

    run = None
    m = GRID_RUN_RE.search(long_label)
    if m and math.isfinite(float(m.group(2))):
        run = {"type": _capitalize(m.group(1)), "distance": _to_number(m.group(2))}
    return ParsedToday(strength=strength, run=run, source="grid")


def validate_week_grid(grid: Any) -> Optional[str]:
    """Mensaje de error si la rejilla no tiene la forma esperada; None si vale."""
    if not isinstance(grid, dict) or not isinstance(grid.get("days"), list):
        return "grid.days debe ser una lista"
    for day in grid["days"]:
        if not isinstance(day, dict) or not isinstance(day.get("items", []), list):
            return "cada día necesita name e items"
        for it in day.get("items", []):
            if not isinstance(it, dict) or it.get("kind") not in GRID_KINDS:
                return f"kind debe ser uno de {', '.join(GRID_KINDS)}"
    return None
