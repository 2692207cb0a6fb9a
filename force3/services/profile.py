# force3/services/profile.py
from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional, Tuple

from force3.utils.units import DISTANCE_UNITS, WEIGHT_UNITS, parse_height_mixed

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
ACCENTS = ("blue", "mint", "purple")
DENSITIES = ("cozy", "compact")

# unidades por sistema
_SYSTEM_UNITS = {
    "metric": ("kg", "km"),
    "imperial": ("lb", "mi"),
}


@dataclass(frozen=True)
class Units:
    weight: str = "lb"
    distance: str = "mi"

    @classmethod
    def from_dict(cls, raw: Any) -> "Units":
        raw = raw if isinstance(raw, dict) else {}
        weight = raw.get("weight") if raw.get("weight") in WEIGHT_UNITS else "lb"
        distance = raw.get("distance") if raw.get("distance") in DISTANCE_UNITS else "mi"
        return cls(weight=weight, distance=distance)


@dataclass(frozen=True)
class Settings:
    accent: str = "blue"
    density: str = "cozy"

    @classmethod
    def from_dict(cls, raw: Any) -> "Settings":
        raw = raw if isinstance(raw, dict) else {}
        accent = raw.get("accent") if raw.get("accent") in ACCENTS else "blue"
        density = raw.get("density") if raw.get("density") in DENSITIES else "cozy"
        return cls(accent=accent, density=density)


@dataclass(frozen=True)
class Profile:
    """
    Configuración de entreno capturada en el onboarding.
    Inmutable: un nuevo onboarding la sustituye entera.
    """
    name: str = ""
    sex: str = "other"
    age: Optional[int] = None
    unit_system: str = "imperial"
    units: Units = field(default_factory=Units)
    height_cm: Optional[int] = None
    height_text: Optional[str] = None
    weight: Optional[float] = None
    goals: Tuple[str, ...] = ()
    modalities: Tuple[str, ...] = ()
    experience: str = "beginner"
    weekly_availability: int = 3
    exercise_frequency: Optional[str] = None
    current_goal: Optional[str] = None
    diet_type: Optional[str] = None
    split_pref: str = "no_pref"
    cardio_intensity: str = "no_pref"
    preferred_rest_days: Tuple[str, ...] = ()
    equipment: Tuple[str, ...] = ()
    constraints: Tuple[str, ...] = ()
    recent_strength: Optional[str] = None
    recent_cardio: Optional[str] = None
    nutrition_pref: Tuple[str, ...] = ()
    other_notes: str = ""
    goal: str = "General fitness"
    no_deadlift: bool = False
    double_runs: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for k, v in d.items():
            if isinstance(v, tuple):
                d[k] = list(v)
        return d

    @classmethod
    def from_dict(cls, raw: Any) -> "Profile":
        """
        Lee un perfil persistido. Tolera las claves camelCase antiguas
        (noDeadlift, doubleRuns, availability) además de snake_case.
        """
        raw = raw if isinstance(raw, dict) else {}

        def pick(*keys, default=None):
            for k in keys:
                if k in raw and raw[k] is not None:
                    return raw[k]
            return default

        availability = _coerce_int(pick("weekly_availability", "availability"), 3)
        return cls(
            name=str(pick("name", default="")),
            sex=str(pick("sex", default="other")),
            age=_coerce_int(pick("age"), None),
            unit_system=str(pick("unit_system", default="imperial")),
            units=Units.from_dict(pick("units", default={})),
            height_cm=_coerce_int(pick("height_cm"), None),
            height_text=pick("height_text"),
            weight=_coerce_float(pick("weight"), None),
            goals=_as_tuple(pick("goals")),
            modalities=_as_tuple(pick("modalities")),
            experience=str(pick("experience", default="beginner")),
            weekly_availability=_clamp(availability, 1, 7),
            exercise_frequency=pick("exercise_frequency"),
            current_goal=pick("current_goal"),
            diet_type=pick("diet_type"),
            split_pref=str(pick("split_pref", default="no_pref")),
            cardio_intensity=str(pick("cardio_intensity", default="no_pref")),
            preferred_rest_days=tuple(d for d in _as_tuple(pick("preferred_rest_days")) if d in WEEKDAYS),
            equipment=_as_tuple(pick("equipment")),
            constraints=_as_tuple(pick("constraints")),
            recent_strength=pick("recent_strength"),
            recent_cardio=pick("recent_cardio"),
            nutrition_pref=_as_tuple(pick("nutrition_pref")),
            other_notes=str(pick("other_notes", default="")),
            goal=str(pick("goal", default="General fitness")),
            no_deadlift=_yes(pick("no_deadlift", "noDeadlift", default=False)),
            double_runs=_yes(pick("double_runs", "doubleRuns", default=False)),
        )

    def with_units(self, weight: Optional[str] = None, distance: Optional[str] = None) -> "Profile":
        units = Units(
            weight=weight if weight in WEIGHT_UNITS else self.units.weight,
            distance=distance if distance in DISTANCE_UNITS else self.units.distance,
        )
        return replace(self, units=units)


# -------------------- Coerciones --------------------
def _coerce_int(x: Any, default):
    try:
        if x is None or isinstance(x, bool):
            return default
        if isinstance(x, str) and x.strip() == "":
            return default
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return default


def _coerce_float(x: Any, default):
    try:
        if x is None or isinstance(x, bool):
            return default
        if isinstance(x, str) and x.strip() == "":
            return default
        v = float(x)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default


def _clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, x))


def _as_tuple(x: Any) -> Tuple[str, ...]:
    if x is None:
        return ()
    if isinstance(x, str):
        return (x,) if x.strip() else ()
    if isinstance(x, (list, tuple, set)):
        return tuple(str(v) for v in x if v not in (None, ""))
    return ()


def _yes(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    return str(x or "").strip().lower() in ("yes", "true", "1", "on")


# -------------------------------------------------------------------
# Respuestas del cuestionario -> Profile
# -------------------------------------------------------------------
def profile_from_answers(answers: Dict[str, Any]) -> Profile:
    """
    Mapea las respuestas (dict libre) a un Profile tipado.
    Sustituciones por defecto, campo a campo:
      name -> "Athlete", sex -> "other", age -> None, units -> "metric",
      weight -> None, listas -> [], experience -> "beginner",
      availability -> 3 (acotado 1..7), split/cardio -> "no_pref", notas -> "".
    """
    answers = answers if isinstance(answers, dict) else {}

    unit_system = answers.get("units") if answers.get("units") in _SYSTEM_UNITS else "metric"
    weight_unit, distance_unit = _SYSTEM_UNITS[unit_system]
    # El cuestionario corto permite elegir unidades explícitas
    if answers.get("unitsWeight") in WEIGHT_UNITS:
        weight_unit = answers["unitsWeight"]
    if answers.get("unitsDistance") in DISTANCE_UNITS:
        distance_unit = answers["unitsDistance"]

    height_cm, height_text = parse_height_mixed(answers.get("height"))
    constraints = _as_tuple(answers.get("constraints"))
    goals = _as_tuple(answers.get("primary_goals") or answers.get("goals"))

    no_deadlift = "no_deadlifts" in constraints
    if "noDeadlift" in answers:
        no_deadlift = no_deadlift or _yes(answers.get("noDeadlift"))

    availability = _coerce_int(answers.get("availability"), None)
    if not availability:
        availability = 3

    free_goal = (answers.get("goal") or "").strip() if isinstance(answers.get("goal"), str) else ""
    if not free_goal:
        free_goal = goals[0].replace("_", " ").capitalize() if goals else "General fitness"

    return Profile(
        name=(str(answers.get("name") or "").strip() or "Athlete"),
        sex=answers.get("sex") or "other",
        age=_coerce_int(answers.get("age"), None) or None,
        unit_system=unit_system,
        units=Units(weight=weight_unit, distance=distance_unit),
        height_cm=height_cm,
        height_text=height_text,
        weight=_coerce_float(answers.get("weight"), None) or None,
        goals=goals,
        modalities=_as_tuple(answers.get("modalities")),
        experience=answers.get("experience") or "beginner",
        weekly_availability=_clamp(availability, 1, 7),
        exercise_frequency=answers.get("exercise_frequency") or None,
        current_goal=answers.get("current_goal") or None,
        diet_type=answers.get("diet_type") or None,
        split_pref=answers.get("split_pref") or "no_pref",
        cardio_intensity=answers.get("cardio_intensity") or "no_pref",
        preferred_rest_days=tuple(d for d in _as_tuple(answers.get("preferred_rest_days")) if d in WEEKDAYS),
        equipment=_as_tuple(answers.get("equipment")),
        constraints=constraints,
        recent_strength=answers.get("recent_strength") or None,
        recent_cardio=answers.get("recent_cardio") or None,
        nutrition_pref=_as_tuple(answers.get("nutrition_pref")),
        other_notes=str(answers.get("other_notes") or ""),
        goal=free_goal,
        no_deadlift=no_deadlift,
        double_runs=_yes(answers.get("doubleRuns")),
    )


def profile_for_prompt(profile: Profile) -> Dict[str, Any]:
    """Vista del perfil que se envía al coach (sin ajustes de UI)."""
    d = profile.to_dict()
    d["units"] = d["unit_system"]
    d["display_units"] = profile.to_dict()["units"]
    d.pop("unit_system", None)
    return d


def missing_for_dashboard(profile: Profile) -> List[str]:
    """Campos sin los que el dashboard redirige al cuestionario."""
    return [] if profile.name else ["name"]
