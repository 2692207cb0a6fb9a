# force3/services/plan_generator.py
"""
Generador determinista del plan de 16 semanas (sin I/O).

Toda la aritmética se hace en millas; la conversión a km solo ocurre al
renderizar las líneas de cada día.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, List, Optional

from force3.services.profile import Profile
from force3.utils.units import format_distance, miles_to_unit, round_half_up

PLAN_WEEKS = 16

# Curva de volumen semanal (millas). Tabla de periodización escrita a mano.
WEEKLY_MILES = (35, 38, 41, 44, 48, 52, 55, 58, 62, 65, 67, 70, 60, 50, 38, 26)

LONG_RUN_SHARE = 0.33
LONG_RUN_CAP = 22

# (peso sobre el resto, mínimo al repartir)
EASY_SPLIT = {
    "easy1": (0.30, 5),
    "easy2": (0.22, 4),
    "easy3": (0.20, 4),
    "recovery": (0.12, 3),
}
# mínimos al absorber el error de redondeo, en orden de absorción
RECONCILE_FLOORS = (("easy1", 3), ("easy2", 4), ("easy3", 4), ("recovery", 3))

WORKOUT_MILES = {"mp": 12, "tempo": 10, "intervals": 8, "shakeout": 3}

BLOCK_SUMMARY = {
    "Base": "Base & consistency",
    "Build": "Build aerobic & tempo",
    "Peak": "Peak volume + MP work",
    "Taper": "Taper & sharpen",
    "Race": "Race week (taper)",
}


@dataclass(frozen=True)
class WeekAllocation:
    long_run: int
    workout: int
    easy1: int
    easy2: int
    easy3: int
    recovery: int

    @property
    def total(self) -> int:
        return self.long_run + self.workout + self.easy1 + self.easy2 + self.easy3 + self.recovery


@dataclass(frozen=True)
class WeekPlan:
    week: int
    weekly_miles: int
    block: str
    summary: str
    days: List[str]
    allocation: WeekAllocation

    def to_dict(self, unit: str = "mi") -> Dict[str, Any]:
        return {
            "week": self.week,
            "weekly_miles": self.weekly_miles,
            "weekly_distance": miles_to_unit(self.weekly_miles, unit),
            "unit": unit,
            "block": self.block,
            "summary": self.summary,
            "days": list(self.days),
            "allocation": asdict(self.allocation),
        }


# -------------------------------------------------------------------
# Helpers internos
# -------------------------------------------------------------------
def block_for_week(week: int) -> str:
    if week <= 4:
        return "Base"
    if week <= 8:
        return "Build"
    if week <= 12:
        return "Peak"
    if week <= 15:
        return "Taper"
    return "Race"


def _workout_kind(week: int) -> str:
    if week == PLAN_WEEKS:
        return "shakeout"
    if 10 <= week <= 15:
        return "mp"
    if week >= 6:
        return "tempo"
    return "intervals"


def _bike_minutes(week: int) -> int:
    if week < 2:
        return 0
    return 45 if week < 6 else 60


def allocate_week(week: int, weekly_miles: int) -> WeekAllocation:
    """
    Reparte el volumen de la semana. La suma de los seis bloques es
    exactamente weekly_miles.
    """
    long_run = 0 if week == PLAN_WEEKS else min(round_half_up(weekly_miles * LONG_RUN_SHARE), LONG_RUN_CAP)
    remaining = max(weekly_miles - long_run, 0)
    workout = WORKOUT_MILES[_workout_kind(week)]

    buckets = {
        name: max(round_half_up(remaining * share), minimum)
        for name, (share, minimum) in EASY_SPLIT.items()
    }

    delta = weekly_miles - (long_run + workout + sum(buckets.values()))
    if delta > 0:
        buckets["easy1"] += delta
    elif delta < 0:
        # quitamos en orden, sin bajar de los mínimos
        for name, floor in RECONCILE_FLOORS:
            take = min(-delta, max(buckets[name] - floor, 0))
            buckets[name] -= take
            delta += take
            if delta == 0:
                break
        if delta < 0:
            buckets["easy1"] = max(0, buckets["easy1"] + delta)

    return WeekAllocation(long_run=long_run, workout=workout, **buckets)


def strength_focus(profile: Profile) -> str:
    if profile.no_deadlift:
        return "Bench/Row/Squat + Hip Thrust/Back Extension + accessories"
    return "Bench/Row/Squat/Deadlift + accessories"


def _day_strength(profile: Profile, label: str) -> str:
    return f"{label} • Strength: {strength_focus(profile)}"


def _render_days(profile: Profile, week: int, alloc: WeekAllocation) -> List[str]:
    unit = profile.units.distance
    d = lambda miles: format_distance(miles, unit)  # noqa: E731
    kind = _workout_kind(week)

    days = [_day_strength(profile, f"Mon: Strength (Upper/Push-Pull) + Easy {d(alloc.easy3)}")]

    if kind == "shakeout":
        days.append(f"Tue: Shakeout {d(alloc.workout)} + 4 strides")
    elif kind == "mp":
        days.append(f"Tue: Marathon-pace workout {d(alloc.workout)} (e.g., 2×6 @ MP w/ 1 easy)")
    elif kind == "tempo":
        days.append(f"Tue: Tempo {d(alloc.workout)} (e.g., 2×3 @ T w/ 1 easy)")
    else:
        days.append(f"Tue: Aerobic intervals {d(alloc.workout)} (e.g., 6×1 @ HM effort)")

    bike = _bike_minutes(week)
    wed = f"Wed: Strength (Lower/Legs) + Bike {bike}min" if bike else "Wed: Strength (Lower/Legs)"
    days.append(_day_strength(profile, wed))

    days.append(f"Thu: Easy {d(alloc.easy1)} conversational")

    if profile.double_runs:
        am = max(4, round_half_up(alloc.easy2 * 0.65))
        pm = max(3, alloc.easy2 - am)
        days.append(f"Fri: AM {d(am)} easy • PM {d(pm)} easy (doubles; AM longer)")
    else:
        days.append(f"Fri: Easy {d(alloc.easy2)} + drills/strides")

    if week == PLAN_WEEKS:
        days.append("Sat: OFF / travel / gear prep")
    elif kind == "mp" and week >= 11:
        days.append(f"Sat: Long run {d(alloc.long_run)} w/ last 4-6 @ MP")
    else:
        days.append(f"Sat: Long run {d(alloc.long_run)} steady")

    days.append(f"Sun: Recovery {d(alloc.recovery)} + mobility")
    return days


# -------------------------------------------------------------------
# API pública
# -------------------------------------------------------------------
def generate_plan(profile: Profile) -> List[WeekPlan]:
    """16 semanas, siempre. Función pura: mismo perfil -> mismo plan."""
    weeks: List[WeekPlan] = []
    for week in range(1, PLAN_WEEKS + 1):
        wm = WEEKLY_MILES[week - 1]
        block = block_for_week(week)
        alloc = allocate_week(week, wm)
        weeks.append(
            WeekPlan(
                week=week,
                weekly_miles=wm,
                block=block,
                summary=BLOCK_SUMMARY[block],
                days=_render_days(profile, week, alloc),
                allocation=alloc,
            )
        )
    return weeks


def week_index_for(day: Optional[date] = None, start: Optional[date] = None) -> int:
    """
    Índice 0..15 de la semana del plan.
    Sin fecha de inicio: semana del año módulo 16. Con inicio: semanas
    transcurridas, acotadas al rango del plan.
    """
    day = day or date.today()
    if start is not None:
        weeks = (day - start).days // 7
        return max(0, min(PLAN_WEEKS - 1, weeks))
    return ((day - date(day.year, 1, 1)).days // 7) % PLAN_WEEKS


def planned_weekly_mileage(profile: Profile, day: Optional[date] = None) -> int:
    """Volumen previsto de la semana actual, en la unidad del usuario."""
    plan = generate_plan(profile)
    week = plan[min(len(plan) - 1, week_index_for(day))]
    return miles_to_unit(week.weekly_miles, profile.units.distance)


def week_checklist_markdown(week: WeekPlan) -> str:
    bullets = "\n- ".join(week.days)
    return f"### Week {week.week} - {week.summary}\n\n- {bullets}"


def plan_to_markdown(plan: List[WeekPlan]) -> str:
    parts = []
    for w in plan:
        bullets = "\n- ".join(w.days)
        parts.append(f"## Week {w.week} - {w.summary}\n\n- {bullets}\n")
    return "\n".join(parts)
