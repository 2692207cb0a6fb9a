# force3/utils/units.py
"""
Conversión de unidades: distancia (mi/km), altura (cm / pies-pulgadas),
peso (kg/lb) y ritmos. Funciones puras, sin I/O.
"""

import math
import re

MILES_TO_KM = 1.60934
CM_PER_INCH = 2.54
LB_PER_KG = 2.20462

DISTANCE_UNITS = ("mi", "km")
WEIGHT_UNITS = ("lb", "kg")

MARATHON_DISTANCE = {"mi": 26.2, "km": 42.195}


def round_half_up(x) -> int:
    """Redondeo 'de toda la vida' (2.5 -> 3), no el bancario de round()."""
    return int(math.floor(float(x) + 0.5))


def _check_distance_unit(unit):
    if unit not in DISTANCE_UNITS:
        raise ValueError(f"Unidad de distancia desconocida: {unit!r}")


def convert_distance(value, from_unit, to_unit) -> int:
    """
    Convierte una distancia entre 'mi' y 'km' y la redondea a unidad entera.
      convert_distance(10, "km", "mi") -> 6
      convert_distance(10, "mi", "mi") -> 10
    """
    _check_distance_unit(from_unit)
    _check_distance_unit(to_unit)
    value = float(value or 0)
    if not math.isfinite(value):
        raise ValueError(f"Distancia no finita: {value!r}")
    if from_unit == to_unit:
        return round_half_up(value)
    if from_unit == "mi":
        return round_half_up(value * MILES_TO_KM)
    return round_half_up(value / MILES_TO_KM)


def miles_to_unit(miles, unit) -> int:
    """Millas internas -> unidad de visualización (solo al renderizar)."""
    return convert_distance(miles, "mi", unit)


def format_distance(miles, unit) -> str:
    return f"{miles_to_unit(miles, unit)} {unit}"


# -------------------- Altura --------------------
def cm_to_feet_inches(cm):
    total_in = round_half_up(float(cm) / CM_PER_INCH)
    return total_in // 12, total_in % 12


def feet_inches_to_cm(feet, inches=0) -> int:
    return round_half_up((int(feet) * 12 + int(inches)) * CM_PER_INCH)


def height_label(cm) -> str:
    ft, inch = cm_to_feet_inches(cm)
    return f"{int(cm)} cm / {ft}'{inch}\""


_CM_RE = re.compile(r"(\d{2,3})\s*cm", re.IGNORECASE)
_FT_IN_RE = re.compile(r"(\d)'\s*(\d{1,2})\"?")


def parse_height_mixed(value):
    """
    Acepta número (cm), "175 cm", "5'11\"" o la etiqueta mixta del desplegable.
    Devuelve (height_cm | None, height_text | None).
    """
    if value is None or value == "":
        return None, None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value), f"{int(value)} cm"

    text = str(value)
    m = _CM_RE.search(text)
    if m:
        return int(m.group(1)), text

    m = _FT_IN_RE.search(text)
    if m:
        return feet_inches_to_cm(m.group(1), m.group(2)), text

    # Sin formato reconocible: guardamos el texto tal cual
    return None, text


# -------------------- Peso --------------------
def kg_to_lb(kg) -> float:
    return float(kg) * LB_PER_KG


def lb_to_kg(lb) -> float:
    return float(lb) / LB_PER_KG


# -------------------- Ritmos --------------------
def hhmmss_to_seconds(text) -> int:
    """'3:00:00' -> 10800, '20:00' -> 1200, '95' -> 95. Basura -> 0."""
    parts = str(text or "").strip().split(":")
    try:
        nums = [int(p) for p in parts]
    except ValueError:
        return 0
    if len(nums) == 3:
        return nums[0] * 3600 + nums[1] * 60 + nums[2]
    if len(nums) == 2:
        return nums[0] * 60 + nums[1]
    return nums[0] if nums else 0


def format_pace(seconds_per_unit, unit) -> str:
    if not seconds_per_unit or not math.isfinite(seconds_per_unit):
        return ""
    minutes = int(seconds_per_unit // 60)
    seconds = round_half_up(seconds_per_unit % 60)
    if seconds == 60:
        minutes, seconds = minutes + 1, 0
    return f"{minutes}:{seconds:02d}/{unit}"


def goal_paces(goal_time, unit):
    """
    Ritmos objetivo a partir de un tiempo de maratón:
      mp  = ritmo maratón
      hmp = media maratón (~5% más rápido)
      k10 = 10K (~10% más rápido)
    """
    _check_distance_unit(unit)
    total = hhmmss_to_seconds(goal_time)
    if not total:
        return {"mp": "", "hmp": "", "k10": ""}
    per = total / MARATHON_DISTANCE[unit]
    return {
        "mp": format_pace(per, unit),
        "hmp": format_pace(per * 0.95, unit),
        "k10": format_pace(per * 0.90, unit),
    }
