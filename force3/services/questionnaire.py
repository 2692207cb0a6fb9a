# force3/services/questionnaire.py
"""
Catálogo de preguntas del onboarding (lo sirve GET /api/coach).
Tipos admitidos: single_choice, multi_choice, number, text, select, date.
"""
from __future__ import annotations

from typing import Any, Dict, List

from force3.utils.units import height_label

QUESTION_TYPES = ("single_choice", "multi_choice", "number", "text", "select", "date")


def _opts(*pairs) -> List[Dict[str, str]]:
    return [{"value": v, "label": lbl} for v, lbl in pairs]


def height_options(start_cm: int = 150, stop_cm: int = 200, step: int = 5) -> List[Dict[str, str]]:
    """Opciones '175 cm / 5'9"' (cm + pies/pulgadas)."""
    labels = [height_label(cm) for cm in range(start_cm, stop_cm + 1, step)]
    return [{"value": lbl, "label": lbl} for lbl in labels]


QUESTIONNAIRE: List[Dict[str, Any]] = [
    {"id": "name", "type": "text", "label": "Your name (optional)", "placeholder": "Ricardo"},
    {"id": "sex", "type": "select", "label": "Sex", "required": True,
     "options": _opts(("male", "Male"), ("female", "Female"), ("other", "Other / prefer not to say"))},
    {"id": "age", "type": "number", "label": "Age", "required": True, "min": 12, "max": 100},
    {"id": "units", "type": "select", "label": "Units", "required": True,
     "options": _opts(("metric", "Metric (cm, kg, km)"), ("imperial", "Imperial (in, lb, mi)"))},
    {"id": "height", "type": "select", "label": "What is your height?", "required": True,
     "options": height_options()},
    {"id": "weight", "type": "number", "label": "Weight", "required": True,
     "help": "Enter kilograms if metric, or pounds if imperial."},
    {"id": "primary_goals", "type": "multi_choice", "label": "Primary goals", "required": True,
     "options": _opts(
         ("fat_loss", "Fat loss"),
         ("general_fitness", "General fitness"),
         ("muscle_gain", "Build muscle"),
         ("hybrid", "Hybrid (mix cardio + strength)"),
         ("endurance", "Endurance focus"),
         ("performance_sport", "Sport performance"),
         ("mobility", "Mobility / injury prevention"),
     )},
    {"id": "modalities", "type": "multi_choice", "label": "What types of training do you want?", "required": True,
     "options": _opts(
         ("strength", "Strength / Lifting"),
         ("run", "Running"),
         ("bike", "Cycling"),
         ("swim", "Swimming"),
         ("hiit", "HIIT / conditioning"),
         ("mobility", "Mobility / flexibility"),
         ("walk", "Walking / low impact"),
     )},
    {"id": "experience", "type": "select", "label": "Training experience", "required": True,
     "options": _opts(("beginner", "Beginner"), ("intermediate", "Intermediate"), ("advanced", "Advanced"))},
    {"id": "availability", "type": "number", "label": "How many days/week can you train?",
     "required": True, "min": 1, "max": 7},
    {"id": "exercise_frequency", "type": "select", "label": "Exercise Frequency",
     "options": _opts(
         ("1-2", "1-2 times per week"),
         ("3-4", "3-4 times per week"),
         ("5-6", "5-6 times per week"),
         ("every_day", "Every day"),
     )},
    {"id": "current_goal", "type": "select", "label": "Current Goal",
     "options": _opts(
         ("build_muscle", "Build Muscle"),
         ("lose_fat", "Lose Fat"),
         ("improve_endurance", "Improve Endurance"),
         ("maintain_fitness", "Maintain Fitness"),
         ("other", "Other"),
     )},
    {"id": "split_pref", "type": "select", "label": "Preferred strength split (optional)",
     "options": _opts(
         ("full_body", "Full body"),
         ("upper_lower", "Upper / Lower"),
         ("push_pull_legs", "Push / Pull / Legs"),
         ("no_pref", "No preference"),
     )},
    {"id": "cardio_intensity", "type": "select", "label": "Preferred cardio intensity (optional)",
     "options": _opts(
         ("low", "Low (easy / steady)"),
         ("mixed", "Mixed (steady + intervals)"),
         ("high", "High (tempo / VO2)"),
         ("no_pref", "No preference"),
     )},
    {"id": "preferred_rest_days", "type": "multi_choice", "label": "Preferred rest days (optional)",
     "options": _opts(*[(d, d) for d in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")])},
    {"id": "equipment", "type": "multi_choice", "label": "Available equipment",
     "options": _opts(
         ("gym", "Gym access"),
         ("dumbbells", "Dumbbells"),
         ("barbell", "Barbell"),
         ("machines", "Machines"),
         ("bands", "Resistance bands"),
         ("treadmill", "Treadmill"),
         ("bike_trainer", "Indoor bike"),
         ("pool", "Pool"),
         ("none", "Bodyweight only"),
     )},
    {"id": "constraints", "type": "multi_choice", "label": "Injuries / constraints",
     "options": _opts(
         ("no_deadlifts", "No deadlifts"),
         ("knee_pain", "Knee pain"),
         ("back_pain", "Back pain"),
         ("shoulder_pain", "Shoulder pain"),
         ("low_impact_only", "Low impact only"),
         ("none", "None"),
     )},
    {"id": "doubleRuns", "type": "single_choice", "label": "Include double-run days?",
     "options": _opts(("yes", "Yes"), ("no", "No"))},
    {"id": "recent_strength", "type": "text", "label": "Recent strength PRs (optional)",
     "placeholder": "e.g., Bench 225x5, Squat 275x3"},
    {"id": "recent_cardio", "type": "text", "label": "Recent cardio baseline (optional)",
     "placeholder": "e.g., 3 mi easy ~10:00/mi; FTP 220W"},
    {"id": "diet_type", "type": "select", "label": "Diet Type",
     "options": _opts(
         ("regular", "Regular"),
         ("vegetarian", "Vegetarian"),
         ("vegan", "Vegan"),
         ("pescatarian", "Pescatarian"),
         ("keto", "Keto"),
         ("paleo", "Paleo"),
         ("mediterranean", "Mediterranean"),
         ("intermittent_fasting", "Intermittent Fasting"),
         ("other", "Other"),
     )},
    {"id": "nutrition_pref", "type": "multi_choice", "label": "Nutrition preferences (optional)",
     "options": _opts(
         ("high_protein", "High-protein"),
         ("mediterranean", "Mediterranean-ish"),
         ("vegetarian", "Vegetarian"),
         ("no_strict_rules", "No strict rules"),
     )},
    {"id": "other_notes", "type": "text", "label": "Tell me more you'd like me to know",
     "placeholder": "Travel schedule, disliked movements, time of day you train, injuries, foods you avoid, etc.",
     "help": "Anything important or personal preferences that should shape your plan."},
    {"id": "beta", "type": "text", "label": "Beta access code", "required": True},
]


def choices_for(question_id: str) -> List[tuple]:
    """Pares (value, label) para los campos WTForms."""
    for q in QUESTIONNAIRE:
        if q["id"] == question_id:
            return [(o["value"], o["label"]) for o in q.get("options", [])]
    raise KeyError(question_id)


def required_ids() -> List[str]:
    return [q["id"] for q in QUESTIONNAIRE if q.get("required")]


def public_questions() -> List[Dict[str, Any]]:
    """Cuestionario sin la pregunta del código beta (el coach no la necesita)."""
    return [q for q in QUESTIONNAIRE if q["id"] != "beta"]
