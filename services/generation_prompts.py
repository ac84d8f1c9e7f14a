"""Tool definitions and prompt builders for the three generation stages.

Each stage forces the model to answer through one tool whose JSON schema
lists every required field. Later prompts embed the validated output of
earlier stages as grounding.
"""

import json
from typing import List, Optional

from schemas.generation_schema import CoreIngredientsOutput, GenerationContext
from schemas.meal_plan_schema import DAYS_OF_WEEK, INGREDIENT_CATEGORIES, MEAL_TYPES
from services.household_scaler import household_scaler
from services.plan_validation import meal_types_for_day

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

_MACROS_SCHEMA = {
    "type": "object",
    "properties": {
        "calories": {"type": "number", "description": "Total calories"},
        "protein": {"type": "number", "description": "Total protein in grams"},
        "carbs": {"type": "number", "description": "Total carbohydrates in grams"},
        "fat": {"type": "number", "description": "Total fat in grams"},
    },
    "required": ["calories", "protein", "carbs", "fat"],
}

_INGREDIENT_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "Ingredient name"},
        "amount": {"type": "string", "description": 'Amount for ONE portion, e.g. "1", "0.5", "1 1/2"'},
        "unit": {"type": "string", "description": 'Unit, e.g. "cup", "oz", "tbsp"; "" for whole items'},
        "category": {"type": "string", "enum": INGREDIENT_CATEGORIES},
        "calories": {"type": "number"},
        "protein": {"type": "number"},
        "carbs": {"type": "number"},
        "fat": {"type": "number"},
    },
    "required": ["name", "amount", "unit", "category", "calories", "protein", "carbs", "fat"],
}

CORE_INGREDIENTS_TOOL = {
    "name": "select_core_ingredients",
    "description": "Select the core ingredients for a weekly meal plan",
    "input_schema": {
        "type": "object",
        "properties": {
            "proteins": _STRING_LIST,
            "vegetables": _STRING_LIST,
            "fruits": _STRING_LIST,
            "grains": _STRING_LIST,
            "fats": _STRING_LIST,
            "dairy": _STRING_LIST,
        },
        "required": ["proteins", "vegetables", "fruits", "grains", "fats", "dairy"],
    },
}

MEALS_TOOL = {
    "name": "generate_meals",
    "description": "Generate a 7-day meal plan with per-ingredient nutrition",
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "Short descriptive title for the week"},
            "meals": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "day": {"type": "string", "enum": DAYS_OF_WEEK},
                        "type": {"type": "string", "enum": MEAL_TYPES},
                        "name": {"type": "string"},
                        "ingredients": {"type": "array", "items": _INGREDIENT_SCHEMA},
                        "instructions": _STRING_LIST,
                        "prep_time_minutes": {"type": "integer"},
                        "cook_time_minutes": {"type": "integer"},
                        "macros": _MACROS_SCHEMA,
                    },
                    "required": ["day", "type", "name", "ingredients", "instructions", "prep_time_minutes", "macros"],
                },
            },
        },
        "required": ["title", "meals"],
    },
}

PREP_SESSIONS_TOOL = {
    "name": "generate_prep_sessions",
    "description": "Plan the prep sessions that produce this week's meals",
    "input_schema": {
        "type": "object",
        "properties": {
            "prep_sessions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "session_name": {"type": "string"},
                        "session_day": {"type": "string", "enum": DAYS_OF_WEEK},
                        "estimated_minutes": {"type": "integer"},
                        "instructions": _STRING_LIST,
                        "feeds": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "day": {"type": "string", "enum": DAYS_OF_WEEK},
                                    "meal_type": {"type": "string", "enum": MEAL_TYPES},
                                },
                                "required": ["day", "meal_type"],
                            },
                        },
                    },
                    "required": ["session_name", "estimated_minutes", "instructions"],
                },
            },
            "daily_assembly": {
                "type": "object",
                "description": "Per day, meal type -> short assembly or reheating note",
            },
        },
        "required": ["prep_sessions"],
    },
}


def _targets_section(context: GenerationContext) -> str:
    t = context.targets
    return (
        "## DAILY TARGETS\n"
        f"- Calories: {t.calories:.0f}\n"
        f"- Protein: {t.protein:.0f}g\n"
        f"- Carbs: {t.carbs:.0f}g\n"
        f"- Fat: {t.fat:.0f}g"
    )


def _preferences_section(context: GenerationContext) -> str:
    lines = ["## PREFERENCES"]
    restrictions = ", ".join(context.dietary_restrictions) or "none"
    lines.append(f"- Dietary restrictions: {restrictions}")
    if context.liked_ingredients:
        lines.append(f"- Likes: {', '.join(context.liked_ingredients)}")
    if context.disliked_ingredients:
        lines.append(f"- NEVER use: {', '.join(context.disliked_ingredients)}")
    if context.theme:
        lines.append(f"- Theme for the week: {context.theme}")
    if context.recent_meal_names:
        lines.append(f"- Avoid repeating recent meals: {', '.join(context.recent_meal_names[:30])}")
    return "\n".join(lines)


def _meal_preferences_section(context: GenerationContext) -> str:
    lines = []
    if context.liked_meals:
        lines.append(f"- Meals the user LIKES (create similar meals): {', '.join(context.liked_meals)}")
    if context.disliked_meals:
        lines.append(f"- Meals the user DISLIKES (avoid similar meals): {', '.join(context.disliked_meals)}")
    if not lines:
        return ""
    return "\n\n## MEAL PREFERENCES\n" + "\n".join(lines)


def _variety_section(context: GenerationContext) -> str:
    v = context.ingredient_variety
    return (
        "## INGREDIENT COUNTS\n"
        "Select at least this many different options per category:\n"
        f"- Proteins: {v.proteins}\n"
        f"- Vegetables: {v.vegetables}\n"
        f"- Fruits: {v.fruits}\n"
        f"- Grains/starches: {v.grains}\n"
        f"- Healthy fats: {v.fats}\n"
        f"- Dairy: {v.dairy}"
    )


def _validated_meals_section(context: GenerationContext) -> str:
    if not context.validated_meals:
        return ""
    listed = "\n".join(
        f'- "{m.meal_name}": {m.calories:g} kcal, {m.protein:g}g protein, {m.carbs:g}g carbs, {m.fat:g}g fat'
        for m in context.validated_meals
    )
    return (
        "\n\n## USER-VALIDATED MEAL NUTRITION\n"
        "When generating these meals or similar ones, use these per-portion macros as reference:\n"
        f"{listed}"
    )


def _structure_section(context: GenerationContext) -> str:
    day_types = meal_types_for_day(context.meal_types, context.snack_count)
    lines = [
        "## PLAN STRUCTURE",
        f"- Meals per day ({len(day_types)}): {', '.join(day_types)}",
        "- Every day from monday to sunday must be present.",
    ]
    for meal_type, complexity in sorted(context.meal_complexity.items()):
        lines.append(f"- {meal_type} complexity: {complexity}")
    focus = context.protein_focus
    if focus is not None:
        cuisine = "using a different cuisine each time" if focus.vary_cuisines else "in a consistent style"
        lines.append(f"- Protein focus: {focus.count} {focus.meal_type} meal(s) built around {focus.protein}, {cuisine}.")
    return "\n".join(lines)


def _repair_section(violations: Optional[List[str]]) -> str:
    if not violations:
        return ""
    listed = "\n".join(f"- {v}" for v in violations[:40])
    return (
        "\n\n## FIX THESE PROBLEMS FROM YOUR PREVIOUS ANSWER\n"
        f"{listed}"
    )


def build_core_ingredients_prompt(context: GenerationContext, violations: Optional[List[str]] = None) -> str:
    return (
        "You are planning a week of meals for an athlete. Pick a compact set of core "
        "ingredients that can be reused across meals to hit the targets below.\n\n"
        f"{_targets_section(context)}\n\n{_preferences_section(context)}{_meal_preferences_section(context)}\n\n"
        f"{_structure_section(context)}\n\n{_variety_section(context)}"
        f"{_repair_section(violations)}"
    )


def build_meals_prompt(
    context: GenerationContext,
    core: CoreIngredientsOutput,
    violations: Optional[List[str]] = None,
) -> str:
    core_json = json.dumps(core.model_dump(), indent=2)
    return (
        "Create every meal for a 7-day plan using mainly these core ingredients:\n"
        f"{core_json}\n\n"
        f"{_targets_section(context)}\n\n{_preferences_section(context)}{_meal_preferences_section(context)}"
        f"{_validated_meals_section(context)}\n\n{_structure_section(context)}\n\n"
        "## RULES\n"
        "- Amounts and nutrition are for ONE portion.\n"
        "- Each meal's macros must equal the sum of its ingredients' macros.\n"
        "- Instructions describe technique only; do not restate ingredient quantities."
        f"{_repair_section(violations)}"
    )


def render_scaled_meals(meals: List[tuple]) -> str:
    """Describe scaled meals for the prep prompt.

    Args:
        meals: ``(day, meal_type, Meal)`` tuples whose amounts are already
            scaled to the household and rendered as text.
    """
    lines = []
    for day, meal_type, meal in meals:
        lines.append(f"### {day} {meal_type}: {meal.name} ({meal.servings:.1f} portions)")
        for ing in meal.ingredients:
            lines.append(f"- {ing.amount} {ing.unit} {ing.name}".replace("  ", " "))
    return "\n".join(lines)


def build_prep_prompt(
    context: GenerationContext,
    scaled_meals: List[tuple],
    violations: Optional[List[str]] = None,
) -> str:
    household = household_scaler.build_household_context(context.household)
    parts = [
        "Plan the prep sessions for this week. Quantities below are already scaled for "
        "everyone eating; use them exactly as written in your instructions.",
        render_scaled_meals(scaled_meals),
    ]
    if household:
        parts.append(household)
    complexity = context.meal_complexity
    if complexity:
        parts.append("Prep style per meal type: " + ", ".join(f"{k}={v}" for k, v in sorted(complexity.items())))
    return "\n\n".join(parts) + _repair_section(violations)
