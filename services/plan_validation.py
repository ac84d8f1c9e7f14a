"""Checks applied to generated output before it is accepted as a plan.

Each check returns a list of human-readable violations; an empty list means
the output is acceptable. The orchestrator feeds violations back into a
repair prompt, so messages name the exact day, meal and field.
"""

from typing import Iterable, List, Optional

from core import config
from schemas.generation_schema import CoreIngredientsOutput, GenerationContext, MealsOutput
from schemas.meal_plan_schema import DAYS_OF_WEEK, normalize_ingredient_name

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")

_MEAL_ORDER = ["breakfast", "pre_workout", "lunch", "post_workout", "dinner"]


def meal_types_for_day(selected: Iterable[str], snack_count: int = 0) -> List[str]:
    """Ordered meal types for one day, with snacks placed between meals.

    One snack goes after lunch, a second after breakfast, a third after
    dinner and a fourth before dinner.
    """
    selected = set(selected)
    result = []
    for meal_type in _MEAL_ORDER:
        if meal_type not in selected:
            continue
        result.append(meal_type)
        if snack_count >= 2 and meal_type == "breakfast":
            result.append("snack")
        if snack_count >= 1 and meal_type == "lunch":
            result.append("snack")
        if snack_count >= 3 and meal_type == "dinner":
            result.append("snack")

    if snack_count >= 4:
        if "dinner" in result:
            result.insert(result.index("dinner"), "snack")
        else:
            result.append("snack")

    # Snacks requested without an anchoring meal still need a place.
    missing = snack_count - result.count("snack")
    result.extend(["snack"] * max(0, missing))
    return result


def required_meal_types(context: GenerationContext) -> List[str]:
    return sorted(set(meal_types_for_day(context.meal_types, context.snack_count)))


def find_disliked(names: Iterable[str], disliked: Iterable[str]) -> List[tuple]:
    """Return ``(name, disliked_term)`` pairs where a disliked term appears in a name."""
    terms = [normalize_ingredient_name(term) for term in disliked if str(term).strip()]
    hits = []
    for name in names:
        normalized = normalize_ingredient_name(name)
        for term in terms:
            if term in normalized:
                hits.append((name, term))
    return hits


def validate_core_ingredients(output: CoreIngredientsOutput, context: GenerationContext) -> List[str]:
    violations = []
    if not output.proteins:
        violations.append("At least one protein source is required")
    requested = context.ingredient_variety.model_dump()
    for category, minimum in requested.items():
        selected = {normalize_ingredient_name(name) for name in getattr(output, category)}
        if len(selected) < minimum:
            violations.append(f"Select at least {minimum} different {category} (got {len(selected)})")
    for name, term in find_disliked(output.all_names(), context.disliked_ingredients):
        violations.append(f"Core ingredient '{name}' contains disliked ingredient '{term}'")
    return violations


def validate_meals(output: MealsOutput, context: GenerationContext, tolerance: Optional[float] = None) -> List[str]:
    """Validate stage-two output against the plan invariants.

    Checks that all seven days are present, every day has each selected meal
    type, meal macros match the sum of their ingredients within `tolerance`
    and no disliked ingredient is used.
    """
    tolerance = config.MACRO_TOLERANCE if tolerance is None else tolerance
    violations = []

    by_day = {day: [] for day in DAYS_OF_WEEK}
    for meal in output.meals:
        by_day[meal.day].append(meal)

    required = required_meal_types(context)
    for day in DAYS_OF_WEEK:
        meals = by_day[day]
        if not meals:
            violations.append(f"{day}: no meals generated")
            continue
        present = {meal.type for meal in meals}
        for meal_type in required:
            if meal_type not in present:
                violations.append(f"{day}: missing a {meal_type} meal")

    for meal in output.meals:
        label = f"{meal.day} {meal.type} '{meal.name}'"
        for field in MACRO_FIELDS:
            stated = getattr(meal.macros, field)
            summed = sum(getattr(ing, field) for ing in meal.ingredients)
            if abs(stated - summed) > tolerance:
                violations.append(
                    f"{label}: {field} total {stated:g} does not match ingredient sum {summed:g}"
                )
        for name, term in find_disliked([ing.name for ing in meal.ingredients], context.disliked_ingredients):
            violations.append(f"{label}: ingredient '{name}' contains disliked ingredient '{term}'")

    return violations
