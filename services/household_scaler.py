"""Household serving multipliers.

The owner always eats one portion; each extra adult adds one and each child
adds `CHILD_PORTION_MULTIPLIER` of a portion. Values are never rounded here:
rounding happens only when an amount is rendered for display or written into
a prompt.
"""

from typing import Optional

from core import config
from schemas.meal_plan_schema import DAYS_OF_WEEK
from schemas.profile_schema import HouseholdServingsConfig

SERVING_BUCKETS = ["breakfast", "lunch", "dinner", "snacks"]

# Meal types without their own household bucket share the snack counts.
MEAL_TYPE_TO_BUCKET = {
    "breakfast": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snack": "snacks",
    "snacks": "snacks",
    "pre_workout": "snacks",
    "post_workout": "snacks",
}


def serving_bucket(meal_type: str) -> str:
    return MEAL_TYPE_TO_BUCKET.get(meal_type, "snacks")


class HouseholdScaler:
    """Computes portion multipliers from a `HouseholdServingsConfig`."""

    def __init__(self, child_portion: Optional[float] = None):
        self.child_portion = config.CHILD_PORTION_MULTIPLIER if child_portion is None else child_portion

    def compute_multiplier(self, servings: Optional[HouseholdServingsConfig], day: str, meal_type: str) -> float:
        """Return ``1 + adults + children * child_portion`` for one meal.

        Args:
            servings: Household configuration, or None for a single eater.
            day: Day name, e.g. ``monday``.
            meal_type: Meal type tag; workout meals and snacks use the
                ``snacks`` bucket.
        """
        if servings is None:
            return 1.0
        meal = servings.days.get(day.lower(), {}).get(serving_bucket(meal_type))
        if meal is None:
            return 1.0
        return 1 + meal.adults + meal.children * self.child_portion

    def has_household_members(self, servings: Optional[HouseholdServingsConfig]) -> bool:
        if servings is None:
            return False
        return any(
            meal.adults > 0 or meal.children > 0
            for buckets in servings.days.values()
            for meal in buckets.values()
        )

    def average_multiplier(self, servings: Optional[HouseholdServingsConfig]) -> float:
        """Mean multiplier over every day and bucket of the week."""
        values = [
            self.compute_multiplier(servings, day, bucket)
            for day in DAYS_OF_WEEK
            for bucket in SERVING_BUCKETS
        ]
        return sum(values) / len(values)

    def describe_household(self, servings: Optional[HouseholdServingsConfig]) -> str:
        """Human-readable size of the largest household configured, e.g. '3 adults and 1 child'."""
        adults, children = 1, 0
        if servings is not None:
            for buckets in servings.days.values():
                for meal in buckets.values():
                    adults = max(adults, 1 + meal.adults)
                    children = max(children, meal.children)
        adult_text = f"{adults} adult{'s' if adults != 1 else ''}"
        if children:
            return f"{adult_text} and {children} child{'ren' if children != 1 else ''}"
        return adult_text

    def build_household_context(self, servings: Optional[HouseholdServingsConfig]) -> str:
        """Prompt section listing per-day portion multipliers, or '' for a single eater."""
        if not self.has_household_members(servings):
            return ""

        lines = []
        for day in DAYS_OF_WEEK:
            parts = []
            for bucket in SERVING_BUCKETS:
                meal = servings.days.get(day, {}).get(bucket)
                if meal is None or (meal.adults == 0 and meal.children == 0):
                    continue
                multiplier = self.compute_multiplier(servings, day, bucket)
                parts.append(f"{bucket}: {multiplier:.1f}x portions")
            if parts:
                lines.append(f"- {day.capitalize()}: {', '.join(parts)}")

        return (
            "## HOUSEHOLD SERVINGS\n"
            f"The user also cooks for their household ({self.describe_household(servings)}).\n"
            "Children count as about "
            f"{self.child_portion:g}x an adult portion.\n"
            + "\n".join(lines)
        )


# export singleton
household_scaler = HouseholdScaler()
__all__ = ["HouseholdScaler", "household_scaler", "serving_bucket", "SERVING_BUCKETS"]
