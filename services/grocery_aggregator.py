"""Grocery list aggregation over a persisted meal plan.

Every ingredient use in the plan is grouped by its normalized name. Inside a
group, numeric amounts are bucketed by canonical unit. A weekly total is
reported only when a single unit bucket covers at least
`AGGREGATION_MAJORITY_THRESHOLD` of the group's uses; the remaining uses
stay listed individually and are not folded into that total. When no bucket
reaches the threshold the item has no total at all and shoppers see only
the per-meal breakdown.

The aggregation is pure: it reads a `MealPlanView` snapshot and writes
nothing, so it is safe to run concurrently and always yields the same list
for the same plan.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from core import config
from core.logger import get_logger
from schemas.grocery_schema import GroceryItem, MealReference, QuantityTotal
from schemas.meal_plan_schema import INGREDIENT_CATEGORIES, MealPlanView, normalize_ingredient_name
from services.unit_normalizer import NormalizedQuantity, UnitNormalizer, format_amount, unit_normalizer

logger = get_logger("services.grocery_aggregator")


@dataclass
class _Occurrence:
    name: str
    name_normalized: str
    category: str
    amount: str
    unit: str
    day: str
    meal_type: str
    meal_name: str


def _category_rank(category: str) -> int:
    if category in INGREDIENT_CATEGORIES:
        return INGREDIENT_CATEGORIES.index(category)
    return len(INGREDIENT_CATEGORIES)


class GroceryAggregator:
    """Builds the deduplicated grocery list for a meal plan."""

    def __init__(self, normalizer: Optional[UnitNormalizer] = None, majority_threshold: Optional[float] = None):
        self.normalizer = normalizer or unit_normalizer
        self.majority_threshold = (
            config.AGGREGATION_MAJORITY_THRESHOLD if majority_threshold is None else majority_threshold
        )

    def flatten(self, plan: MealPlanView) -> List[_Occurrence]:
        """List every ingredient use in calendar order (day, slot, ingredient)."""
        occurrences = []
        for day in plan.days:
            for slot in sorted(day.meals, key=lambda s: s.position):
                for ingredient in slot.meal.ingredients:
                    occurrences.append(_Occurrence(
                        name=ingredient.name,
                        name_normalized=ingredient.name_normalized or normalize_ingredient_name(ingredient.name),
                        category=ingredient.category,
                        amount=ingredient.amount,
                        unit=ingredient.unit,
                        day=day.day,
                        meal_type=slot.meal_type,
                        meal_name=slot.meal.name,
                    ))
        return occurrences

    def aggregate_group(self, occurrences: List[_Occurrence]) -> GroceryItem:
        """Merge the uses of one ingredient into a single grocery line."""
        buckets: Dict[str, List[int]] = OrderedDict()
        amounts: Dict[int, float] = {}
        for index, occ in enumerate(occurrences):
            quantity = self.normalizer.normalize(occ.amount, occ.unit)
            if isinstance(quantity, NormalizedQuantity):
                buckets.setdefault(quantity.unit, []).append(index)
                amounts[index] = quantity.amount

        included = set()
        total = None
        if buckets:
            best_unit, best_indexes = max(buckets.items(), key=lambda item: len(item[1]))
            share = len(best_indexes) / len(occurrences)
            if share >= self.majority_threshold:
                amount = sum(amounts[i] for i in best_indexes)
                included = set(best_indexes)
                display = f"{format_amount(amount)} {best_unit}".strip()
                total = QuantityTotal(amount=amount, unit=best_unit, display=display)
            else:
                logger.debug(
                    "No total for %s: best unit %r covers %.0f%% of %s uses",
                    occurrences[0].name_normalized, best_unit, share * 100, len(occurrences),
                )

        latest = occurrences[-1]
        return GroceryItem(
            name=latest.name,
            name_normalized=latest.name_normalized,
            category=latest.category,
            meals=[
                MealReference(
                    day=occ.day,
                    meal_type=occ.meal_type,
                    meal_name=occ.meal_name,
                    amount=occ.amount,
                    unit=occ.unit,
                    included_in_total=index in included,
                )
                for index, occ in enumerate(occurrences)
            ],
            total=total,
        )

    def build_grocery_list(self, plan: MealPlanView) -> List[GroceryItem]:
        """Return one `GroceryItem` per ingredient, ordered by category then name.

        Args:
            plan: Snapshot of a persisted meal plan.
        """
        groups: Dict[str, List[_Occurrence]] = OrderedDict()
        for occ in self.flatten(plan):
            groups.setdefault(occ.name_normalized, []).append(occ)

        items = [self.aggregate_group(group) for group in groups.values()]
        items.sort(key=lambda item: (_category_rank(item.category), item.name_normalized))
        logger.info("Grocery list for plan %s: %s items", plan.id, len(items))
        return items


# export a default instance
grocery_aggregator = GroceryAggregator()
__all__ = ["GroceryAggregator", "grocery_aggregator"]
