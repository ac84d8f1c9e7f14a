"""Tests for grocery list aggregation."""
from datetime import date

from schemas.meal_plan_schema import DAYS_OF_WEEK, DayPlanView, Ingredient, Macros, Meal, MealPlanView, MealSlotView
from services.grocery_aggregator import GroceryAggregator, grocery_aggregator

ZERO = Macros(calories=0, protein=0, carbs=0, fat=0)


def _ingredient(name, amount, unit, category="other"):
    return Ingredient(
        name=name, name_normalized=" ".join(name.lower().split()), amount=amount, unit=unit,
        category=category, calories=0, protein=0, carbs=0, fat=0,
    )


def _plan(uses):
    """Build a plan from ``{(day, meal_type): [Ingredient, ...]}``."""
    days = []
    for day in DAYS_OF_WEEK:
        slots = []
        for position, meal_type in enumerate(["breakfast", "lunch", "dinner"]):
            ingredients = uses.get((day, meal_type))
            if not ingredients:
                continue
            meal = Meal(name=f"{day} {meal_type}", ingredients=ingredients, macros=ZERO)
            slots.append(MealSlotView(meal_type=meal_type, position=position, meal=meal))
        days.append(DayPlanView(day=day, meals=slots, daily_totals=ZERO))
    return MealPlanView(id="plan-1", user_id="u1", week_start_date=date(2026, 10, 19), days=days)


def _item(items, key):
    return next(item for item in items if item.name_normalized == key)


def test_majority_unit_is_totaled_and_minority_listed_separately():
    plan = _plan({
        ("monday", "dinner"): [_ingredient("Chicken Breast", "6", "oz", "protein")],
        ("wednesday", "dinner"): [_ingredient("chicken breast", "6", "oz", "protein")],
        ("friday", "lunch"): [_ingredient("chicken breast", "1", "lb", "protein")],
    })
    chicken = _item(grocery_aggregator.build_grocery_list(plan), "chicken breast")

    assert chicken.total is not None
    assert chicken.total.amount == 12
    assert chicken.total.unit == "oz"
    assert chicken.total.display == "12 oz"
    assert len(chicken.meals) == 3
    friday = next(ref for ref in chicken.meals if ref.day == "friday")
    assert friday.amount == "1" and friday.unit == "lb"
    assert not friday.included_in_total
    assert [ref.included_in_total for ref in chicken.meals if ref.day != "friday"] == [True, True]


def test_no_total_below_threshold():
    plan = _plan({
        ("monday", "lunch"): [_ingredient("spinach", "2", "cups", "produce")],
        ("tuesday", "lunch"): [_ingredient("spinach", "1", "bunch", "produce")],
    })
    spinach = _item(grocery_aggregator.build_grocery_list(plan), "spinach")

    assert spinach.total is None
    assert [(ref.amount, ref.unit) for ref in spinach.meals] == [("2", "cups"), ("1", "bunch")]


def test_non_numeric_amounts_count_against_the_share():
    plan = _plan({
        ("monday", "lunch"): [_ingredient("salt", "1", "tsp")],
        ("tuesday", "lunch"): [_ingredient("salt", "to taste", "")],
    })
    assert _item(grocery_aggregator.build_grocery_list(plan), "salt").total is None


def test_total_presence_law():
    plan = _plan({
        ("monday", "breakfast"): [_ingredient("oats", "1/2", "cup", "grains"), _ingredient("milk", "1", "cup", "dairy")],
        ("tuesday", "breakfast"): [_ingredient("oats", "½", "Cup", "grains"), _ingredient("milk", "200", "ml", "dairy")],
        ("wednesday", "breakfast"): [_ingredient("oats", "40", "g", "grains"), _ingredient("milk", "a splash", "", "dairy")],
        ("thursday", "breakfast"): [_ingredient("oats", "1", "cup", "grains")],
    })
    for item in grocery_aggregator.build_grocery_list(plan):
        buckets = {}
        for ref in item.meals:
            if grocery_aggregator.normalizer.parse_amount(ref.amount) is not None:
                unit = grocery_aggregator.normalizer.canonical_unit(ref.unit)
                buckets[unit] = buckets.get(unit, 0) + 1
        best = max(buckets.values()) if buckets else 0
        assert (item.total is not None) == (best / len(item.meals) >= 0.6)

    oats = _item(grocery_aggregator.build_grocery_list(plan), "oats")
    assert oats.total.amount == 2.0
    assert oats.total.unit == "cup"


def test_aggregation_is_idempotent():
    plan = _plan({
        ("monday", "dinner"): [_ingredient("rice", "1", "cup", "grains"), _ingredient("broccoli", "2", "cups", "produce")],
        ("sunday", "lunch"): [_ingredient("rice", "1/2", "cup", "grains")],
    })
    first = [item.model_dump() for item in grocery_aggregator.build_grocery_list(plan)]
    second = [item.model_dump() for item in grocery_aggregator.build_grocery_list(plan)]
    assert first == second


def test_items_ordered_by_category_then_name():
    plan = _plan({
        ("monday", "dinner"): [
            _ingredient("zucchini", "1", "", "produce"),
            _ingredient("salmon", "6", "oz", "protein"),
            _ingredient("apple", "1", "", "produce"),
            _ingredient("hot sauce", "1", "tsp", "other"),
        ],
    })
    names = [item.name_normalized for item in grocery_aggregator.build_grocery_list(plan)]
    assert names == ["apple", "zucchini", "salmon", "hot sauce"]


def test_display_name_and_category_from_latest_use():
    plan = _plan({
        ("monday", "dinner"): [_ingredient("greek yogurt", "1", "cup", "other")],
        ("friday", "dinner"): [_ingredient("Greek Yogurt", "1", "cup", "dairy")],
    })
    item = _item(grocery_aggregator.build_grocery_list(plan), "greek yogurt")
    assert item.name == "Greek Yogurt"
    assert item.category == "dairy"


def test_threshold_is_configurable():
    plan = _plan({
        ("monday", "lunch"): [_ingredient("spinach", "2", "cups", "produce")],
        ("tuesday", "lunch"): [_ingredient("spinach", "1", "bunch", "produce")],
    })
    items = GroceryAggregator(majority_threshold=0.5).build_grocery_list(plan)
    assert items[0].total is not None
