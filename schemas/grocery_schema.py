"""Schemas for the aggregated grocery list."""

from typing import List, Optional

from pydantic import BaseModel


class MealReference(BaseModel):
    """One use of an ingredient in the plan, with its original free-text amount."""

    day: str
    meal_type: str
    meal_name: str
    amount: str
    unit: str
    included_in_total: bool = False


class QuantityTotal(BaseModel):
    amount: float
    unit: str
    display: str


class GroceryItem(BaseModel):
    """One shopping line. `total` is None when the uses are too mixed to sum."""

    name: str
    name_normalized: str
    category: str
    meals: List[MealReference]
    total: Optional[QuantityTotal] = None


class GroceryListResponse(BaseModel):
    meal_plan_id: str
    items: List[GroceryItem]
