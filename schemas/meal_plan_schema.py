"""Schemas for meal plans, their days, slots and embedded meals."""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

DAYS_OF_WEEK = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

MEAL_TYPES = ["breakfast", "pre_workout", "lunch", "post_workout", "snack", "dinner"]

INGREDIENT_CATEGORIES = ["produce", "protein", "dairy", "grains", "fats", "frozen", "other"]

COOKING_STATUSES = ["not_cooked", "cooked_as_is", "cooked_with_modifications"]

DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
MealType = Literal["breakfast", "pre_workout", "lunch", "post_workout", "snack", "dinner"]
IngredientCategory = Literal["produce", "protein", "dairy", "grains", "fats", "frozen", "other"]
CookingStatus = Literal["not_cooked", "cooked_as_is", "cooked_with_modifications"]


def normalize_ingredient_name(name: str) -> str:
    """Matching key for an ingredient: lower-cased with whitespace collapsed."""
    return " ".join(str(name).lower().split())


class Macros(BaseModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class Ingredient(BaseModel):
    """An ingredient as it appears inside a meal.

    `amount` and `unit` are free text and are not guaranteed to be numeric
    or consistent with other meals using the same ingredient.
    """

    name: str
    name_normalized: str
    amount: str
    unit: str = ""
    category: IngredientCategory = "other"
    calories: float
    protein: float
    carbs: float
    fat: float


class Meal(BaseModel):
    name: str
    ingredients: List[Ingredient]
    instructions: List[str] = []
    macros: Macros
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    servings: float = 1.0


class MealSlotView(BaseModel):
    id: Optional[int] = None
    meal_type: MealType
    position: int
    meal: Meal
    servings: float = 1.0
    cooking_status: CookingStatus = "not_cooked"
    is_original: bool = True
    swapped_at: Optional[datetime] = None


class DayPlanView(BaseModel):
    day: DayOfWeek
    meals: List[MealSlotView]
    daily_totals: Macros


class MealPlanView(BaseModel):
    """A persisted plan snapshot as returned to clients and fed to the aggregator."""

    id: str
    user_id: str
    week_start_date: date
    title: Optional[str] = None
    theme: Optional[str] = None
    is_favorite: bool = False
    protein_focus: Optional[dict] = None
    core_ingredients: Optional[dict] = None
    prep_sessions: List[dict] = []
    days: List[DayPlanView]
    created_at: Optional[datetime] = None


class FavoriteRequest(BaseModel):
    is_favorite: Optional[bool] = Field(None, examples=[True], description="Target value; omitted means toggle")


class SwapRequest(BaseModel):
    slot_id: int = Field(..., examples=[12], description="Slot in this plan whose meal is replaced")
    source_slot_id: int = Field(..., examples=[40], description="Slot (in any plan you own) to copy the meal from")


class CookingStatusRequest(BaseModel):
    cooking_status: CookingStatus = Field(..., examples=["cooked_as_is"])
