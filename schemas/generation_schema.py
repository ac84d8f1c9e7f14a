"""Schemas describing what each generation stage must return.

The generative capability output is untrusted; it becomes data only after
it validates against these models. Numeric macro fields are required on
every ingredient and meal.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .meal_plan_schema import DayOfWeek, IngredientCategory, Macros, MealType
from .profile_schema import HouseholdServingsConfig, IngredientVarietyPrefs, ProteinFocus


class ValidatedMealMacros(BaseModel):
    """Per-portion macros the user has confirmed for a meal they eat."""

    meal_name: str = Field(..., min_length=1)
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)


class GenerationContext(BaseModel):
    """Everything the orchestrator needs, resolved from the profile and the request."""

    user_id: str
    week_start_date: date
    targets: Macros
    dietary_restrictions: List[str] = []
    meal_types: List[str] = ["breakfast", "lunch", "dinner"]
    snack_count: int = Field(0, ge=0, le=4)
    meal_complexity: Dict[str, str] = {}
    theme: Optional[str] = None
    protein_focus: Optional[ProteinFocus] = None
    household: Optional[HouseholdServingsConfig] = None
    liked_ingredients: List[str] = []
    disliked_ingredients: List[str] = []
    recent_meal_names: List[str] = []
    ingredient_variety: IngredientVarietyPrefs = Field(default_factory=IngredientVarietyPrefs)
    liked_meals: List[str] = []
    disliked_meals: List[str] = []
    validated_meals: List[ValidatedMealMacros] = []


class CoreIngredientsOutput(BaseModel):
    """Stage 1: the ingredient palette for the week."""

    proteins: List[str]
    vegetables: List[str]
    fruits: List[str]
    grains: List[str]
    fats: List[str]
    dairy: List[str] = []

    def all_names(self) -> List[str]:
        return self.proteins + self.vegetables + self.fruits + self.grains + self.fats + self.dairy


class GeneratedIngredient(BaseModel):
    name: str = Field(..., min_length=1)
    amount: str
    unit: str = ""
    category: IngredientCategory = "other"
    calories: float
    protein: float
    carbs: float
    fat: float

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class GeneratedMeal(BaseModel):
    day: DayOfWeek
    type: MealType
    name: str = Field(..., min_length=1)
    ingredients: List[GeneratedIngredient] = Field(..., min_length=1)
    instructions: List[str]
    prep_time_minutes: int = Field(..., ge=0)
    cook_time_minutes: int = Field(0, ge=0)
    macros: Macros


class MealsOutput(BaseModel):
    """Stage 2: every meal of the week."""

    title: str
    meals: List[GeneratedMeal]


class PrepMealRef(BaseModel):
    day: DayOfWeek
    meal_type: MealType


class PrepSessionOutput(BaseModel):
    session_name: str
    session_day: Optional[DayOfWeek] = None
    estimated_minutes: int = Field(..., ge=0)
    instructions: List[str]
    feeds: List[PrepMealRef] = []


class PrepOutput(BaseModel):
    """Stage 3: prep sessions plus optional per-day assembly notes."""

    prep_sessions: List[PrepSessionOutput]
    daily_assembly: Dict[str, Dict[str, str]] = {}
