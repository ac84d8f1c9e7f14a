"""Pydantic schema package for request and response models."""

from .job_schema import JobCreatedResponse, JobStatusView
from .meal_plan_schema import MealPlanView, DayPlanView, MealSlotView, Meal, Ingredient, Macros
from .grocery_schema import GroceryItem, GroceryListResponse, MealReference
from .profile_schema import GenerationRequest, HouseholdServingsConfig, IngredientVarietyPrefs, ProteinFocus

__all__ = [
    "JobCreatedResponse",
    "JobStatusView",
    "MealPlanView",
    "DayPlanView",
    "MealSlotView",
    "Meal",
    "Ingredient",
    "Macros",
    "GroceryItem",
    "GroceryListResponse",
    "MealReference",
    "GenerationRequest",
    "HouseholdServingsConfig",
    "IngredientVarietyPrefs",
    "ProteinFocus",
]
