"""Schemas for generation requests, household servings and protein focus."""

from datetime import date
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .meal_plan_schema import DayOfWeek

ServingBucket = Literal["breakfast", "lunch", "dinner", "snacks"]


class MealServings(BaseModel):
    """Extra people eating one meal; the owner is counted separately."""

    adults: int = Field(0, ge=0, examples=[2])
    children: int = Field(0, ge=0, examples=[1])


class HouseholdServingsConfig(BaseModel):
    """Per-day, per-meal-bucket household counts.

    Keys are day names (``monday``..``sunday``, any case) mapping bucket
    names to counts. Missing days or buckets mean nobody extra; an unknown
    day name is rejected.
    """

    days: Dict[DayOfWeek, Dict[ServingBucket, MealServings]] = Field(default_factory=dict)

    @field_validator("days", mode="before")
    @classmethod
    def normalize_day_names(cls, v):
        if isinstance(v, dict):
            return {k.strip().lower() if isinstance(k, str) else k: buckets for k, buckets in v.items()}
        return v


class IngredientVarietyPrefs(BaseModel):
    """How many different core ingredients the user wants per category each week."""

    proteins: int = Field(3, ge=1, le=5)
    vegetables: int = Field(5, ge=2, le=8)
    fruits: int = Field(2, ge=1, le=5)
    grains: int = Field(2, ge=1, le=4)
    fats: int = Field(3, ge=1, le=5)
    dairy: int = Field(1, ge=0, le=5)


class ProteinFocus(BaseModel):
    """Constrain several meals of one type to a single protein."""

    meal_type: Literal["breakfast", "lunch", "dinner", "snack"] = Field(..., examples=["dinner"])
    protein: str = Field(..., min_length=1, examples=["shrimp"])
    count: int = Field(..., ge=1, le=7, examples=[4], description="How many meals of that type use the protein")
    vary_cuisines: bool = Field(True, description="Use a different cuisine for each focused meal")


class GenerationRequest(BaseModel):
    """Request payload for starting a meal-plan generation job."""

    week_start_date: Optional[date] = Field(None, examples=["2026-10-19"], description="Monday of the target week; defaults to next Monday")
    regenerate: bool = Field(False, description="Replace an existing plan for the week")
    theme: Optional[str] = Field(None, examples=["Mediterranean"], description="Optional theme for the week")
    protein_focus: Optional[ProteinFocus] = None
    household_servings: Optional[HouseholdServingsConfig] = Field(None, description="Overrides the household saved on the profile")
