"""SQLAlchemy ORM models for the meal-plan generation service.

`UserProfile` is owned by the profile service and only read here.
`GenerationJob` is the durable record polled by clients. A `MealPlan` owns
its `DayPlan` rows, which own their `MealSlot` rows; the meal inside a slot
is a JSON snapshot copied by value at generation time. List-valued fields
are stored as JSON-encoded text.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class UserProfile(Base):
    """Profile data the generator needs: targets, restrictions and household."""

    __tablename__ = "user_profiles"
    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=True)
    target_calories = Column(Float, nullable=True)
    target_protein = Column(Float, nullable=True)
    target_carbs = Column(Float, nullable=True)
    target_fat = Column(Float, nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    meal_types = Column(Text, nullable=True)
    snack_count = Column(Integer, nullable=False, default=0)
    meal_complexity = Column(Text, nullable=True)
    household_servings = Column(Text, nullable=True)
    liked_ingredients = Column(Text, nullable=True)
    disliked_ingredients = Column(Text, nullable=True)
    preferred_theme = Column(String, nullable=True)
    ingredient_variety_prefs = Column(Text, nullable=True)
    liked_meals = Column(Text, nullable=True)
    disliked_meals = Column(Text, nullable=True)
    validated_meals = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class GenerationJob(Base):
    """One asynchronous generation attempt for a (user, week)."""

    __tablename__ = "generation_jobs"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)
    status = Column(String(32), nullable=False, default="pending")
    progress_message = Column(String, nullable=True)
    result_plan_id = Column(String(36), ForeignKey("meal_plans.id", ondelete="SET NULL"), nullable=True)
    error_message = Column(Text, nullable=True)
    request_payload = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_generation_jobs_user_week", "user_id", "week_start_date"),
    )


class MealPlan(Base):
    """A generated week of meals."""

    __tablename__ = "meal_plans"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)
    title = Column(String, nullable=True)
    theme = Column(String, nullable=True)
    is_favorite = Column(Boolean, nullable=False, default=False)
    protein_focus = Column(Text, nullable=True)
    core_ingredients = Column(Text, nullable=True)
    prep_sessions = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    days = relationship(
        "DayPlan",
        back_populates="meal_plan",
        order_by="DayPlan.position",
        cascade="all, delete-orphan",
    )


class DayPlan(Base):
    """One calendar day inside a meal plan."""

    __tablename__ = "day_plans"
    id = Column(Integer, primary_key=True, index=True)
    meal_plan_id = Column(String(36), ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    day = Column(String(16), nullable=False)
    position = Column(Integer, nullable=False)

    meal_plan = relationship("MealPlan", back_populates="days")
    slots = relationship(
        "MealSlot",
        back_populates="day_plan",
        order_by="MealSlot.position",
        cascade="all, delete-orphan",
    )


class MealSlot(Base):
    """A meal type within a day, holding a meal snapshot by value."""

    __tablename__ = "meal_slots"
    id = Column(Integer, primary_key=True, index=True)
    day_plan_id = Column(Integer, ForeignKey("day_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    meal_type = Column(String(32), nullable=False)
    position = Column(Integer, nullable=False)
    meal = Column(Text, nullable=False)
    servings = Column(Float, nullable=False, default=1.0)
    cooking_status = Column(String(32), nullable=False, default="not_cooked")
    is_original = Column(Boolean, nullable=False, default=True)
    swapped_at = Column(DateTime, nullable=True)

    day_plan = relationship("DayPlan", back_populates="slots")
