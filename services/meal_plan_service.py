"""Persistence and mutations for generated meal plans.

Plans are written once by the job executor and afterwards change only
through three operations: favorite, swap and cooking status. Reads always
verify ownership and answer 404 for plans the caller does not own.
"""

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.exceptions import InvalidRequestError, NotFoundError
from core.logger import get_logger
from core.repository import MealPlanRepository
from database.models import DayPlan, MealPlan, MealSlot
from schemas.generation_schema import GenerationContext
from schemas.grocery_schema import GroceryListResponse
from schemas.meal_plan_schema import DAYS_OF_WEEK, DayPlanView, Macros, Meal, MealPlanView, MealSlotView
from services.generation_orchestrator import GeneratedPlan
from services.grocery_aggregator import grocery_aggregator

logger = get_logger("services.meal_plan_service")


def _loads(text: Optional[str], default=None):
    if not text:
        return default
    return json.loads(text)


def daily_totals(meals: List[Meal]) -> Macros:
    """Sum per-portion macros of the meals eaten in one day."""
    return Macros(
        calories=round(sum(m.macros.calories for m in meals), 1),
        protein=round(sum(m.macros.protein for m in meals), 1),
        carbs=round(sum(m.macros.carbs for m in meals), 1),
        fat=round(sum(m.macros.fat for m in meals), 1),
    )


class MealPlanService:
    """Stores generated plans and serves plan reads and edits."""

    def save_generated_plan(self, db: Session, context: GenerationContext, generated: GeneratedPlan) -> MealPlan:
        """Stage a plan with all its days and slots in the session.

        The caller commits, so the plan lands in the same transaction as the
        job's completed status.
        """
        plan = MealPlan(
            user_id=context.user_id,
            week_start_date=context.week_start_date,
            title=generated.title,
            theme=context.theme,
            protein_focus=context.protein_focus.model_dump_json() if context.protein_focus else None,
            core_ingredients=generated.core_ingredients.model_dump_json(),
            prep_sessions=json.dumps([s.model_dump() for s in generated.prep.prep_sessions]),
        )
        for position, day in enumerate(DAYS_OF_WEEK):
            day_plan = DayPlan(day=day, position=position)
            for slot in generated.days.get(day, []):
                day_plan.slots.append(MealSlot(
                    meal_type=slot.meal_type,
                    position=slot.position,
                    meal=slot.meal.model_dump_json(),
                    servings=slot.servings,
                ))
            plan.days.append(day_plan)

        MealPlanRepository(db).add(plan)
        db.flush()
        return plan

    def to_view(self, plan: MealPlan) -> MealPlanView:
        days = []
        for day_plan in plan.days:
            slots = []
            for slot in day_plan.slots:
                slots.append(MealSlotView(
                    id=slot.id,
                    meal_type=slot.meal_type,
                    position=slot.position,
                    meal=Meal.model_validate_json(slot.meal),
                    servings=slot.servings,
                    cooking_status=slot.cooking_status,
                    is_original=slot.is_original,
                    swapped_at=slot.swapped_at,
                ))
            days.append(DayPlanView(
                day=day_plan.day,
                meals=slots,
                daily_totals=daily_totals([s.meal for s in slots]),
            ))
        return MealPlanView(
            id=plan.id,
            user_id=plan.user_id,
            week_start_date=plan.week_start_date,
            title=plan.title,
            theme=plan.theme,
            is_favorite=bool(plan.is_favorite),
            protein_focus=_loads(plan.protein_focus),
            core_ingredients=_loads(plan.core_ingredients),
            prep_sessions=_loads(plan.prep_sessions, []),
            days=days,
            created_at=plan.created_at,
        )

    def get_owned_plan(self, db: Session, plan_id: str, user_id: str) -> MealPlan:
        plan = MealPlanRepository(db).get_owned(plan_id, user_id)
        if plan is None:
            raise NotFoundError("MealPlan", plan_id)
        return plan

    def get_plan_view(self, db: Session, plan_id: str, user_id: str) -> MealPlanView:
        return self.to_view(self.get_owned_plan(db, plan_id, user_id))

    def get_grocery_list(self, db: Session, plan_id: str, user_id: str) -> GroceryListResponse:
        view = self.get_plan_view(db, plan_id, user_id)
        return GroceryListResponse(meal_plan_id=view.id, items=grocery_aggregator.build_grocery_list(view))

    def recent_meal_names(self, db: Session, user_id: str, limit: int = 2) -> List[str]:
        """Names of meals in the user's most recent plans, newest first, without duplicates."""
        names = []
        for plan in MealPlanRepository(db).recent_for_user(user_id, limit):
            for day_plan in plan.days:
                for slot in day_plan.slots:
                    name = json.loads(slot.meal).get("name")
                    if name and name not in names:
                        names.append(name)
        return names

    def set_favorite(self, db: Session, plan_id: str, user_id: str, is_favorite: Optional[bool] = None) -> MealPlanView:
        """Set the favorite flag, or toggle it when `is_favorite` is None."""
        plan = self.get_owned_plan(db, plan_id, user_id)
        plan.is_favorite = (not plan.is_favorite) if is_favorite is None else is_favorite
        db.commit()
        db.refresh(plan)
        logger.info("Plan %s favorite=%s", plan.id, plan.is_favorite)
        return self.to_view(plan)

    def _slot_in_plan(self, db: Session, plan: MealPlan, slot_id: int, user_id: str) -> MealSlot:
        slot = MealPlanRepository(db).get_owned_slot(slot_id, user_id)
        if slot is None or slot.day_plan.meal_plan_id != plan.id:
            raise NotFoundError("MealSlot", slot_id)
        return slot

    def swap_meal(self, db: Session, plan_id: str, user_id: str, slot_id: int, source_slot_id: int) -> MealPlanView:
        """Replace the meal in `slot_id` with a copy of the meal in `source_slot_id`.

        The source may belong to any plan the user owns but must have the same
        meal type. The copied meal keeps the servings it was scaled for.
        """
        plan = self.get_owned_plan(db, plan_id, user_id)
        slot = self._slot_in_plan(db, plan, slot_id, user_id)
        if source_slot_id == slot_id:
            raise InvalidRequestError("A meal cannot be swapped with itself", field="source_slot_id")
        source = MealPlanRepository(db).get_owned_slot(source_slot_id, user_id)
        if source is None:
            raise NotFoundError("MealSlot", source_slot_id)
        if source.meal_type != slot.meal_type:
            raise InvalidRequestError(
                f"Cannot swap a {source.meal_type} meal into a {slot.meal_type} slot",
                field="source_slot_id",
            )

        slot.meal = source.meal
        slot.servings = source.servings
        slot.is_original = False
        slot.swapped_at = datetime.utcnow()
        slot.cooking_status = "not_cooked"
        db.commit()
        db.refresh(plan)
        logger.info("Plan %s slot %s swapped with slot %s", plan.id, slot_id, source_slot_id)
        return self.to_view(plan)

    def set_cooking_status(self, db: Session, plan_id: str, user_id: str, slot_id: int, cooking_status: str) -> MealSlotView:
        plan = self.get_owned_plan(db, plan_id, user_id)
        slot = self._slot_in_plan(db, plan, slot_id, user_id)
        slot.cooking_status = cooking_status
        db.commit()
        db.refresh(slot)
        return MealSlotView(
            id=slot.id,
            meal_type=slot.meal_type,
            position=slot.position,
            meal=Meal.model_validate_json(slot.meal),
            servings=slot.servings,
            cooking_status=slot.cooking_status,
            is_original=slot.is_original,
            swapped_at=slot.swapped_at,
        )


# export a default instance
meal_plan_service = MealPlanService()
__all__ = ["MealPlanService", "meal_plan_service", "daily_totals"]
