"""Meal plans API router.

Starts generation jobs and exposes generated plans: the plan itself, its
aggregated grocery list and the three edits a plan allows (favorite, meal
swap, cooking status).
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from api.deps import get_current_user_id
from core.logger import get_logger
from database.deps import get_db_read, get_db_write
from schemas import GenerationRequest, GroceryListResponse, JobCreatedResponse, MealPlanView, MealSlotView
from schemas.meal_plan_schema import CookingStatusRequest, FavoriteRequest, SwapRequest
from services.generative_capability import GenerativeCapability, get_generative_capability
from services.job_service import job_service
from services.meal_plan_service import meal_plan_service

logger = get_logger("api.meal_plans")
router = APIRouter(prefix="/api/meal-plans", tags=["meal-plans"])


@router.post("/generate", response_model=JobCreatedResponse, status_code=202)
def generate_meal_plan(
    payload: GenerationRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_write),
    capability: GenerativeCapability = Depends(get_generative_capability),
):
    """Start generating a meal plan and return the job to poll.

    The response is sent as soon as the job is stored; generation runs in
    the background.

    Raises:
        InvalidRequestError: Invalid week, missing profile or plan already exists.
        ConflictError: A job for the same week is still in flight.
    """
    logger.info("Generation requested by %s for week %s", user_id, payload.week_start_date)
    job = job_service.create_job(db, user_id, payload, background_tasks, capability)
    return JobCreatedResponse(job_id=job.id, status=job.status)


@router.get("/{plan_id}", response_model=MealPlanView)
def get_meal_plan(plan_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db_read)):
    return meal_plan_service.get_plan_view(db, plan_id, user_id)


@router.get("/{plan_id}/grocery-list", response_model=GroceryListResponse)
def get_grocery_list(plan_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db_read)):
    """Aggregate every ingredient of the plan into one shopping list.

    Items are ordered by category, then by name. An item has no `total`
    when its uses are spread over too many different units.
    """
    return meal_plan_service.get_grocery_list(db, plan_id, user_id)


@router.post("/{plan_id}/favorite", response_model=MealPlanView)
def favorite_meal_plan(
    plan_id: str,
    payload: FavoriteRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_write),
):
    """Set or toggle the favorite flag on a plan."""
    return meal_plan_service.set_favorite(db, plan_id, user_id, payload.is_favorite)


@router.post("/{plan_id}/swap", response_model=MealPlanView)
def swap_meal(
    plan_id: str,
    payload: SwapRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_write),
):
    """Replace one meal of the plan with a copy of another meal of the same type."""
    return meal_plan_service.swap_meal(db, plan_id, user_id, payload.slot_id, payload.source_slot_id)


@router.post("/{plan_id}/meals/{slot_id}/cooking-status", response_model=MealSlotView)
def update_cooking_status(
    plan_id: str,
    slot_id: int,
    payload: CookingStatusRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_write),
):
    return meal_plan_service.set_cooking_status(db, plan_id, user_id, slot_id, payload.cooking_status)
