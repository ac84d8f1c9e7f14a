"""Creation, polling and background execution of generation jobs.

`create_job` validates the request, rejects duplicates and schedules
`execute_job` as a FastAPI background task; it never waits for generation.
`execute_job` runs after the response is sent, on its own database session,
and is the only code that mutates the job. Every failure inside it ends with
the job marked failed.
"""

import json
import threading
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from core import config
from core.exceptions import ConflictError, InvalidRequestError, JobTimedOutError, NotFoundError
from core.logger import get_logger
from core.repository import JobRepository, MealPlanRepository, ProfileRepository
from database.database import WriteSessionLocal
from database.models import GenerationJob, UserProfile
from schemas.generation_schema import GenerationContext
from schemas.job_schema import JobStatusView
from schemas.meal_plan_schema import Macros
from schemas.profile_schema import GenerationRequest, HouseholdServingsConfig, IngredientVarietyPrefs
from services.generation_orchestrator import GenerationOrchestrator
from services.generative_capability import GenerativeCapability
from services.job_state_machine import (
    ACTIVE_STATUSES,
    PENDING,
    PROGRESS_MESSAGES,
    SAVING,
    JobStateMachine,
    build_status_view,
    is_stale,
)
from services.meal_plan_service import meal_plan_service

logger = get_logger("services.job_service")

# Serializes the duplicate check and insert for (user, week) within this
# process only. Running several workers against one database needs a
# database-level guard as well; stale jobs are never rewritten, so a plain
# unique index over active jobs would keep blocking the week.
_create_lock = threading.Lock()


def next_monday(today: Optional[date] = None) -> date:
    today = today or date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def resolve_week_start(requested: Optional[date]) -> date:
    if requested is None:
        return next_monday()
    if requested.weekday() != 0:
        raise InvalidRequestError("week_start_date must be a Monday", field="week_start_date")
    return requested


def _loads(text: Optional[str], default):
    if not text:
        return default
    return json.loads(text)


def check_profile(profile: Optional[UserProfile], user_id: str) -> UserProfile:
    if profile is None:
        raise InvalidRequestError(f"No profile found for user '{user_id}'", field="user_id")
    targets = {
        "target_calories": profile.target_calories,
        "target_protein": profile.target_protein,
        "target_carbs": profile.target_carbs,
        "target_fat": profile.target_fat,
    }
    for key, value in targets.items():
        if value is None or value <= 0:
            raise InvalidRequestError(f"Profile {key} must be greater than zero", field=key)
    return profile


def build_context(profile: UserProfile, request: GenerationRequest, week_start_date: date, recent_meal_names=None) -> GenerationContext:
    """Merge the stored profile with the per-request overrides."""
    household = request.household_servings
    if household is None and profile.household_servings:
        household = HouseholdServingsConfig(days=json.loads(profile.household_servings))
    return GenerationContext(
        user_id=profile.id,
        week_start_date=week_start_date,
        targets=Macros(
            calories=profile.target_calories,
            protein=profile.target_protein,
            carbs=profile.target_carbs,
            fat=profile.target_fat,
        ),
        dietary_restrictions=_loads(profile.dietary_restrictions, []),
        meal_types=_loads(profile.meal_types, ["breakfast", "lunch", "dinner"]),
        snack_count=profile.snack_count or 0,
        meal_complexity=_loads(profile.meal_complexity, {}),
        theme=request.theme or profile.preferred_theme,
        protein_focus=request.protein_focus,
        household=household,
        liked_ingredients=_loads(profile.liked_ingredients, []),
        disliked_ingredients=_loads(profile.disliked_ingredients, []),
        recent_meal_names=recent_meal_names or [],
        ingredient_variety=IngredientVarietyPrefs(**_loads(profile.ingredient_variety_prefs, {})),
        liked_meals=_loads(profile.liked_meals, []),
        disliked_meals=_loads(profile.disliked_meals, []),
        validated_meals=_loads(profile.validated_meals, []),
    )


def _error_message(exc: Exception) -> str:
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    stage = getattr(exc, "stage", None)
    return f"{message} (stage: {stage})" if stage else message


class JobService:
    """Entry points for generation jobs."""

    def create_job(
        self,
        db: Session,
        user_id: str,
        request: GenerationRequest,
        background_tasks: BackgroundTasks,
        capability: GenerativeCapability,
    ) -> GenerationJob:
        """Insert a pending job and schedule its execution.

        Raises:
            InvalidRequestError: Bad week, missing profile, or the week already
                has a plan and regeneration was not requested (or was
                requested again within the debounce window).
            ConflictError: A job for the same user and week is still running.
        """
        week_start_date = resolve_week_start(request.week_start_date)
        check_profile(ProfileRepository(db).get_by_id(user_id), user_id)

        jobs = JobRepository(db)
        with _create_lock:
            now = datetime.utcnow()
            for existing in jobs.find_for_week(user_id, week_start_date, statuses=ACTIVE_STATUSES):
                if not is_stale(existing, now):
                    raise ConflictError(
                        f"A meal plan for {week_start_date} is already being generated",
                        job_id=existing.id,
                    )

            if MealPlanRepository(db).exists_for_week(user_id, week_start_date):
                if not request.regenerate:
                    raise InvalidRequestError(
                        f"A meal plan already exists for {week_start_date}; set regenerate to replace it",
                        field="regenerate",
                    )
                latest = jobs.latest_for_week(user_id, week_start_date)
                if latest is not None and (now - latest.created_at).total_seconds() < config.REGENERATE_DEBOUNCE_SECONDS:
                    raise InvalidRequestError("Regeneration requested too soon, try again shortly", field="regenerate")

            payload = request.model_copy(update={"week_start_date": week_start_date})
            job = jobs.create(GenerationJob(
                user_id=user_id,
                week_start_date=week_start_date,
                status=PENDING,
                progress_message=PROGRESS_MESSAGES[PENDING],
                request_payload=payload.model_dump_json(),
            ))

        logger.info("Created job %s for user %s week %s", job.id, user_id, week_start_date)
        background_tasks.add_task(self.execute_job, job.id, capability)
        return job

    def get_status(self, db: Session, job_id: str, user_id: str) -> JobStatusView:
        job = JobRepository(db).get_owned(job_id, user_id)
        if job is None:
            raise NotFoundError("GenerationJob", job_id)
        return build_status_view(job)

    def get_latest_status(self, db: Session, user_id: str, week_start_date: date) -> JobStatusView:
        job = JobRepository(db).latest_for_week(user_id, week_start_date)
        if job is None:
            raise NotFoundError("GenerationJob", f"{user_id}/{week_start_date}")
        return build_status_view(job)

    def execute_job(
        self,
        job_id: str,
        capability: GenerativeCapability,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        """Run generation for a job and record the outcome on it.

        The plan rows and the completed status are committed together. Any
        exception marks the job failed; nothing is raised to the caller. A job
        that outlives `JOB_STALE_AFTER_SECONDS` is failed at its next
        transition and its output is dropped.
        """
        db = (session_factory or WriteSessionLocal)()
        try:
            job = JobRepository(db).get_by_id(job_id)
            if job is None:
                logger.error("Job %s not found, nothing to execute", job_id)
                return
            machine = JobStateMachine(db, job)
            try:
                request = GenerationRequest.model_validate_json(job.request_payload)
                profile = check_profile(ProfileRepository(db).get_by_id(job.user_id), job.user_id)
                context = build_context(
                    profile,
                    request,
                    job.week_start_date,
                    meal_plan_service.recent_meal_names(db, job.user_id),
                )
                generated = GenerationOrchestrator(capability).generate(context, on_stage=machine.advance)

                machine.advance(SAVING)
                plan = meal_plan_service.save_generated_plan(db, context, generated)
                machine.complete(plan.id, commit=False)
                db.commit()
            except JobTimedOutError:
                logger.warning("Job %s timed out, generated output discarded", job_id)
            except Exception as exc:
                db.rollback()
                logger.exception("Job %s failed", job_id)
                if not machine.is_terminal:
                    machine.fail(_error_message(exc))
        finally:
            db.close()


# export singleton
job_service = JobService()
__all__ = ["JobService", "job_service", "next_monday", "resolve_week_start", "build_context"]
