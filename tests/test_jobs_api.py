"""Tests for generation job creation, polling and execution."""
import json
from datetime import date, datetime, timedelta

import pytest
from fastapi import BackgroundTasks

from api.jobs import get_job_status, get_latest_job_status
from api.meal_plans import generate_meal_plan
from core import config
from core.exceptions import ConflictError, GenerationUnavailableError, InvalidRequestError, NotFoundError
from database.models import GenerationJob, MealPlan
from factories import FakeCapability, core_payload, happy_capability, meals_payload, prep_payload
from schemas.profile_schema import GenerationRequest
from services.job_service import build_context, job_service, next_monday

WEEK = date(2026, 10, 19)


def _start(db, profile, capability, **request):
    tasks = BackgroundTasks()
    request.setdefault("week_start_date", WEEK)
    response = generate_meal_plan(
        payload=GenerationRequest(**request),
        background_tasks=tasks,
        user_id=profile.id,
        db=db,
        capability=capability,
    )
    return response, tasks


def _run(tasks):
    for task in tasks.tasks:
        task.func(*task.args, **task.kwargs)


def test_status_is_pending_right_after_creation(db, profile):
    response, tasks = _start(db, profile, happy_capability())

    assert response.status == "pending"
    assert len(tasks.tasks) == 1
    status = get_job_status(job_id=response.job_id, user_id=profile.id, db=db)
    assert status.status == "pending"
    assert status.meal_plan_id is None and status.error_message is None


def test_job_completes_and_persists_plan(db, profile):
    response, tasks = _start(db, profile, happy_capability())
    _run(tasks)

    db.expire_all()
    status = get_job_status(job_id=response.job_id, user_id=profile.id, db=db)
    assert status.status == "completed"
    assert status.meal_plan_id is not None
    assert status.error_message is None

    plan = db.get(MealPlan, status.meal_plan_id)
    assert plan.user_id == profile.id
    assert [day.day for day in plan.days] == [
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    ]
    assert all(len(day.slots) == 3 for day in plan.days)
    assert json.loads(plan.core_ingredients)["proteins"] == ["chicken breast", "eggs", "salmon"]


def test_retry_after_missing_macro_persists_only_corrected_plan(db, profile):
    broken = meals_payload()
    del broken["meals"][0]["macros"]["protein"]
    capability = FakeCapability({
        "select_core_ingredients": [core_payload()],
        "generate_meals": [broken, meals_payload()],
        "generate_prep_sessions": [prep_payload()],
    })
    response, tasks = _start(db, profile, capability)
    _run(tasks)

    db.expire_all()
    status = get_job_status(job_id=response.job_id, user_id=profile.id, db=db)
    assert status.status == "completed"
    plans = db.query(MealPlan).filter(MealPlan.user_id == profile.id).all()
    assert len(plans) == 1
    for day in plans[0].days:
        for slot in day.slots:
            assert json.loads(slot.meal)["macros"]["protein"] == 54.5


def test_failed_job_records_error_and_no_plan(db, profile):
    capability = FakeCapability({"select_core_ingredients": [GenerationUnavailableError("upstream down")]})
    response, tasks = _start(db, profile, capability)
    _run(tasks)

    db.expire_all()
    status = get_job_status(job_id=response.job_id, user_id=profile.id, db=db)
    assert status.status == "failed"
    assert "upstream down" in status.error_message
    assert status.meal_plan_id is None
    assert db.query(MealPlan).filter(MealPlan.user_id == profile.id).count() == 0


def test_duplicate_request_while_generating_is_a_conflict(db, profile):
    response, _ = _start(db, profile, happy_capability())
    job = db.get(GenerationJob, response.job_id)
    job.status = "generating_meals"
    db.commit()

    with pytest.raises(ConflictError) as exc_info:
        _start(db, profile, happy_capability())
    assert exc_info.value.status_code == 409
    assert exc_info.value.details["job_id"] == response.job_id

    db.refresh(job)
    assert job.status == "generating_meals"


def test_stale_job_does_not_block_a_new_request(db, profile):
    response, _ = _start(db, profile, happy_capability())
    job = db.get(GenerationJob, response.job_id)
    job.created_at = datetime.utcnow() - timedelta(hours=1)
    db.commit()

    assert get_job_status(job_id=job.id, user_id=profile.id, db=db).status == "failed"
    second, _ = _start(db, profile, happy_capability())
    assert second.job_id != job.id


def test_stale_job_cannot_complete_after_being_reported_failed(db, profile):
    first_capability = happy_capability()
    first, first_tasks = _start(db, profile, first_capability)
    job = db.get(GenerationJob, first.job_id)
    job.created_at = datetime.utcnow() - timedelta(hours=1)
    db.commit()
    assert get_job_status(job_id=first.job_id, user_id=profile.id, db=db).error_message == "Generation timed out"

    second, second_tasks = _start(db, profile, happy_capability())
    _run(second_tasks)
    _run(first_tasks)

    db.expire_all()
    stale = get_job_status(job_id=first.job_id, user_id=profile.id, db=db)
    assert stale.status == "failed"
    assert stale.error_message == "Generation timed out"
    assert stale.meal_plan_id is None
    assert first_capability.calls == []
    assert get_job_status(job_id=second.job_id, user_id=profile.id, db=db).status == "completed"
    plans = db.query(MealPlan).filter(MealPlan.user_id == profile.id, MealPlan.week_start_date == WEEK)
    assert plans.count() == 1


def test_job_timing_out_mid_run_saves_nothing(db, profile, monkeypatch):
    capability = happy_capability()
    generate = capability.generate

    def slow_generate(prompt, tool):
        if tool["name"] == "generate_prep_sessions":
            monkeypatch.setattr(config, "JOB_STALE_AFTER_SECONDS", -1)
        return generate(prompt, tool)

    capability.generate = slow_generate
    response, tasks = _start(db, profile, capability)
    _run(tasks)

    db.expire_all()
    status = get_job_status(job_id=response.job_id, user_id=profile.id, db=db)
    assert status.status == "failed"
    assert status.error_message == "Generation timed out"
    assert db.query(MealPlan).filter(MealPlan.user_id == profile.id).count() == 0


def test_existing_plan_requires_regenerate(db, profile):
    _, tasks = _start(db, profile, happy_capability())
    _run(tasks)

    with pytest.raises(InvalidRequestError) as exc_info:
        _start(db, profile, happy_capability())
    assert exc_info.value.details["field"] == "regenerate"

    with pytest.raises(InvalidRequestError):
        _start(db, profile, happy_capability(), regenerate=True)


def test_regenerate_allowed_after_debounce_window(db, profile):
    first, tasks = _start(db, profile, happy_capability())
    _run(tasks)
    db.expire_all()
    job = db.get(GenerationJob, first.job_id)
    job.created_at = datetime.utcnow() - timedelta(minutes=5)
    db.commit()

    second, _ = _start(db, profile, happy_capability(), regenerate=True)
    assert second.status == "pending"


def test_week_must_start_on_monday(db, profile):
    with pytest.raises(InvalidRequestError) as exc_info:
        _start(db, profile, happy_capability(), week_start_date=date(2026, 10, 20))
    assert exc_info.value.details["field"] == "week_start_date"


def test_unknown_profile_is_rejected(db, profile):
    with pytest.raises(InvalidRequestError):
        job_service.create_job(db, "nobody", GenerationRequest(week_start_date=WEEK), BackgroundTasks(), happy_capability())


def test_profile_without_targets_is_rejected(db, profile):
    profile.target_protein = 0
    db.commit()
    with pytest.raises(InvalidRequestError) as exc_info:
        _start(db, profile, happy_capability())
    assert exc_info.value.details["field"] == "target_protein"


def test_job_of_another_user_is_not_found(db, profile):
    response, _ = _start(db, profile, happy_capability())
    with pytest.raises(NotFoundError):
        get_job_status(job_id=response.job_id, user_id="someone-else", db=db)


def test_latest_status_for_week(db, profile):
    response, _ = _start(db, profile, happy_capability())
    status = get_latest_job_status(week_start_date=WEEK, user_id=profile.id, db=db)
    assert status.job_id == response.job_id
    with pytest.raises(NotFoundError):
        get_latest_job_status(week_start_date=date(2027, 1, 4), user_id=profile.id, db=db)


def test_default_week_is_next_monday():
    assert next_monday(date(2026, 10, 18)) == date(2026, 10, 19)
    assert next_monday(date(2026, 10, 19)) == date(2026, 10, 26)
    assert next_monday(date(2026, 10, 23)).weekday() == 0


def test_context_reads_meal_preferences_from_profile(db, profile):
    profile.ingredient_variety_prefs = json.dumps({"proteins": 4, "vegetables": 6, "pantry": 3})
    profile.liked_meals = json.dumps(["Turkey chili"])
    profile.disliked_meals = json.dumps(["Tuna casserole"])
    profile.validated_meals = json.dumps([
        {"meal_name": "Turkey chili", "calories": 520, "protein": 45, "carbs": 40, "fat": 18},
    ])
    db.commit()

    context = build_context(profile, GenerationRequest(), WEEK)
    assert context.ingredient_variety.proteins == 4
    assert context.ingredient_variety.vegetables == 6
    assert context.ingredient_variety.fruits == 2
    assert context.liked_meals == ["Turkey chili"]
    assert context.disliked_meals == ["Tuna casserole"]
    assert context.validated_meals[0].protein == 45
