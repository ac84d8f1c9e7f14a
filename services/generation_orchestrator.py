"""Three-stage meal-plan generation on top of a `GenerativeCapability`.

Stages run in order: core ingredients, meals, prep sessions. Each attempt is
classified as ok, schema violation or unavailable. A failed stage is retried
up to `GENERATION_MAX_RETRIES` times, with the violations of the previous
attempt appended to the prompt, and then the stage error is raised. Nothing
is ever filled in on the model's behalf.

Household scaling happens between stage two and stage three so that the prep
instructions are written against the quantities that end up in the plan.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from core import config
from core.exceptions import GenerationSchemaViolationError, GenerationUnavailableError
from core.logger import get_logger
from schemas.generation_schema import (
    CoreIngredientsOutput,
    GeneratedMeal,
    GenerationContext,
    MealsOutput,
    PrepOutput,
)
from schemas.meal_plan_schema import DAYS_OF_WEEK, Ingredient, Meal, normalize_ingredient_name
from services import generation_prompts as prompts
from services.generative_capability import GenerativeCapability
from services.household_scaler import HouseholdScaler, household_scaler
from services.plan_validation import meal_types_for_day, validate_core_ingredients, validate_meals
from services.unit_normalizer import NormalizedQuantity, UnitNormalizer, format_amount, unit_normalizer

logger = get_logger("services.generation_orchestrator")

STAGE_INGREDIENTS = "generating_ingredients"
STAGE_MEALS = "generating_meals"
STAGE_PREP = "generating_prep"

RESULT_OK = "ok"
RESULT_SCHEMA_VIOLATION = "schema_violation"
RESULT_UNAVAILABLE = "unavailable"


@dataclass
class StageResult:
    """Outcome of one stage attempt."""

    kind: str
    value: Any = None
    violations: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == RESULT_OK


@dataclass
class GeneratedSlot:
    meal_type: str
    position: int
    meal: Meal
    servings: float


@dataclass
class GeneratedPlan:
    """A validated, household-scaled week ready to be persisted."""

    title: str
    core_ingredients: CoreIngredientsOutput
    days: Dict[str, List[GeneratedSlot]]
    prep: PrepOutput


def _validation_messages(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location or 'output'}: {error.get('msg')}")
    return messages


class GenerationOrchestrator:
    """Runs the generation stages for one job."""

    def __init__(
        self,
        capability: GenerativeCapability,
        max_retries: Optional[int] = None,
        scaler: Optional[HouseholdScaler] = None,
        normalizer: Optional[UnitNormalizer] = None,
    ):
        self.capability = capability
        self.max_retries = config.GENERATION_MAX_RETRIES if max_retries is None else max_retries
        self.scaler = scaler or household_scaler
        self.normalizer = normalizer or unit_normalizer

    def _attempt(
        self,
        tool: Dict[str, Any],
        prompt: str,
        model: type,
        check: Callable[[BaseModel], List[str]],
    ) -> StageResult:
        try:
            raw = self.capability.generate(prompt, tool)
        except GenerationUnavailableError as exc:
            return StageResult(RESULT_UNAVAILABLE, error=exc.message)
        except GenerationSchemaViolationError as exc:
            return StageResult(RESULT_SCHEMA_VIOLATION, violations=exc.violations or [exc.message], error=exc.message)

        try:
            value = model.model_validate(raw)
        except ValidationError as exc:
            return StageResult(RESULT_SCHEMA_VIOLATION, violations=_validation_messages(exc))

        violations = check(value)
        if violations:
            return StageResult(RESULT_SCHEMA_VIOLATION, value=value, violations=violations)
        return StageResult(RESULT_OK, value=value)

    def run_stage(
        self,
        stage: str,
        tool: Dict[str, Any],
        build_prompt: Callable[[Optional[List[str]]], str],
        model: type,
        check: Callable[[BaseModel], List[str]],
    ):
        """Run one stage with bounded repair retries and return its validated output.

        Raises:
            GenerationUnavailableError: The last attempt could not reach the capability.
            GenerationSchemaViolationError: The last attempt returned invalid output.
        """
        violations = None
        result = None
        for attempt in range(self.max_retries + 1):
            result = self._attempt(tool, build_prompt(violations), model, check)
            if result.ok:
                if attempt:
                    logger.info("Stage %s succeeded after %s retries", stage, attempt)
                return result.value
            logger.warning(
                "Stage %s attempt %s/%s: %s (%s)",
                stage, attempt + 1, self.max_retries + 1, result.kind,
                result.error or "; ".join(result.violations[:5]),
            )
            violations = result.violations or None

        if result.kind == RESULT_UNAVAILABLE:
            raise GenerationUnavailableError(result.error or "Generative capability unavailable", stage=stage)
        raise GenerationSchemaViolationError(
            f"Stage {stage} output failed validation after {self.max_retries + 1} attempts",
            stage=stage,
            violations=result.violations,
        )

    def scale_meal(self, generated: GeneratedMeal, multiplier: float) -> Meal:
        """Copy a generated meal, multiplying every numeric amount by `multiplier`.

        Non-numeric amounts are kept as written. Macros stay per portion.
        """
        ingredients = []
        for ing in generated.ingredients:
            amount = ing.amount
            if multiplier != 1:
                quantity = self.normalizer.normalize(ing.amount, ing.unit)
                if isinstance(quantity, NormalizedQuantity):
                    amount = format_amount(quantity.amount * multiplier)
            ingredients.append(Ingredient(
                name=ing.name,
                name_normalized=normalize_ingredient_name(ing.name),
                amount=amount,
                unit=ing.unit.strip(),
                category=ing.category,
                calories=ing.calories,
                protein=ing.protein,
                carbs=ing.carbs,
                fat=ing.fat,
            ))
        return Meal(
            name=generated.name,
            ingredients=ingredients,
            instructions=generated.instructions,
            macros=generated.macros,
            prep_time_minutes=generated.prep_time_minutes,
            cook_time_minutes=generated.cook_time_minutes,
            servings=multiplier,
        )

    def arrange_days(self, context: GenerationContext, meals: MealsOutput) -> Dict[str, List[GeneratedSlot]]:
        """Group meals by day, order them by meal type and scale them to the household."""
        order = meal_types_for_day(context.meal_types, context.snack_count)
        rank = {}
        for index, meal_type in enumerate(order):
            rank.setdefault(meal_type, index)

        days = {}
        for day in DAYS_OF_WEEK:
            generated = [meal for meal in meals.meals if meal.day == day]
            generated.sort(key=lambda meal: rank.get(meal.type, len(order)))
            slots = []
            for position, meal in enumerate(generated):
                multiplier = self.scaler.compute_multiplier(context.household, day, meal.type)
                slots.append(GeneratedSlot(
                    meal_type=meal.type,
                    position=position,
                    meal=self.scale_meal(meal, multiplier),
                    servings=multiplier,
                ))
            days[day] = slots
        return days

    def generate(self, context: GenerationContext, on_stage: Optional[Callable[[str], None]] = None) -> GeneratedPlan:
        """Run all three stages for `context`.

        Args:
            context: Resolved profile and request data.
            on_stage: Called with the stage name before each stage starts;
                the job executor uses it to advance the job status.
        """
        notify = on_stage or (lambda stage: None)

        notify(STAGE_INGREDIENTS)
        core = self.run_stage(
            STAGE_INGREDIENTS,
            prompts.CORE_INGREDIENTS_TOOL,
            lambda violations: prompts.build_core_ingredients_prompt(context, violations),
            CoreIngredientsOutput,
            lambda output: validate_core_ingredients(output, context),
        )

        notify(STAGE_MEALS)
        meals = self.run_stage(
            STAGE_MEALS,
            prompts.MEALS_TOOL,
            lambda violations: prompts.build_meals_prompt(context, core, violations),
            MealsOutput,
            lambda output: validate_meals(output, context),
        )
        days = self.arrange_days(context, meals)

        notify(STAGE_PREP)
        scaled = [(day, slot.meal_type, slot.meal) for day in DAYS_OF_WEEK for slot in days[day]]
        prep = self.run_stage(
            STAGE_PREP,
            prompts.PREP_SESSIONS_TOOL,
            lambda violations: prompts.build_prep_prompt(context, scaled, violations),
            PrepOutput,
            lambda output: [] if output.prep_sessions else ["At least one prep session is required"],
        )

        logger.info(
            "Generated plan '%s' for user %s week %s (%s meals)",
            meals.title, context.user_id, context.week_start_date, len(meals.meals),
        )
        return GeneratedPlan(title=meals.title, core_ingredients=core, days=days, prep=prep)


__all__ = ["GenerationOrchestrator", "GeneratedPlan", "GeneratedSlot", "StageResult"]
