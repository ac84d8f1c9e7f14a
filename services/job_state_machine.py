"""Lifecycle of a generation job.

::

    pending -> generating_ingredients -> generating_meals -> generating_prep
            -> saving -> completed
    (any non-terminal state) -> failed

Success transitions move exactly one step forward. `completed` and `failed`
are terminal: the record never changes again. A completed job carries a
`result_plan_id` and no error; a failed job carries an `error_message` and
no plan.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core import config
from core.exceptions import InvalidTransitionError, JobTimedOutError
from core.logger import get_logger
from database.models import GenerationJob
from schemas.job_schema import JobStatusView

logger = get_logger("services.job_state_machine")

PENDING = "pending"
GENERATING_INGREDIENTS = "generating_ingredients"
GENERATING_MEALS = "generating_meals"
GENERATING_PREP = "generating_prep"
SAVING = "saving"
COMPLETED = "completed"
FAILED = "failed"

JOB_STATUS_ORDER = [PENDING, GENERATING_INGREDIENTS, GENERATING_MEALS, GENERATING_PREP, SAVING, COMPLETED]
TERMINAL_STATUSES = {COMPLETED, FAILED}
ACTIVE_STATUSES = [s for s in JOB_STATUS_ORDER if s not in TERMINAL_STATUSES]

PROGRESS_MESSAGES = {
    PENDING: "Queued",
    GENERATING_INGREDIENTS: "Choosing core ingredients",
    GENERATING_MEALS: "Creating meals",
    GENERATING_PREP: "Planning prep sessions",
    SAVING: "Saving meal plan",
    COMPLETED: "Meal plan ready",
    FAILED: "Generation failed",
}

STALE_JOB_MESSAGE = "Generation timed out"


def can_transition(current: str, target: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if target == FAILED:
        return True
    if current not in JOB_STATUS_ORDER or target not in JOB_STATUS_ORDER:
        return False
    return JOB_STATUS_ORDER.index(target) == JOB_STATUS_ORDER.index(current) + 1


def is_stale(job: GenerationJob, now: Optional[datetime] = None) -> bool:
    """True for a non-terminal job older than `JOB_STALE_AFTER_SECONDS`."""
    if job.status in TERMINAL_STATUSES:
        return False
    now = now or datetime.utcnow()
    return (now - job.created_at).total_seconds() > config.JOB_STALE_AFTER_SECONDS


def build_status_view(job: GenerationJob, now: Optional[datetime] = None) -> JobStatusView:
    """Status as seen by clients.

    A stale job is reported as failed; the stored record is left untouched.
    """
    if is_stale(job, now):
        return JobStatusView(
            job_id=job.id,
            status=FAILED,
            progress_message=PROGRESS_MESSAGES[FAILED],
            meal_plan_id=None,
            error_message=STALE_JOB_MESSAGE,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
    return JobStatusView(
        job_id=job.id,
        status=job.status,
        progress_message=job.progress_message,
        meal_plan_id=job.result_plan_id,
        error_message=job.error_message,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


class JobStateMachine:
    """Applies transitions to one job and persists each one.

    Only the executor of a job should hold a state machine for it. Before
    every success transition the job's age is checked: once a job is past
    the stale threshold, pollers already see it as failed, so the record is
    failed for real and `JobTimedOutError` stops the executor.
    """

    def __init__(self, session: Session, job: GenerationJob):
        self.session = session
        self.job = job

    def _check(self, target: str):
        if not can_transition(self.job.status, target):
            raise InvalidTransitionError(self.job.status, target)

    def _abandon_if_stale(self):
        if is_stale(self.job):
            # drop anything staged for this job, e.g. plan rows awaiting commit
            self.session.rollback()
            self.fail(STALE_JOB_MESSAGE)
            raise JobTimedOutError(self.job.id)

    @property
    def is_terminal(self) -> bool:
        return self.job.status in TERMINAL_STATUSES

    def advance(self, target: str):
        """Move one step along the success path and commit.

        Raises:
            JobTimedOutError: The job went stale; it is now recorded as failed.
        """
        if target in (COMPLETED, FAILED):
            raise InvalidTransitionError(self.job.status, target)
        self._check(target)
        self._abandon_if_stale()
        self.job.status = target
        self.job.progress_message = PROGRESS_MESSAGES[target]
        self.session.commit()
        logger.info("Job %s -> %s", self.job.id, target)

    def complete(self, plan_id: str, commit: bool = True):
        """Mark the job completed with its plan.

        Pass ``commit=False`` to let the caller commit the plan rows and the
        status change in one transaction. A stale job is failed instead and
        the uncommitted plan rows are rolled back.
        """
        self._check(COMPLETED)
        self._abandon_if_stale()
        self.job.status = COMPLETED
        self.job.progress_message = PROGRESS_MESSAGES[COMPLETED]
        self.job.result_plan_id = plan_id
        self.job.error_message = None
        if commit:
            self.session.commit()
        logger.info("Job %s completed with plan %s", self.job.id, plan_id)

    def fail(self, message: str):
        self._check(FAILED)
        self.job.status = FAILED
        self.job.progress_message = PROGRESS_MESSAGES[FAILED]
        self.job.error_message = message or "Generation failed"
        self.job.result_plan_id = None
        self.session.commit()
        logger.warning("Job %s failed: %s", self.job.id, self.job.error_message)
