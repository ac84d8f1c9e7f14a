"""Jobs API router.

Polling endpoints for generation jobs. Both endpoints are read-only; a job
that has been running for too long is reported as failed without touching
the stored record.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_current_user_id
from core.logger import get_logger
from database.deps import get_db_read
from schemas import JobStatusView
from services.job_service import job_service

logger = get_logger("api.jobs")
router = APIRouter(prefix="/api", tags=["jobs"])


@router.get("/jobs/{job_id}", response_model=JobStatusView)
def get_job_status(job_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db_read)):
    """Return the current status of a generation job.

    Raises:
        NotFoundError: If the job does not exist or belongs to another user.
    """
    return job_service.get_status(db, job_id, user_id)


@router.get("/jobs", response_model=JobStatusView)
def get_latest_job_status(
    week_start_date: date = Query(..., examples=["2026-10-19"]),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_read),
):
    """Return the status of the most recent job for a week."""
    return job_service.get_latest_status(db, user_id, week_start_date)
