"""Schemas for generation job creation and status polling."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class JobCreatedResponse(BaseModel):
    job_id: str
    status: str


class JobStatusView(BaseModel):
    """What a polling client sees. Exactly one of `meal_plan_id` / `error_message` is set once terminal."""

    job_id: str
    status: str
    progress_message: Optional[str] = None
    meal_plan_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
