from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProgressStatusRequest(BaseModel):
    employee_id: int
    module_id: int
    status: str
    score: float | None = None


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    progress_id: int
    employee_id: int
    module_id: int
    program_id: int
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    score: float | None = None
    attempts: int
