from __future__ import annotations

from datetime import datetime

from sqlalchemy import Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from trainhub.infra.db import Base, UTCDateTime

STATUS_NOT_STARTED = "not_started"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
PROGRESS_STATUSES = (STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_COMPLETED)


class TrainingProgress(Base):
    __tablename__ = "training_progress"

    progress_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.employee_id"), nullable=False)
    # No ON DELETE action: removing a module leaves its progress rows behind.
    module_id: Mapped[int] = mapped_column(ForeignKey("training_modules.module_id"), nullable=False)
    program_id: Mapped[int] = mapped_column(
        ForeignKey("training_programs.program_id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=STATUS_NOT_STARTED, server_default=STATUS_NOT_STARTED
    )
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    score: Mapped[float | None] = mapped_column(Float)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        UniqueConstraint("employee_id", "module_id", name="uq_training_progress_employee_module"),
        Index("ix_training_progress_employee_id", "employee_id"),
        Index("ix_training_progress_program_id", "program_id"),
        Index("ix_training_progress_employee_program", "employee_id", "program_id"),
    )
