from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from trainhub.infra.db import Base, UTCDateTime, utcnow


class Employee(Base):
    __tablename__ = "employees"

    employee_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    hire_date: Mapped[date | None] = mapped_column(Date)
    department: Mapped[str | None] = mapped_column(String(120))
    position: Mapped[str | None] = mapped_column(String(120))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # Soft-deleted employees release their email address.
        Index(
            "uq_employees_active_email",
            "email",
            unique=True,
            sqlite_where=text("active = 1 AND email IS NOT NULL"),
            postgresql_where=text("active AND email IS NOT NULL"),
        ),
        Index("ix_employees_name", "last_name", "first_name"),
        Index("ix_employees_department", "department"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
