"""training core tables

Revision ID: 0001_training_core
Revises: 
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_training_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "training_programs",
        sa.Column("program_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            # ORM-managed updated_at (no database trigger).
            nullable=False,
        ),
    )
    op.create_index("ix_training_programs_active", "training_programs", ["active"])
    op.create_index("ix_training_programs_created_at", "training_programs", ["created_at"])

    op.create_table(
        "training_modules",
        sa.Column("module_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "program_id",
            sa.Integer(),
            sa.ForeignKey("training_programs.program_id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("content", sa.Text()),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_training_modules_program_id", "training_modules", ["program_id"])
    op.create_index(
        "ix_training_modules_program_order", "training_modules", ["program_id", "order_index"]
    )

    op.create_table(
        "employees",
        sa.Column("employee_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("hire_date", sa.Date()),
        sa.Column("department", sa.String(length=120)),
        sa.Column("position", sa.String(length=120)),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "uq_employees_active_email",
        "employees",
        ["email"],
        unique=True,
        sqlite_where=sa.text("active = 1 AND email IS NOT NULL"),
        postgresql_where=sa.text("active AND email IS NOT NULL"),
    )
    op.create_index("ix_employees_name", "employees", ["last_name", "first_name"])
    op.create_index("ix_employees_department", "employees", ["department"])

    op.create_table(
        "training_progress",
        sa.Column("progress_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.employee_id"), nullable=False),
        sa.Column(
            "module_id", sa.Integer(), sa.ForeignKey("training_modules.module_id"), nullable=False
        ),
        sa.Column(
            "program_id",
            sa.Integer(),
            sa.ForeignKey("training_programs.program_id"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="not_started"),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("score", sa.Float()),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("employee_id", "module_id", name="uq_training_progress_employee_module"),
    )
    op.create_index("ix_training_progress_employee_id", "training_progress", ["employee_id"])
    op.create_index("ix_training_progress_program_id", "training_progress", ["program_id"])
    op.create_index(
        "ix_training_progress_employee_program", "training_progress", ["employee_id", "program_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_training_progress_employee_program", table_name="training_progress")
    op.drop_index("ix_training_progress_program_id", table_name="training_progress")
    op.drop_index("ix_training_progress_employee_id", table_name="training_progress")
    op.drop_table("training_progress")
    op.drop_index("ix_employees_department", table_name="employees")
    op.drop_index("ix_employees_name", table_name="employees")
    op.drop_index("uq_employees_active_email", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_training_modules_program_order", table_name="training_modules")
    op.drop_index("ix_training_modules_program_id", table_name="training_modules")
    op.drop_table("training_modules")
    op.drop_index("ix_training_programs_created_at", table_name="training_programs")
    op.drop_index("ix_training_programs_active", table_name="training_programs")
    op.drop_table("training_programs")
