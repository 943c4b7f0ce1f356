"""Initial schema for appointments and commission settlement.

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-18 10:12:41.118305

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c1e9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("admin", "professional", "content_manager", "financial", name="userrole")
appointment_type = sa.Enum("regular", "first_time", "emergency", name="appointmenttype")
appointment_status = sa.Enum("scheduled", "completed", "cancelled", name="appointmentstatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=26), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=150), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="professional"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("commission_rate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accrued_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("owed_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "patients",
        sa.Column("patient_id", sa.String(length=26), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=150)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.String(length=26), primary_key=True),
        sa.Column("patient_id", sa.String(length=26), sa.ForeignKey("patients.patient_id", ondelete="RESTRICT")),
        sa.Column("patient_name", sa.String(length=150)),
        sa.Column("professional_id", sa.String(length=26), sa.ForeignKey("users.user_id", ondelete="SET NULL")),
        sa.Column("professional_name", sa.String(length=150)),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("type", appointment_type, nullable=False, server_default="regular"),
        sa.Column("status", appointment_status, nullable=False, server_default="scheduled"),
        sa.Column("notes", sa.Text()),
        sa.Column("audio_note", sa.String(length=255)),
        sa.Column("attended", sa.Boolean()),
        sa.Column("session_cost", sa.Numeric(12, 2)),
        sa.Column("payment_amount", sa.Numeric(12, 2)),
        sa.Column("no_show_payment_amount", sa.Numeric(12, 2)),
        sa.Column("remaining_balance", sa.Numeric(12, 2)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_appointments_professional_date", "appointments", ["professional_id", "active", "date"])
    op.create_index(
        "ix_appointments_active_status_date",
        "appointments",
        ["active", "status", "date", "start_time"],
    )
    op.create_index("ix_appointments_patient", "appointments", ["patient_id", "active"])

    op.create_table(
        "settlement_payments",
        sa.Column("payment_id", sa.String(length=26), primary_key=True),
        sa.Column("professional_id", sa.String(length=26), sa.ForeignKey("users.user_id", ondelete="SET NULL")),
        sa.Column("professional_name", sa.String(length=150), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_settlement_payments_amount_positive"),
    )
    op.create_index(
        "ix_settlement_payments_professional_paid_at",
        "settlement_payments",
        ["professional_id", "paid_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_settlement_payments_professional_paid_at", table_name="settlement_payments")
    op.drop_table("settlement_payments")
    op.drop_index("ix_appointments_patient", table_name="appointments")
    op.drop_index("ix_appointments_active_status_date", table_name="appointments")
    op.drop_index("ix_appointments_professional_date", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("patients")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        appointment_status.drop(bind, checkfirst=True)
        appointment_type.drop(bind, checkfirst=True)
        user_role.drop(bind, checkfirst=True)
