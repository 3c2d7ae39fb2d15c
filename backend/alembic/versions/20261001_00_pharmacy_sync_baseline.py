"""Pharmacy sync baseline schema.

Revision ID: 20261001_00
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261001_00"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "pharmacies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("npi", sa.String(20), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("is_partner", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("phone1", sa.String(50), nullable=True),
        sa.Column("phone2", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("street1", sa.String(200), nullable=True),
        sa.Column("street2", sa.String(200), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(2), nullable=True),
        sa.Column(
            "assigned_pharmacy_id",
            sa.Integer(),
            sa.ForeignKey("pharmacies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_patients_assigned_pharmacy_id", "patients", ["assigned_pharmacy_id"])
    op.create_index("ix_patients_last_first", "patients", ["last_name", "first_name"])

    op.create_table(
        "medications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("strength", sa.String(100), nullable=False, server_default=""),
        sa.Column("format", sa.String(50), nullable=False, server_default=""),
        sa.Column("dose_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("frequency", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("rx_number", sa.String(50), nullable=True),
        sa.Column("rx_filled_date", sa.Date(), nullable=True),
        sa.Column("rx_refills", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("ndc_id", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_medications_patient_id", "medications", ["patient_id"])
    op.create_index("ix_medications_name", "medications", ["name"])
    op.create_index("ix_medications_ndc_id", "medications", ["ndc_id"])
    op.create_index("ix_medications_patient_status", "medications", ["patient_id", "status"])

    op.create_table(
        "patient_pharmacy_sync",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "patient_id",
            sa.Integer(),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_patient_id", sa.String(100), nullable=True),
        sa.Column("external_group_id", sa.String(100), nullable=True),
        sa.Column("last_sync_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("last_medication_sync_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_patient_pharmacy_sync_patient_id",
        "patient_pharmacy_sync",
        ["patient_id"],
        unique=True,
    )
    op.create_index(
        "ix_patient_pharmacy_sync_external_patient_id",
        "patient_pharmacy_sync",
        ["external_patient_id"],
    )
    op.create_index(
        "ix_patient_pharmacy_sync_status",
        "patient_pharmacy_sync",
        ["last_sync_status"],
    )


def downgrade() -> None:
    op.drop_table("patient_pharmacy_sync")
    op.drop_table("medications")
    op.drop_table("patients")
    op.drop_table("pharmacies")
