"""Initial schema: cases, duplicate candidates and the resolution audit.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from caseintake.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUM_LENGTH = 32
CASE_ID_LENGTH = 64


def upgrade() -> None:
    op.create_table(
        "case_record",
        sa.Column("id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("category", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("status", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("reported_at", UTCDateTime(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.Column("external_case_id", sa.String(), nullable=True),
        sa.Column("chip_id", sa.String(), nullable=True),
        sa.Column("assigned_to", sa.String(), nullable=True),
        sa.Column("merge_flag", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("merged_into_id", sa.String(CASE_ID_LENGTH), nullable=True),
        sa.Column("merged_at", UTCDateTime(), nullable=True),
        sa.Column("merged_by", sa.String(), nullable=True),
        sa.Column("merge_notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["merged_into_id"],
            ["case_record.id"],
            name="fk_case_record_merged_into_id_case_record",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_case_record"),
    )
    op.create_index("ix_case_record_external_case_id", "case_record", ["external_case_id"])
    op.create_index("ix_case_record_chip_id", "case_record", ["chip_id"])
    op.create_index("ix_case_record_merged_into_id", "case_record", ["merged_into_id"])

    op.create_table(
        "case_attachment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("uploaded_by", sa.String(), nullable=False),
        sa.Column("uploaded_at", UTCDateTime(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["case_id"],
            ["case_record.id"],
            name="fk_case_attachment_case_id_case_record",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_case_attachment"),
    )
    op.create_index("ix_case_attachment_case_id", "case_attachment", ["case_id"])

    op.create_table(
        "case_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("performed_by", sa.String(), nullable=False),
        sa.Column("performed_at", UTCDateTime(), nullable=False),
        sa.Column("previous_status", sa.String(ENUM_LENGTH), nullable=True),
        sa.Column("new_status", sa.String(ENUM_LENGTH), nullable=True),
        sa.ForeignKeyConstraint(
            ["case_id"],
            ["case_record.id"],
            name="fk_case_history_case_id_case_record",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_case_history"),
    )
    op.create_index("ix_case_history_case_id", "case_history", ["case_id"])

    op.create_table(
        "duplicate_candidate",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("primary_case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("duplicate_case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("pair_low", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("pair_high", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("match_type", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("status", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("reviewed_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(
            ["primary_case_id"],
            ["case_record.id"],
            name="fk_duplicate_candidate_primary_case_id_case_record",
        ),
        sa.ForeignKeyConstraint(
            ["duplicate_case_id"],
            ["case_record.id"],
            name="fk_duplicate_candidate_duplicate_case_id_case_record",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_duplicate_candidate"),
        sa.UniqueConstraint("pair_low", "pair_high", name="uq_duplicate_candidate_pair"),
    )
    op.create_index("ix_duplicate_candidate_status", "duplicate_candidate", ["status"])
    op.create_index(
        "ix_duplicate_candidate_primary_case_id", "duplicate_candidate", ["primary_case_id"]
    )
    op.create_index(
        "ix_duplicate_candidate_duplicate_case_id", "duplicate_candidate", ["duplicate_case_id"]
    )

    op.create_table(
        "resolution_audit",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("actor", sa.String(), nullable=False),
        sa.Column("action", sa.String(ENUM_LENGTH), nullable=False),
        sa.Column("primary_case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("duplicate_case_id", sa.String(CASE_ID_LENGTH), nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["candidate_id"],
            ["duplicate_candidate.id"],
            name="fk_resolution_audit_candidate_id_duplicate_candidate",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_resolution_audit"),
    )
    op.create_index("ix_resolution_audit_candidate_id", "resolution_audit", ["candidate_id"])
    op.create_index("ix_resolution_audit_actor", "resolution_audit", ["actor"])
    op.create_index(
        "ix_resolution_audit_primary_case_id", "resolution_audit", ["primary_case_id"]
    )
    op.create_index(
        "ix_resolution_audit_duplicate_case_id", "resolution_audit", ["duplicate_case_id"]
    )


def downgrade() -> None:
    op.drop_table("resolution_audit")
    op.drop_table("duplicate_candidate")
    op.drop_table("case_history")
    op.drop_table("case_attachment")
    op.drop_table("case_record")
