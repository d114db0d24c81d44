"""Create lifters, meet_results and lifter_review_queue tables

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-19 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "4f1c2a9d7e30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "lifters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("external_id", sa.String(length=50), nullable=True),
        sa.Column("membership_number", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
    )
    op.create_index("idx_lifters_name", "lifters", ["name"], unique=False)
    op.create_index(
        "idx_lifters_membership_number", "lifters", ["membership_number"], unique=False
    )

    op.create_table(
        "meet_results",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lifter_id", sa.Integer(), nullable=False),
        sa.Column("meet_name", sa.String(length=255), nullable=False),
        sa.Column("meet_date", sa.Date(), nullable=False),
        sa.Column("scraped_name", sa.String(length=255), nullable=False),
        sa.Column("weight_class", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("age_category", sa.String(length=60), nullable=True),
        sa.Column("gender", sa.String(length=10), nullable=True),
        sa.Column("body_weight_kg", sa.Float(), nullable=True),
        sa.Column("club_name", sa.String(length=255), nullable=True),
        sa.Column("wso", sa.String(length=100), nullable=True),
        sa.Column("best_snatch_kg", sa.Float(), nullable=True),
        sa.Column("best_cj_kg", sa.Float(), nullable=True),
        sa.Column("total_kg", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lifter_id"], ["lifters.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "lifter_id", "meet_name", "meet_date", "weight_class",
            name="uq_meet_result_lifter_meet_class",
        ),
    )
    op.create_index(
        "idx_meet_results_lifter_date", "meet_results", ["lifter_id", "meet_date"], unique=False
    )

    op.create_table(
        "lifter_review_queue",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("scraped_name", sa.String(length=255), nullable=False),
        sa.Column("scraped_external_id", sa.String(length=50), nullable=True),
        sa.Column("scraped_membership_number", sa.String(length=50), nullable=True),
        sa.Column("weight_class", sa.String(length=30), nullable=True),
        sa.Column("body_weight_kg", sa.Float(), nullable=True),
        sa.Column("meet_name", sa.String(length=255), nullable=True),
        sa.Column("meet_date", sa.Date(), nullable=True),
        sa.Column("skip_reason", sa.String(length=30), nullable=False),
        sa.Column("message", sa.String(length=500), nullable=True),
        sa.Column("candidate_lifter_1_id", sa.Integer(), nullable=True),
        sa.Column("candidate_lifter_2_id", sa.Integer(), nullable=True),
        sa.Column("candidate_lifter_3_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("resolved_lifter_id", sa.Integer(), nullable=True),
        sa.Column("resolved_by", sa.String(length=100), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["candidate_lifter_1_id"], ["lifters.id"]),
        sa.ForeignKeyConstraint(["candidate_lifter_2_id"], ["lifters.id"]),
        sa.ForeignKeyConstraint(["candidate_lifter_3_id"], ["lifters.id"]),
        sa.ForeignKeyConstraint(["resolved_lifter_id"], ["lifters.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_lifter_review_queue_status",
        "lifter_review_queue",
        ["status", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_lifter_review_queue_status", table_name="lifter_review_queue")
    op.drop_table("lifter_review_queue")
    op.drop_index("idx_meet_results_lifter_date", table_name="meet_results")
    op.drop_table("meet_results")
    op.drop_index("idx_lifters_membership_number", table_name="lifters")
    op.drop_index("idx_lifters_name", table_name="lifters")
    op.drop_table("lifters")
