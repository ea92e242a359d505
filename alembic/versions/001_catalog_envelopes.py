"""Create datasets, editions and instances envelope tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

_DOCUMENT = sa.JSON(none_as_null=True).with_variant(postgresql.JSONB(none_as_null=True), "postgresql")


def _envelope_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(100), nullable=False),
        sa.Column("current", _DOCUMENT, nullable=True),
        sa.Column("next", _DOCUMENT, nullable=False),
        sa.Column("etag", sa.String(40), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create envelope tables."""
    op.create_table(
        "datasets",
        *_envelope_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "editions",
        *_envelope_columns(),
        sa.Column("dataset_id", sa.String(100), nullable=False),
        sa.Column("edition", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("dataset_id", "edition", name="uq_edition_dataset_edition"),
    )
    op.create_index("ix_editions_dataset_id", "editions", ["dataset_id"])

    op.create_table(
        "instances",
        *_envelope_columns(),
        sa.Column("dataset_id", sa.String(100), nullable=False),
        sa.Column("edition", sa.String(100), nullable=True),
        sa.Column("version", sa.Integer(), nullable=True),
        sa.Column("state", sa.String(20), nullable=False, server_default="created"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_instances_dataset_id", "instances", ["dataset_id"])
    op.create_index(
        "ix_instance_dataset_edition_version",
        "instances",
        ["dataset_id", "edition", "version"],
        unique=True,
    )
    op.create_index("ix_instance_state", "instances", ["state"])


def downgrade() -> None:
    """Drop envelope tables."""
    op.drop_table("instances")
    op.drop_table("editions")
    op.drop_table("datasets")
