"""tickets: satisfaction rating and feedback

Revision ID: 0002_ticket_rating
Revises: 0001_init
Create Date: 2026-10-19 18:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_ticket_rating"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tickets", sa.Column("satisfaction_rating", sa.Integer(), nullable=True))
    op.add_column("tickets", sa.Column("feedback", sa.Text(), nullable=True))


def downgrade() -> None:
    # SQLite не вміє DROP COLUMN без batch-режиму
    with op.batch_alter_table("tickets") as batch:
        batch.drop_column("feedback")
        batch.drop_column("satisfaction_rating")
