"""Exclusion constraint against overlapping confirmed bookings.

Second layer behind the application check done under the per-room lock:
even a writer that bypasses the engine cannot store two CONFIRMED
bookings of one room whose [start, end) ranges intersect.

Revision ID: 0002_no_booking_overlap
Revises: 0001_initial_schema
Create Date: 2026-10-12
"""
from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "0002_no_booking_overlap"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_no_booking_overlap.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text())


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS no_booking_overlap")
    # btree_gist stays installed; other indexes may use it.
