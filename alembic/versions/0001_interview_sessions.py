"""interview sessions

Revision ID: 0001
Revises:
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "interview_sessions",
        sa.Column("session_id", sa.String(length=128), primary_key=True),
        sa.Column("project_name", sa.String(length=256), nullable=False),
        sa.Column("student_name", sa.String(length=256), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "abandoned", name="sessionstatus"),
            nullable=False,
        ),
        sa.Column("messages", sa.JSON(), nullable=False),
        sa.Column("personas_interviewed", sa.JSON(), nullable=False),
        sa.Column("requirements_extracted", sa.Boolean(), nullable=False),
        sa.Column("transcript_downloaded", sa.Boolean(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_interview_sessions_project_name", "interview_sessions", ["project_name"]
    )


def downgrade() -> None:
    op.drop_index("ix_interview_sessions_project_name", table_name="interview_sessions")
    op.drop_table("interview_sessions")
