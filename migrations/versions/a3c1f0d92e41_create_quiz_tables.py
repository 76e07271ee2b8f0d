"""create quiz tables

Revision ID: a3c1f0d92e41
Revises:
Create Date: 2026-10-18 10:12:44.081532

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a3c1f0d92e41"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("email", sa.String(100), unique=True, index=True, nullable=True),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "total_quizzes_attempted", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("total_time_spent", sa.Integer(), nullable=False, server_default="0"),
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
    )

    op.create_table(
        "user_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True
        ),
        sa.Column("slug", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quiz_type", sa.String(20), nullable=False),
        sa.Column("best_score", sa.Numeric(7, 2), nullable=True),
        sa.Column("last_attempted", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "time_started",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("time_ended", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "user_quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "user_quiz_id",
            sa.Integer(),
            sa.ForeignKey("user_quizzes.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("code_snippet", sa.Text(), nullable=True),
        sa.Column("question_type", sa.String(20), nullable=False),
    )

    op.create_table(
        "user_quiz_attempts",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True
        ),
        sa.Column(
            "user_quiz_id",
            sa.Integer(),
            sa.ForeignKey("user_quizzes.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("score", sa.Numeric(7, 2), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=False),
        sa.Column("accuracy", sa.Numeric(5, 2), nullable=False),
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
        sa.UniqueConstraint("user_id", "user_quiz_id", name="uq_attempt_user_quiz"),
    )

    op.create_table(
        "user_quiz_attempt_questions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "attempt_id",
            sa.Integer(),
            sa.ForeignKey("user_quiz_attempts.id"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "question_id",
            sa.Integer(),
            sa.ForeignKey("user_quiz_questions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("user_answer", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )


def downgrade() -> None:
    # Remove tables in reverse dependency order
    op.drop_table("user_quiz_attempt_questions")
    op.drop_table("user_quiz_attempts")
    op.drop_table("user_quiz_questions")
    op.drop_table("user_quizzes")
    op.drop_table("users")
