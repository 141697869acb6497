"""create survey_questions, survey_responses and email_opt_ins tables

Revision ID: c7d5a3e9f412
Revises: 8b4e2f6a1c33
Create Date: 2026-10-01 09:20:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "c7d5a3e9f412"
down_revision = "8b4e2f6a1c33"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "survey_questions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "order_index", name="uq_survey_questions_tenant_order"),
    )
    op.create_index(
        op.f("ix_survey_questions_tenant_id"), "survey_questions", ["tenant_id"], unique=False
    )

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("question_id", sa.String(length=36), nullable=False),
        sa.Column("answer", sa.JSON(), nullable=True),
        sa.Column("session_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["question_id"], ["survey_questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_survey_responses_tenant_id"), "survey_responses", ["tenant_id"], unique=False
    )
    op.create_index(
        op.f("ix_survey_responses_question_id"), "survey_responses", ["question_id"], unique=False
    )
    op.create_index(
        op.f("ix_survey_responses_session_id"), "survey_responses", ["session_id"], unique=False
    )

    op.create_table(
        "email_opt_ins",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("consent_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_email_opt_ins_tenant_email"),
    )
    op.create_index(
        op.f("ix_email_opt_ins_tenant_id"), "email_opt_ins", ["tenant_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_email_opt_ins_tenant_id"), table_name="email_opt_ins")
    op.drop_table("email_opt_ins")
    op.drop_index(op.f("ix_survey_responses_session_id"), table_name="survey_responses")
    op.drop_index(op.f("ix_survey_responses_question_id"), table_name="survey_responses")
    op.drop_index(op.f("ix_survey_responses_tenant_id"), table_name="survey_responses")
    op.drop_table("survey_responses")
    op.drop_index(op.f("ix_survey_questions_tenant_id"), table_name="survey_questions")
    op.drop_table("survey_questions")
