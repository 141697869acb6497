"""create coupons and issued_coupons tables

Revision ID: 8b4e2f6a1c33
Revises: 3f1a9c2d7b10
Create Date: 2026-10-01 09:10:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "8b4e2f6a1c33"
down_revision = "3f1a9c2d7b10"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "coupons",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("discount", sa.String(length=255), nullable=True),
        sa.Column("image_url", sa.String(length=2048), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_redemptions", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
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
    )
    op.create_index(op.f("ix_coupons_tenant_id"), "coupons", ["tenant_id"], unique=False)

    op.create_table(
        "issued_coupons",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("coupon_id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("issued_to", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("redemptions_count", sa.Integer(), nullable=False),
        sa.Column("max_redemptions", sa.Integer(), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["coupon_id"], ["coupons.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "coupon_id", "email", name="uq_issued_coupons_tenant_coupon_email"
        ),
    )
    op.create_index(
        op.f("ix_issued_coupons_tenant_id"), "issued_coupons", ["tenant_id"], unique=False
    )
    op.create_index(
        op.f("ix_issued_coupons_coupon_id"), "issued_coupons", ["coupon_id"], unique=False
    )
    op.create_index(op.f("ix_issued_coupons_code"), "issued_coupons", ["code"], unique=True)
    op.create_index(
        "ix_issued_coupons_tenant_coupon_email",
        "issued_coupons",
        ["tenant_id", "coupon_id", "email"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_issued_coupons_tenant_coupon_email", table_name="issued_coupons")
    op.drop_index(op.f("ix_issued_coupons_code"), table_name="issued_coupons")
    op.drop_index(op.f("ix_issued_coupons_coupon_id"), table_name="issued_coupons")
    op.drop_index(op.f("ix_issued_coupons_tenant_id"), table_name="issued_coupons")
    op.drop_table("issued_coupons")
    op.drop_index(op.f("ix_coupons_tenant_id"), table_name="coupons")
    op.drop_table("coupons")
