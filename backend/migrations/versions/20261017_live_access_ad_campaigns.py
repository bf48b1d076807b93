"""Paid live stream tickets and sponsored ad campaigns

Revision ID: 20261017_live_ads
Revises: 20261017_initial
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_live_ads"
down_revision = "20261017_initial"
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def upgrade():
    op.create_table(
        "live_access",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_live_access_amount_non_negative"),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_id", "user_id", name="uq_live_access_post_user"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("live_access", schema=None) as batch_op:
        batch_op.create_index("ix_live_access_post_id", ["post_id"], unique=False)
        batch_op.create_index("ix_live_access_user_id", ["user_id"], unique=False)

    op.create_table(
        "ad_campaigns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=False),
        sa.Column("objective", sa.String(16), nullable=False, server_default="TRAFFIC"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("target_audience", sa.String(255), nullable=False),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("link_url", sa.String(512), nullable=True),
        sa.Column("cta_text", sa.String(64), nullable=True),
        sa.Column("budget_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("budget_cents > 0", name="ck_ad_campaigns_budget_positive"),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("ad_campaigns", schema=None) as batch_op:
        batch_op.create_index("ix_ad_campaigns_owner_user_id", ["owner_user_id"], unique=False)
        batch_op.create_index("ix_ad_campaigns_active", ["is_active"], unique=False)


def downgrade():
    op.drop_table("ad_campaigns")
    op.drop_table("live_access")
