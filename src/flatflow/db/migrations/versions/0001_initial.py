"""group ledger schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), unique=True),
        *_timestamps(),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        *_timestamps(),
    )

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role in ('admin','member')", name="group_members_role_check"),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("paid_by_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("split_type", sa.Text(), nullable=False, server_default="EQUAL"),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="expenses_amount_check"),
        sa.CheckConstraint(
            "split_type in ('EQUAL','PERCENTAGE','EXACT','SHARES')",
            name="expenses_split_type_check",
        ),
    )

    op.create_table(
        "expense_shares",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("expense_id", sa.BigInteger(), sa.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2)),
        sa.Column("shares", sa.Integer()),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("expense_id", "user_id", name="expense_shares_expense_user_key"),
    )

    op.create_table(
        "chores",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint("points >= 0 AND points <= 100", name="chores_points_check"),
    )

    op.create_table(
        "chore_assignments",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("chore_id", sa.BigInteger(), sa.ForeignKey("chores.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index("idx_group_members_user", "group_members", ["user_id"])
    op.create_index("idx_expenses_group_updated", "expenses", ["group_id", "updated_at"])
    op.create_index("idx_expense_shares_expense", "expense_shares", ["expense_id"])
    op.create_index("idx_chores_group", "chores", ["group_id"])
    op.create_index("idx_chore_assignments_chore_updated", "chore_assignments", ["chore_id", "updated_at"])


def downgrade() -> None:
    op.drop_index("idx_chore_assignments_chore_updated", table_name="chore_assignments")
    op.drop_index("idx_chores_group", table_name="chores")
    op.drop_index("idx_expense_shares_expense", table_name="expense_shares")
    op.drop_index("idx_expenses_group_updated", table_name="expenses")
    op.drop_index("idx_group_members_user", table_name="group_members")

    op.drop_table("chore_assignments")
    op.drop_table("chores")
    op.drop_table("expense_shares")
    op.drop_table("expenses")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
