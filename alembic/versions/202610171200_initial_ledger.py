"""ledger schema: accounts, income/expense categories, transactions

Revision ID: 202610171200
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610171200"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )

    for table in ("income_categories", "expense_categories"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text()),
            *_timestamps(),
        )
    op.create_index(
        "uq_income_category_name_lower",
        "income_categories",
        [sa.text("lower(name)")],
        unique=True,
    )
    op.create_index(
        "uq_expense_category_name_lower",
        "expense_categories",
        [sa.text("lower(name)")],
        unique=True,
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False
        ),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("category_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_transactions_account", "transactions", ["account_id"])
    op.create_index(
        "ix_transactions_type_category", "transactions", ["type", "category_id"]
    )
    op.create_index("ix_transactions_type_date", "transactions", ["type", "date"])


def downgrade():
    op.drop_index("ix_transactions_type_date", table_name="transactions")
    op.drop_index("ix_transactions_type_category", table_name="transactions")
    op.drop_index("ix_transactions_account", table_name="transactions")
    op.drop_index("ix_transactions_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("uq_expense_category_name_lower", table_name="expense_categories")
    op.drop_index("uq_income_category_name_lower", table_name="income_categories")
    op.drop_table("expense_categories")
    op.drop_table("income_categories")
    op.drop_table("accounts")
