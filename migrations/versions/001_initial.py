"""initial

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "statements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("period_name", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "charges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("statement_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("card_member", sa.String(255), nullable=True),
        sa.Column("amount", sa.String(32), nullable=False),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("is_matched", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("receipt_id", sa.Integer(), nullable=True),
        sa.Column("is_personal_expense", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("no_receipt_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_non_amex", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["statement_id"], ["statements.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_charges_statement_id", "charges", ["statement_id"])
    op.create_index("ix_charges_is_matched", "charges", ["is_matched"])
    op.create_index("ix_charges_receipt_id", "charges", ["receipt_id"])

    op.create_table(
        "receipts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(500), nullable=True),
        sa.Column(
            "processing_status",
            sa.Enum("pending", "processing", "completed", "failed", name="processingstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("merchant", sa.String(255), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("statement_id", sa.Integer(), nullable=True),
        sa.Column("is_matched", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("matched_charge_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["statement_id"], ["statements.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_receipts_statement_id", "receipts", ["statement_id"])
    op.create_index("ix_receipts_is_matched", "receipts", ["is_matched"])
    op.create_index("ix_receipts_matched_charge_id", "receipts", ["matched_charge_id"])

    op.create_table(
        "skip_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("receipt_id", sa.Integer(), nullable=False),
        sa.Column("charge_id", sa.Integer(), nullable=False),
        sa.Column("merchant_similarity", sa.String(16), nullable=True),
        sa.Column("amount_diff", sa.Numeric(10, 2), nullable=False),
        sa.Column("date_diff", sa.Integer(), nullable=False),
        sa.Column("skip_reason", sa.Text(), nullable=True),
        sa.Column("skipped_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_skip_records_receipt_id", "skip_records", ["receipt_id"])
    op.create_index("ix_skip_records_charge_id", "skip_records", ["charge_id"])
    op.create_index("ix_skip_records_skipped_at", "skip_records", ["skipped_at"])


def downgrade() -> None:
    op.drop_index("ix_skip_records_skipped_at", table_name="skip_records")
    op.drop_index("ix_skip_records_charge_id", table_name="skip_records")
    op.drop_index("ix_skip_records_receipt_id", table_name="skip_records")
    op.drop_table("skip_records")
    op.drop_index("ix_receipts_matched_charge_id", table_name="receipts")
    op.drop_index("ix_receipts_is_matched", table_name="receipts")
    op.drop_index("ix_receipts_statement_id", table_name="receipts")
    op.drop_table("receipts")
    op.execute("DROP TYPE IF EXISTS processingstatus")
    op.drop_index("ix_charges_receipt_id", table_name="charges")
    op.drop_index("ix_charges_is_matched", table_name="charges")
    op.drop_index("ix_charges_statement_id", table_name="charges")
    op.drop_table("charges")
    op.drop_table("statements")
