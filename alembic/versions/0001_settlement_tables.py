"""create settlement tables

Revision ID: 0001_settlement_tables
Revises:
Create Date: 2024-05-01 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_settlement_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("owner_key", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_bonus", sa.Boolean(), nullable=False),
        sa.Column("won_from_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["won_from_id"],
            ["tickets.id"],
            name="fk_tickets_won_from_id_tickets",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_tickets"),
    )
    op.create_index("ix_tickets_created_at", "tickets", ["created_at"])
    op.create_index("ix_tickets_owner_key", "tickets", ["owner_key"])

    op.create_table(
        "settlement_results",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("window_key", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("winning_symbols", sa.JSON(), nullable=False),
        sa.Column("attempt_token", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_settlement_results"),
        sa.UniqueConstraint("window_key", name="uq_settlement_results_window_key"),
    )
    op.create_index(
        "ix_settlement_results_created_at", "settlement_results", ["created_at"]
    )

    op.create_table(
        "settlement_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("result_id", sa.String(length=64), nullable=False),
        sa.Column("tier", sa.String(length=10), nullable=False),
        sa.Column("ticket_id", sa.Integer(), nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("owner_key", sa.String(length=255), nullable=False),
        sa.CheckConstraint(
            "tier IN ('first','second','third','free')",
            name="ck_settlement_entries_tier_enum",
        ),
        sa.ForeignKeyConstraint(
            ["result_id"],
            ["settlement_results.id"],
            name="fk_settlement_entries_result_id_settlement_results",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_settlement_entries"),
    )
    op.create_index(
        "ix_settlement_entries_result_id", "settlement_entries", ["result_id"]
    )
    op.create_index(
        "ix_settlement_entries_owner_key", "settlement_entries", ["owner_key"]
    )

    op.create_table(
        "draw_locks",
        sa.Column("window_key", sa.String(length=16), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("owner_token", sa.String(length=64), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("result_id", sa.String(length=64), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "state IN ('in_progress','completed','failed')",
            name="ck_draw_locks_state_enum",
        ),
        sa.PrimaryKeyConstraint("window_key", name="pk_draw_locks"),
    )

    op.create_table(
        "game_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("winning_symbols", sa.JSON(), nullable=False),
        sa.Column("next_draw_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_attempt_token", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_game_state"),
    )


def downgrade() -> None:
    op.drop_table("game_state")
    op.drop_table("draw_locks")
    op.drop_index("ix_settlement_entries_owner_key", table_name="settlement_entries")
    op.drop_index("ix_settlement_entries_result_id", table_name="settlement_entries")
    op.drop_table("settlement_entries")
    op.drop_index("ix_settlement_results_created_at", table_name="settlement_results")
    op.drop_table("settlement_results")
    op.drop_index("ix_tickets_owner_key", table_name="tickets")
    op.drop_index("ix_tickets_created_at", table_name="tickets")
    op.drop_table("tickets")
