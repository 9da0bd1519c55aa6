"""Procurement workflow schema: requests, quotations, budgets, delivery notes.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_MONEY = sa.Numeric(14, 4)


def _state_check(column: str, states: Sequence[str], name: str) -> sa.CheckConstraint:
    values = ", ".join(f"'{state}'" for state in states)
    return sa.CheckConstraint(f"{column} IN ({values})", name=name)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_table(
        "raw_materials",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("price", _MONEY, nullable=False, server_default="0"),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "purchase_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=False, server_default="open"),
        sa.Column("opened_at", sa.Text(), nullable=False),
        sa.Column("closed_at", sa.Text(), nullable=True),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        _state_check(
            "state",
            ("open", "being_quoted", "has_budgets", "closed", "received"),
            "ck_purchase_requests_state",
        ),
    )
    op.create_table(
        "purchase_request_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("purchase_request_id", sa.Integer(), sa.ForeignKey("purchase_requests.id"), nullable=False),
        sa.Column("raw_material_id", sa.Integer(), sa.ForeignKey("raw_materials.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_request_lines_quantity"),
    )
    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=False, server_default="issued"),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("purchase_request_id", sa.Integer(), sa.ForeignKey("purchase_requests.id"), nullable=True),
        _state_check("state", ("issued", "has_budgets", "finalized"), "ck_quotations_state"),
    )
    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=False, server_default="responded"),
        sa.Column("quotation_id", sa.Integer(), sa.ForeignKey("quotations.id"), nullable=False),
        _state_check("state", ("responded", "accepted", "rejected"), "ck_budgets_state"),
    )
    op.create_table(
        "budget_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False),
        sa.Column("raw_material_id", sa.Integer(), sa.ForeignKey("raw_materials.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", _MONEY, nullable=False),
        sa.Column("lead_time_days", sa.Integer(), nullable=True),
    )
    op.create_table(
        "delivery_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("issued_at", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=False, server_default="pending"),
        sa.Column("total_value", _MONEY, nullable=False, server_default="0"),
        sa.Column("budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False),
        _state_check(
            "state",
            ("pending", "received", "disputed", "redelivered"),
            "ck_delivery_notes_state",
        ),
    )
    op.create_table(
        "delivery_note_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("delivery_note_id", sa.Integer(), sa.ForeignKey("delivery_notes.id"), nullable=False),
        sa.Column("raw_material_id", sa.Integer(), sa.ForeignKey("raw_materials.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", _MONEY, nullable=False),
    )
    op.create_table(
        "status_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("from_state", sa.Text(), nullable=True),
        sa.Column("to_state", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_index("ix_purchase_requests_state", "purchase_requests", ["state"])
    op.create_index("ix_purchase_request_lines_request", "purchase_request_lines", ["purchase_request_id"])
    op.create_index("ix_quotations_request", "quotations", ["purchase_request_id"])
    op.create_index("ix_budgets_quotation", "budgets", ["quotation_id"])
    op.create_index("ix_budget_lines_budget", "budget_lines", ["budget_id"])
    op.create_index("ix_delivery_notes_budget", "delivery_notes", ["budget_id"])
    op.create_index("ix_delivery_notes_state", "delivery_notes", ["state"])
    op.create_index("ix_delivery_note_lines_note", "delivery_note_lines", ["delivery_note_id"])
    op.create_index("ix_status_events_entity", "status_events", ["entity", "entity_id"])


def downgrade() -> None:
    tables = [
        "status_events",
        "delivery_note_lines",
        "delivery_notes",
        "budget_lines",
        "budgets",
        "quotations",
        "purchase_request_lines",
        "purchase_requests",
        "products",
        "raw_materials",
        "suppliers",
        "users",
    ]
    for table in tables:
        op.execute(f"DROP TABLE IF EXISTS {table}")
