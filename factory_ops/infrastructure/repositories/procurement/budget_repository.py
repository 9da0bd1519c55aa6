from __future__ import annotations

from factory_ops.infrastructure.repositories.base import BaseRepository


class BudgetRepository(BaseRepository):
    def create(self, db, *, quotation_id: int, created_at: str, state: str = "responded") -> int:
        cursor = db.execute(
            """
            INSERT INTO budgets (created_at, state, quotation_id)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (created_at, state, quotation_id),
        )
        return self.inserted_id(cursor)

    def get_by_id(self, db, budget_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM budgets
            WHERE id = ?
            LIMIT 1
            """,
            (budget_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def list_for_quotation(self, db, quotation_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT *
            FROM budgets
            WHERE quotation_id = ?
            ORDER BY id ASC
            """,
            (quotation_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def latest_responded(self, db, quotation_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM budgets
            WHERE quotation_id = ? AND state = 'responded'
            ORDER BY id DESC
            LIMIT 1
            """,
            (quotation_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def add_line(
        self,
        db,
        *,
        budget_id: int,
        material_id: int,
        quantity: int,
        unit_price: float,
        lead_time_days: int | None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO budget_lines (budget_id, raw_material_id, quantity, unit_price, lead_time_days)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (budget_id, material_id, quantity, unit_price, lead_time_days),
        )
        return self.inserted_id(cursor)

    def list_lines(self, db, budget_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT
                bl.id,
                bl.budget_id,
                bl.raw_material_id AS material_id,
                m.name AS material_name,
                bl.quantity,
                bl.unit_price,
                bl.lead_time_days
            FROM budget_lines bl
            LEFT JOIN raw_materials m ON m.id = bl.raw_material_id
            WHERE bl.budget_id = ?
            ORDER BY bl.id ASC
            """,
            (budget_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def update_state(self, db, budget_id: int, state: str) -> None:
        db.execute("UPDATE budgets SET state = ? WHERE id = ?", (state, budget_id))
