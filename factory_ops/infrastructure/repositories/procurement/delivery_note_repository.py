from __future__ import annotations

from factory_ops.infrastructure.repositories.base import BaseRepository


class DeliveryNoteRepository(BaseRepository):
    def create(self, db, *, budget_id: int, issued_at: str, total_value: float, state: str = "pending") -> int:
        cursor = db.execute(
            """
            INSERT INTO delivery_notes (issued_at, state, total_value, budget_id)
            VALUES (?, ?, ?, ?)
            RETURNING id
            """,
            (issued_at, state, total_value, budget_id),
        )
        return self.inserted_id(cursor)

    def add_line(self, db, *, delivery_note_id: int, material_id: int, quantity: int, unit_price: float) -> int:
        cursor = db.execute(
            """
            INSERT INTO delivery_note_lines (delivery_note_id, raw_material_id, quantity, unit_price)
            VALUES (?, ?, ?, ?)
            RETURNING id
            """,
            (delivery_note_id, material_id, quantity, unit_price),
        )
        return self.inserted_id(cursor)

    def get_by_id(self, db, delivery_note_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM delivery_notes
            WHERE id = ?
            LIMIT 1
            """,
            (delivery_note_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def list_lines(self, db, delivery_note_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT
                l.id,
                l.delivery_note_id,
                l.raw_material_id AS material_id,
                m.name AS material_name,
                l.quantity,
                l.unit_price
            FROM delivery_note_lines l
            LEFT JOIN raw_materials m ON m.id = l.raw_material_id
            WHERE l.delivery_note_id = ?
            ORDER BY l.id ASC
            """,
            (delivery_note_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def latest_for_budget(self, db, budget_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM delivery_notes
            WHERE budget_id = ?
            ORDER BY id DESC
            LIMIT 1
            """,
            (budget_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def list_by_state(self, db, *, state: str | None = None) -> list[dict]:
        if state:
            rows = db.execute(
                "SELECT * FROM delivery_notes WHERE state = ? ORDER BY id DESC",
                (state,),
            ).fetchall()
        else:
            rows = db.execute("SELECT * FROM delivery_notes ORDER BY id DESC").fetchall()
        return self.rows_to_dicts(rows)

    def list_pending_for_material(self, db, material_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT DISTINCT n.*
            FROM delivery_notes n
            JOIN delivery_note_lines l ON l.delivery_note_id = n.id
            WHERE n.state = 'pending' AND l.raw_material_id = ?
            ORDER BY n.id DESC
            """,
            (material_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def count_pending_for_budget(self, db, budget_id: int, *, exclude_note_id: int | None = None) -> int:
        row = db.execute(
            """
            SELECT COUNT(*) AS total
            FROM delivery_notes
            WHERE budget_id = ? AND state = 'pending' AND id <> ?
            """,
            (budget_id, exclude_note_id or 0),
        ).fetchone()
        return self.scalar(row)

    def get_supplier_for_note(self, db, delivery_note_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT s.id, s.name, s.email
            FROM delivery_notes n
            JOIN budgets b ON b.id = n.budget_id
            JOIN quotations q ON q.id = b.quotation_id
            JOIN suppliers s ON s.id = q.supplier_id
            WHERE n.id = ?
            LIMIT 1
            """,
            (delivery_note_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def get_request_for_note(self, db, delivery_note_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT pr.*
            FROM delivery_notes n
            JOIN budgets b ON b.id = n.budget_id
            JOIN quotations q ON q.id = b.quotation_id
            JOIN purchase_requests pr ON pr.id = q.purchase_request_id
            WHERE n.id = ?
            LIMIT 1
            """,
            (delivery_note_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def update_state(self, db, delivery_note_id: int, state: str) -> None:
        db.execute("UPDATE delivery_notes SET state = ? WHERE id = ?", (state, delivery_note_id))
