from __future__ import annotations

from factory_ops.infrastructure.repositories.base import BaseRepository


_SUMMARY_COLUMNS = """
    pr.id,
    pr.description,
    pr.state,
    pr.opened_at,
    pr.closed_at,
    pr.requester_id,
    TRIM(COALESCE(u.first_name, '') || ' ' || COALESCE(u.last_name, '')) AS requester_name
"""


class PurchaseRequestRepository(BaseRepository):
    def create(self, db, *, description: str, requester_id: int, opened_at: str, state: str = "open") -> int:
        cursor = db.execute(
            """
            INSERT INTO purchase_requests (description, state, opened_at, requester_id)
            VALUES (?, ?, ?, ?)
            RETURNING id
            """,
            (description, state, opened_at, requester_id),
        )
        return self.inserted_id(cursor)

    def add_line(self, db, *, purchase_request_id: int, material_id: int, quantity: int) -> int:
        cursor = db.execute(
            """
            INSERT INTO purchase_request_lines (purchase_request_id, raw_material_id, quantity)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (purchase_request_id, material_id, quantity),
        )
        return self.inserted_id(cursor)

    def get_by_id(self, db, purchase_request_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM purchase_requests
            WHERE id = ?
            LIMIT 1
            """,
            (purchase_request_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def get_summary(self, db, purchase_request_id: int) -> dict | None:
        row = db.execute(
            f"""
            SELECT {_SUMMARY_COLUMNS}
            FROM purchase_requests pr
            LEFT JOIN users u ON u.id = pr.requester_id
            WHERE pr.id = ?
            LIMIT 1
            """,
            (purchase_request_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def list_summary(self, db, *, state: str | None = None) -> list[dict]:
        if state:
            rows = db.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM purchase_requests pr
                LEFT JOIN users u ON u.id = pr.requester_id
                WHERE pr.state = ?
                ORDER BY pr.id DESC
                """,
                (state,),
            ).fetchall()
        else:
            rows = db.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM purchase_requests pr
                LEFT JOIN users u ON u.id = pr.requester_id
                ORDER BY pr.id DESC
                """
            ).fetchall()
        return self.rows_to_dicts(rows)

    def list_lines(self, db, purchase_request_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT l.id, l.raw_material_id AS material_id, m.name AS material_name, l.quantity
            FROM purchase_request_lines l
            LEFT JOIN raw_materials m ON m.id = l.raw_material_id
            WHERE l.purchase_request_id = ?
            ORDER BY l.id ASC
            """,
            (purchase_request_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def update_state(self, db, purchase_request_id: int, state: str, *, closed_at: str | None = None) -> None:
        if closed_at is None:
            db.execute(
                "UPDATE purchase_requests SET state = ? WHERE id = ?",
                (state, purchase_request_id),
            )
            return
        db.execute(
            "UPDATE purchase_requests SET state = ?, closed_at = ? WHERE id = ?",
            (state, closed_at, purchase_request_id),
        )
