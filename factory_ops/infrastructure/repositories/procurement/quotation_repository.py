from __future__ import annotations

from factory_ops.infrastructure.repositories.base import BaseRepository


class QuotationRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        description: str,
        created_at: str,
        supplier_id: int,
        access_token: str,
        purchase_request_id: int | None,
        state: str = "issued",
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO quotations (description, created_at, state, supplier_id, access_token, purchase_request_id)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (description, created_at, state, supplier_id, access_token, purchase_request_id),
        )
        return self.inserted_id(cursor)

    def get_by_id(self, db, quotation_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM quotations
            WHERE id = ?
            LIMIT 1
            """,
            (quotation_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def latest_for_request(self, db, purchase_request_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM quotations
            WHERE purchase_request_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (purchase_request_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def update_state(self, db, quotation_id: int, state: str) -> None:
        db.execute("UPDATE quotations SET state = ? WHERE id = ?", (state, quotation_id))
