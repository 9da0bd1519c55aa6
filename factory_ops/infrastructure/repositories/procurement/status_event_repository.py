from __future__ import annotations

from factory_ops.infrastructure.repositories.base import BaseRepository


class StatusEventRepository(BaseRepository):
    def add_event(
        self,
        db,
        *,
        entity: str,
        entity_id: int,
        from_state: str | None,
        to_state: str,
        reason: str | None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO status_events (entity, entity_id, from_state, to_state, reason)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (entity, entity_id, from_state, to_state, reason),
        )
        return self.inserted_id(cursor)

    def list_for_entity(self, db, *, entity: str, entity_id: int, limit: int = 120) -> list[dict]:
        rows = db.execute(
            """
            SELECT id, entity, entity_id, from_state, to_state, reason, occurred_at
            FROM status_events
            WHERE entity = ? AND entity_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (entity, entity_id, int(limit)),
        ).fetchall()
        return self.rows_to_dicts(rows)
