from __future__ import annotations

from typing import Any, Iterable


class BaseRepository:
    @staticmethod
    def inserted_id(cursor) -> int:
        row = cursor.fetchone()
        return int(row["id"] if isinstance(row, dict) else row[0])

    @staticmethod
    def row_to_dict(row: Any) -> dict | None:
        return dict(row) if row else None

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]

    @staticmethod
    def scalar(row: Any, key: str = "total") -> int:
        if not row:
            return 0
        value = row[key] if isinstance(row, dict) else row[0]
        return int(value or 0)
