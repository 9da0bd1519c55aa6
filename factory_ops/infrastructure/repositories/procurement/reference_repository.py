from __future__ import annotations

from typing import Iterable

from factory_ops.infrastructure.repositories.base import BaseRepository


class ReferenceRepository(BaseRepository):
    """Read access to reference data owned by other back-office modules.

    The ``create_*`` helpers exist for seeding local databases and tests.
    """

    def get_user(self, db, user_id: int) -> dict | None:
        row = db.execute("SELECT * FROM users WHERE id = ? LIMIT 1", (user_id,)).fetchone()
        return self.row_to_dict(row)

    def get_supplier(self, db, supplier_id: int) -> dict | None:
        row = db.execute("SELECT * FROM suppliers WHERE id = ? LIMIT 1", (supplier_id,)).fetchone()
        return self.row_to_dict(row)

    def get_raw_material(self, db, material_id: int) -> dict | None:
        row = db.execute("SELECT * FROM raw_materials WHERE id = ? LIMIT 1", (material_id,)).fetchone()
        return self.row_to_dict(row)

    def get_product(self, db, product_id: int) -> dict | None:
        row = db.execute("SELECT * FROM products WHERE id = ? LIMIT 1", (product_id,)).fetchone()
        return self.row_to_dict(row)

    def find_missing_raw_materials(self, db, material_ids: Iterable[int]) -> list[int]:
        ordered: list[int] = []
        for material_id in material_ids:
            if material_id not in ordered:
                ordered.append(material_id)
        if not ordered:
            return []
        placeholders = ", ".join("?" for _ in ordered)
        rows = db.execute(
            f"SELECT id FROM raw_materials WHERE id IN ({placeholders})",
            tuple(ordered),
        ).fetchall()
        found = {int(row["id"] if isinstance(row, dict) else row[0]) for row in rows}
        return [material_id for material_id in ordered if material_id not in found]

    def increment_raw_material_quantity(self, db, material_id: int, delta: int) -> None:
        db.execute(
            "UPDATE raw_materials SET quantity = quantity + ? WHERE id = ?",
            (delta, material_id),
        )

    def set_raw_material_quantity(self, db, material_id: int, quantity: int) -> None:
        db.execute("UPDATE raw_materials SET quantity = ? WHERE id = ?", (quantity, material_id))

    def set_product_quantity(self, db, product_id: int, quantity: int) -> None:
        db.execute("UPDATE products SET quantity = ? WHERE id = ?", (quantity, product_id))

    def create_user(self, db, *, first_name: str, last_name: str = "", email: str | None = None) -> int:
        cursor = db.execute(
            """
            INSERT INTO users (first_name, last_name, email)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (first_name, last_name, email),
        )
        return self.inserted_id(cursor)

    def create_supplier(self, db, *, name: str, email: str | None = None, phone: str | None = None) -> int:
        cursor = db.execute(
            """
            INSERT INTO suppliers (name, email, phone)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (name, email, phone),
        )
        return self.inserted_id(cursor)

    def create_raw_material(
        self,
        db,
        *,
        name: str,
        code: str,
        quantity: int = 0,
        category: str | None = None,
        price: float = 0.0,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO raw_materials (name, quantity, category, code, price)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (name, quantity, category, code, price),
        )
        return self.inserted_id(cursor)

    def create_product(self, db, *, name: str, quantity: int = 0) -> int:
        cursor = db.execute(
            """
            INSERT INTO products (name, quantity)
            VALUES (?, ?)
            RETURNING id
            """,
            (name, quantity),
        )
        return self.inserted_id(cursor)
