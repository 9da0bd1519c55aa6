import os

from factory_ops import create_app
from factory_ops.db import get_db, init_db
from factory_ops.infrastructure.repositories.procurement import ReferenceRepository


def seed_reference_data(db) -> None:
    references = ReferenceRepository()
    with db.transaction():
        references.create_user(db, first_name="Ana", last_name="Operacoes", email="ana@factory-ops.local")
        references.create_supplier(db, name="Metais do Norte", email="vendas@metaisnorte.local", phone="220000000")
        references.create_supplier(db, name="Fornecedor sem email")
        references.create_raw_material(db, name="Chapa de aco 2mm", code="MP-001", quantity=40, category="metal", price=12.5)
        references.create_raw_material(db, name="Parafuso M6", code="MP-002", quantity=500, category="fixacao", price=0.08)
        references.create_product(db, name="Suporte de parede", quantity=25)


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        init_db()
        if os.environ.get("SEED_DEMO", "0").strip().lower() in {"1", "true", "yes", "sim"}:
            seed_reference_data(get_db())
    print("Database initialized.")
