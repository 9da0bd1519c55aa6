import os
import tempfile
import unittest

from tests.helpers.temp_db import TempDbSandbox, assert_safe_temp_db_path


class TempDbHelperTest(unittest.TestCase):
    def test_temp_db_create_schema_and_cleanup(self) -> None:
        sandbox = TempDbSandbox(prefix="temp_db_sanity")
        temp_dir = sandbox.temp_dir
        self.assertTrue(os.path.exists(temp_dir))
        self.assertTrue(sandbox.db_path.startswith(tempfile.gettempdir()))

        db = sandbox.open_database()
        row = db.execute("SELECT COUNT(*) AS total FROM purchase_requests").fetchone()
        self.assertEqual(int(row["total"]), 0)

        sandbox.cleanup()
        self.assertFalse(os.path.exists(temp_dir))

    def test_transaction_rolls_back_on_error(self) -> None:
        sandbox = TempDbSandbox(prefix="temp_db_tx")
        self.addCleanup(sandbox.cleanup)
        db = sandbox.open_database()

        with self.assertRaises(RuntimeError):
            with db.transaction():
                db.execute("INSERT INTO products (name, quantity) VALUES ('x', 1)")
                raise RuntimeError("boom")

        row = db.execute("SELECT COUNT(*) AS total FROM products").fetchone()
        self.assertEqual(int(row["total"]), 0)

    def test_disallow_workspace_paths(self) -> None:
        workspace_db = os.path.join(os.getcwd(), "factory_ops_test.db")
        with self.assertRaises(ValueError):
            assert_safe_temp_db_path(workspace_db)


if __name__ == "__main__":
    unittest.main()
