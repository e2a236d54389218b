from __future__ import annotations

import importlib.util
import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from priced_inputs import clear_catalog_cache

ROOT = Path(__file__).resolve().parents[1]
BUNDLED_CATALOG_DIR = ROOT / "catalogs"


def _load_script():
    spec = importlib.util.spec_from_file_location("check_catalogs", ROOT / "scripts" / "check_catalogs.py")
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCheckCatalogs(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.script = _load_script()

    def tearDown(self) -> None:
        clear_catalog_cache()

    def _run(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = self.script.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_bundled_catalogs_pass(self) -> None:
        code, out, _ = self._run("--catalog-dir", str(BUNDLED_CATALOG_DIR))
        self.assertEqual(code, 0)
        self.assertIn("[OK] kitchen:", out)
        self.assertIn("[OK] additionalWork:", out)
        self.assertIn("0 warning(s)", out)

    def test_show_groups_respects_experience(self) -> None:
        code, out, _ = self._run("--catalog-dir", str(BUNDLED_CATALOG_DIR), "--show-groups", "--experience", "basic")
        self.assertEqual(code, 0)
        self.assertIn("Wall Demo [wallDemo]", out)
        self.assertIn("- basicBaseCabinet:", out)
        self.assertNotIn("- premiumBaseCabinet:", out)

    def test_missing_catalog_dir_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, out, err = self._run("--catalog-dir", tmp)
        self.assertEqual(code, 1)
        self.assertIn("[FAIL] kitchen:", err)
        self.assertNotIn("[OK]", out)

    def test_prices_additional_work_snapshot(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            snapshot = Path(tmp) / "snapshot.json"
            snapshot.write_text(
                json.dumps(
                    {"bathroomDemolition": "Yes", "removeTub": "Yes", "removeTubQuantity": 2, "basementFraming": 10}
                ),
                encoding="utf-8",
            )
            code, out, _ = self._run(
                "--catalog-dir", str(BUNDLED_CATALOG_DIR), "--snapshot", str(snapshot), "--category", "additionalWork"
            )
        self.assertEqual(code, 0)
        self.assertIn("TOTAL additionalWork: 3120.00", out)

    def test_prices_kitchen_snapshot(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            snapshot = Path(tmp) / "snapshot.json"
            snapshot.write_text(json.dumps({"demolition": "Yes", "dumpsterOnSite": "Yes"}), encoding="utf-8")
            code, out, _ = self._run(
                "--catalog-dir",
                str(BUNDLED_CATALOG_DIR),
                "--snapshot",
                str(snapshot),
                "--kitchen-size",
                "medium",
            )
        self.assertEqual(code, 0)
        self.assertIn("TOTAL kitchen: 2700.00", out)

    def test_non_object_snapshot_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            snapshot = Path(tmp) / "snapshot.json"
            snapshot.write_text("[1, 2, 3]", encoding="utf-8")
            code, _, err = self._run("--catalog-dir", str(BUNDLED_CATALOG_DIR), "--snapshot", str(snapshot))
        self.assertEqual(code, 1)
        self.assertIn("Expected JSON object", err)


if __name__ == "__main__":
    unittest.main()
