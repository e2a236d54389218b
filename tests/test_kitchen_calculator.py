from __future__ import annotations

import unittest
from pathlib import Path

from priced_inputs import (
    KITCHEN_CATALOG_KEY,
    ExperienceTier,
    KitchenSize,
    build_input_catalog,
    clear_catalog_cache,
    load_kitchen_catalog,
)
from pricing_calculator import calculate_kitchen_item_price, calculate_kitchen_total, size_index

BUNDLED_CATALOG_DIR = Path(__file__).resolve().parents[1] / "catalogs"


def _raw(name: str, element: str, price: object, formula: object = "Y=TRUE", **extra: object) -> dict:
    raw: dict = {
        "name": name,
        "label": name,
        "category": "general",
        "element": element,
        "selections": ["Yes", "No"] if element == "radioButton" else [],
        "unit": "",
        "price": price,
        "formula": formula,
    }
    raw.update(extra)
    return raw


class TestBundledKitchenCatalog(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = load_kitchen_catalog(BUNDLED_CATALOG_DIR)
        self.snapshot = {
            "basicBaseCabinet": 10,
            "premiumBaseCabinet": 10,
            "demolition": "Yes",
            "countertops": "Granite",
            "countertopsQuantity": 40,
            "edging": "Ogee",
            "floatingShelves": "Yes",
            "locationKitchen": ["secondFloorOrAbove", "condoHighRise"],
            "kitchenPhotos": "North wall has a soffit.",
        }

    def tearDown(self) -> None:
        clear_catalog_cache()

    def test_basic_small_kitchen(self) -> None:
        # 3200 cabinets + 1500 demo + 2600 granite + 450 edge + 350 shelves + 350 + 900 location
        total = calculate_kitchen_total(self.catalog, self.snapshot, ExperienceTier.BASIC, KitchenSize.SMALL)
        self.assertEqual(total, 9350.0)

    def test_large_kitchen_uses_size_indexed_prices(self) -> None:
        total = calculate_kitchen_total(self.catalog, self.snapshot, "basic", "large")
        self.assertEqual(total, 11150.0)

    def test_other_tier_inputs_are_excluded(self) -> None:
        premium = calculate_kitchen_total(self.catalog, {"premiumBaseCabinet": 2}, ExperienceTier.PREMIUM)
        basic = calculate_kitchen_total(self.catalog, {"premiumBaseCabinet": 2}, ExperienceTier.BASIC)
        self.assertEqual(premium, 950.0)
        self.assertEqual(basic, 0.0)

    def test_custom_wall_cabinet_height_is_stored_not_priced(self) -> None:
        snapshot = {"wallCabinetHeight": "Custom", "wallCabinetHeightCustom": 48}
        self.assertEqual(calculate_kitchen_total(self.catalog, snapshot, ExperienceTier.BASIC), 0.0)
        self.assertEqual(calculate_kitchen_total(self.catalog, {"wallCabinetHeight": "42 in"}, "basic"), 360.0)

    def test_empty_snapshot(self) -> None:
        self.assertEqual(calculate_kitchen_total(self.catalog, {}, ExperienceTier.LUXURY, KitchenSize.MEDIUM), 0.0)


class TestKitchenRules(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = build_input_catalog(
            KITCHEN_CATALOG_KEY,
            [
                _raw("plywood", "checkbox", [800, 1200, 1600], "", size=True),
                _raw("slab", "checkbox", 0, ""),
                _raw("condo", "checkbox", 900, ""),
                _raw(
                    "backsplash",
                    "select",
                    [900, 1600, 1500],
                    "Selection Price",
                    selections=["Tile", "Quartz", "Granite"],
                ),
                _raw("wallHeight", "select", 250, "NOT A FORMULA", selections=["30 in", "36 in"]),
                _raw("shelves", "radioButton", 0, "350.00", selections=["Yes", "No", "Custom"], custom=True),
                _raw("faucet", "radioButton", 225, "UNIT * PRICE"),
                _raw(
                    "countertops",
                    "radioButton",
                    [75, 65],
                    "Selection Price/UNIT * PRICE",
                    selections=["Quartz", "Granite"],
                ),
                _raw("paint", "numberInput", [3.25, 3.5, 3.75], "UNIT * PRICE", size=True),
                _raw("tile", "selectCustomInputText", [10, 20], "UNIT * PRICE", selections=["A", "B"]),
                _raw("photos", "inputFileTextArea", 0, None),
            ],
        )

    def _price(self, name: str, value: object, snapshot: dict | None = None, size: object = "small") -> float:
        inp = self.catalog.get_by_name(name)
        assert inp is not None
        return calculate_kitchen_item_price(inp, value, snapshot or {}, size)  # type: ignore[arg-type]

    def test_size_index(self) -> None:
        self.assertEqual(size_index(KitchenSize.SMALL), 0)
        self.assertEqual(size_index("medium"), 1)
        self.assertEqual(size_index("large"), 2)
        self.assertEqual(size_index("huge"), 0)

    def test_checkbox(self) -> None:
        self.assertEqual(self._price("plywood", True, size="medium"), 1200)
        self.assertEqual(self._price("plywood", False, size="medium"), 0)
        self.assertEqual(self._price("condo", True, size="large"), 900)
        self.assertEqual(self._price("slab", True), 0)

    def test_select_matches_case_sensitively(self) -> None:
        self.assertEqual(self._price("backsplash", "Quartz"), 1600)
        self.assertEqual(self._price("backsplash", "quartz"), 900)
        self.assertEqual(self._price("backsplash", ""), 0)

    def test_select_with_unrecognized_formula_uses_base_price(self) -> None:
        self.assertEqual(self._price("wallHeight", "36 in"), 250)

    def test_radio_fixed_amount(self) -> None:
        self.assertEqual(self._price("shelves", "Yes"), 350)
        self.assertEqual(self._price("shelves", "No"), 0)

    def test_radio_custom_and_none_are_not_priced(self) -> None:
        self.assertEqual(self._price("shelves", "Custom", {"shelvesCustom": 1200}), 0)
        self.assertEqual(self._price("faucet", "none", {"faucetQuantity": 3}), 0)

    def test_radio_unit_price_needs_quantity(self) -> None:
        self.assertEqual(self._price("faucet", "Yes", {"faucetQuantity": 3}), 675)
        self.assertEqual(self._price("faucet", "Yes", {}), 0)
        self.assertEqual(self._price("faucet", "Yes", {"faucetQuantity": "lots"}), 0)

    def test_radio_selection_unit_price(self) -> None:
        self.assertEqual(self._price("countertops", "Granite", {"countertopsQuantity": 10}), 650)
        self.assertEqual(self._price("countertops", "quartz", {"countertopsQuantity": 10}), 750)
        # unmatched selection prices at the first entry
        self.assertEqual(self._price("countertops", "Soapstone", {"countertopsQuantity": 10}), 750)

    def test_number_input_uses_size_price(self) -> None:
        self.assertEqual(self._price("paint", 100, size="small"), 325)
        self.assertEqual(self._price("paint", 100, size="large"), 375)
        self.assertEqual(self._price("paint", -5), 0)

    def test_unpriced_elements(self) -> None:
        self.assertEqual(self._price("tile", "B", {"tileQuantity": 5}), 0)
        self.assertEqual(self._price("photos", "notes"), 0)

    def test_grouped_checkbox_values(self) -> None:
        snapshot = {"plywood": ["slab", "plywood", "doesNotExist", 7]}
        total = calculate_kitchen_total(self.catalog, snapshot, ExperienceTier.BASIC, KitchenSize.LARGE)
        self.assertEqual(total, 1600.0)
        self.assertEqual(calculate_kitchen_total(self.catalog, {"plywood": []}, "basic"), 0.0)

    def test_total_rounds_once(self) -> None:
        total = calculate_kitchen_total(self.catalog, {"paint": 33.333}, "basic", "medium")
        self.assertEqual(total, 116.67)


if __name__ == "__main__":
    unittest.main()
