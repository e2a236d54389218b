from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app_config import configure_logging, load_app_config, load_env_file
from input_grouping import CategoryGroup, group_catalog
from priced_inputs import (
    CATALOG_FILENAMES,
    KITCHEN_CATALOG_KEY,
    CatalogError,
    ExperienceTier,
    InputCatalog,
    KitchenSize,
    catalog_path,
    load_input_catalog,
    validate_catalog,
)
from pricing_calculator import calculate_kitchen_total, calculate_total

logger = logging.getLogger(__name__)


def format_groups(groups: Sequence[CategoryGroup]) -> List[str]:
    lines: List[str] = []
    for group in groups:
        lines.append(f"{group.title} [{group.category}]")
        for sub in group.subcategories:
            indent = "  "
            if sub.title:
                lines.append(f"  {sub.title} [{sub.subcategory}]")
                indent = "    "
            for inp in sub.inputs:
                tier = f" ({inp.experience.value})" if inp.experience else ""
                lines.append(f"{indent}- {inp.name}: {inp.label} <{inp.element.value}, {inp.formula.name}>{tier}")
    return lines


def price_snapshot(
    catalog: InputCatalog,
    snapshot_path: Path,
    *,
    experience: Optional[ExperienceTier],
    kitchen_size: KitchenSize,
) -> float:
    snapshot = json.loads(snapshot_path.read_text(encoding="utf-8"))
    if not isinstance(snapshot, dict):
        raise ValueError(f"Expected JSON object in {snapshot_path}")
    if catalog.key == KITCHEN_CATALOG_KEY:
        return calculate_kitchen_total(catalog, snapshot, experience or ExperienceTier.BASIC, kitchen_size)
    return calculate_total(catalog, snapshot)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Validate the priced-input catalogs and optionally price a form snapshot.")
    ap.add_argument("--catalog-dir", type=Path, default=None, help="Directory holding the catalog JSON files.")
    ap.add_argument("--show-groups", action="store_true", help="Print the category/subcategory tree.")
    ap.add_argument("--experience", choices=[t.value for t in ExperienceTier], default=None)
    ap.add_argument("--kitchen-size", choices=[s.value for s in KitchenSize], default=None)
    ap.add_argument("--snapshot", type=Path, default=None, help="JSON form snapshot to price.")
    ap.add_argument(
        "--category",
        choices=sorted(CATALOG_FILENAMES),
        default=KITCHEN_CATALOG_KEY,
        help="Catalog the snapshot belongs to.",
    )
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_env_file()
    config = load_app_config()
    configure_logging(config)

    args = build_arg_parser().parse_args(argv)
    catalog_dir: Path = args.catalog_dir or config.catalog_dir
    experience = ExperienceTier(args.experience) if args.experience else None
    kitchen_size = KitchenSize(args.kitchen_size) if args.kitchen_size else config.default_kitchen_size

    failed = False
    catalogs = {}
    for key in sorted(CATALOG_FILENAMES):
        path = catalog_path(catalog_dir, key)
        try:
            catalog = load_input_catalog(path)
        except (CatalogError, OSError) as exc:
            print(f"[FAIL] {key}: {exc}", file=sys.stderr)
            failed = True
            continue
        catalogs[key] = catalog

        warnings = validate_catalog(catalog)
        print(f"[OK] {key}: {len(catalog)} inputs, {len(warnings)} warning(s)")
        for w in warnings:
            print(f"  ! {w}")

        if args.show_groups:
            groups = group_catalog(catalog, experience if key == KITCHEN_CATALOG_KEY else None)
            for line in format_groups(groups):
                print(f"  {line}")

    if args.snapshot is not None:
        catalog = catalogs.get(args.category)
        if catalog is None:
            print(f"[FAIL] cannot price snapshot: {args.category} catalog did not load", file=sys.stderr)
            return 1
        try:
            total = price_snapshot(catalog, args.snapshot, experience=experience, kitchen_size=kitchen_size)
        except (OSError, ValueError) as exc:
            print(f"[FAIL] snapshot {args.snapshot}: {exc}", file=sys.stderr)
            return 1
        print(f"TOTAL {args.category}: {total:.2f}")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
