from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

KITCHEN_CATALOG_KEY = "kitchen"
ADDITIONAL_WORK_CATALOG_KEY = "additionalWork"

CATALOG_FILENAMES: Mapping[str, str] = {
    KITCHEN_CATALOG_KEY: "kitchen_inputs.json",
    ADDITIONAL_WORK_CATALOG_KEY: "additional_work_inputs.json",
}

DEFAULT_SUBCATEGORY = "default"


class ElementKind(str, Enum):
    NUMBER_INPUT = "numberInput"
    RADIO_BUTTON = "radioButton"
    CHECKBOX = "checkbox"
    SELECT = "select"
    SELECT_CUSTOM_INPUT_TEXT = "selectCustomInputText"
    INPUT_FILE_TEXT_AREA = "inputFileTextArea"


class FormulaKind(str, Enum):
    BOOLEAN_PRESENCE = "Y=TRUE"
    UNIT_TIMES_PRICE = "UNIT * PRICE"
    SELECTION_PRICE = "Selection Price"
    SELECTION_UNIT_PRICE = "Selection Price/UNIT * PRICE"
    FIXED_AMOUNT = "FIXED"
    UNRECOGNIZED = "UNRECOGNIZED"


class ExperienceTier(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    LUXURY = "luxury"


class KitchenSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class CatalogError(ValueError):
    pass


Price = Union[float, Tuple[float, ...]]

# Elements that carry a `{name}Quantity` companion when their formula multiplies by a unit count.
_QUANTITY_ELEMENTS = (ElementKind.RADIO_BUTTON, ElementKind.SELECT_CUSTOM_INPUT_TEXT)
_QUANTITY_FORMULAS = (FormulaKind.UNIT_TIMES_PRICE, FormulaKind.SELECTION_UNIT_PRICE)

_LEADING_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)")


@dataclass(frozen=True)
class PricedInput:
    name: str
    label: str
    category: str
    element: ElementKind
    formula: FormulaKind
    price: Price = 0.0
    selections: Tuple[str, ...] = ()
    unit: str = ""
    subcategory: str = DEFAULT_SUBCATEGORY
    custom: bool = False
    size: bool = False
    experience: Optional[ExperienceTier] = None
    # raw tag as declared, kept for rendering/diagnostics
    formula_tag: Optional[str] = None
    fixed_amount: Optional[float] = None
    quantity_field_name: Optional[str] = None
    custom_field_name: Optional[str] = None

    @property
    def base_price(self) -> float:
        """Scalar price, or the first list entry when the price is a table."""
        if isinstance(self.price, tuple):
            return self.price[0] if self.price else 0.0
        return self.price

    @property
    def has_price_table(self) -> bool:
        return isinstance(self.price, tuple)


@dataclass(frozen=True)
class InputCatalog:
    key: str
    inputs: Tuple[PricedInput, ...]
    path: Optional[Path] = None
    _by_name: Dict[str, PricedInput] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: Dict[str, PricedInput] = {}
        for inp in self.inputs:
            if inp.name in index:
                raise CatalogError(f"Duplicate input name {inp.name!r} in catalog {self.key!r}")
            index[inp.name] = inp
        object.__setattr__(self, "_by_name", index)

    def __len__(self) -> int:
        return len(self.inputs)

    def get_all(self) -> Tuple[PricedInput, ...]:
        return self.inputs

    def get_by_name(self, name: str) -> Optional[PricedInput]:
        return self._by_name.get(name)

    def filter_by_experience(self, tier: Union[ExperienceTier, str]) -> Tuple[PricedInput, ...]:
        """
        Inputs active at `tier`: untagged inputs apply at every tier.

        An unknown tier string matches only untagged inputs.
        """
        wanted = _coerce_tier(tier)
        return tuple(inp for inp in self.inputs if inp.experience is None or inp.experience == wanted)


def parse_formula(raw: object) -> Tuple[FormulaKind, Optional[float]]:
    """
    Resolve a catalog formula tag to a FormulaKind (and the amount for fixed-price tags).

    "" is treated like "Y=TRUE"; an absent or non-string formula is UNRECOGNIZED.
    Numeric tags ("350.00") are parsed by their leading number.
    """
    if not isinstance(raw, str):
        return FormulaKind.UNRECOGNIZED, None
    if raw == "":
        return FormulaKind.BOOLEAN_PRESENCE, None
    for kind in (
        FormulaKind.BOOLEAN_PRESENCE,
        FormulaKind.UNIT_TIMES_PRICE,
        FormulaKind.SELECTION_PRICE,
        FormulaKind.SELECTION_UNIT_PRICE,
    ):
        if raw == kind.value:
            return kind, None
    m = _LEADING_NUMBER_RE.match(raw)
    if m:
        return FormulaKind.FIXED_AMOUNT, float(m.group(1))
    logger.debug("Unrecognized formula tag %r", raw)
    return FormulaKind.UNRECOGNIZED, None


def parse_priced_input(raw: object, *, position: int = 0) -> PricedInput:
    if not isinstance(raw, dict):
        raise CatalogError(f"Input #{position} is not a JSON object")

    name = _required_str(raw, "name", position)
    label = _required_str(raw, "label", position)
    category = _required_str(raw, "category", position)

    element_raw = raw.get("element")
    try:
        element = ElementKind(element_raw)
    except ValueError:
        raise CatalogError(f"Input {name!r} has unknown element {element_raw!r}") from None

    formula_tag = raw.get("formula")
    formula, fixed_amount = parse_formula(formula_tag)

    selections_raw = raw.get("selections") or []
    if not isinstance(selections_raw, list) or not all(isinstance(s, str) for s in selections_raw):
        raise CatalogError(f"Input {name!r} has invalid selections (expected a list of strings)")

    price = _parse_price(raw.get("price", 0), name)

    experience: Optional[ExperienceTier] = None
    experience_raw = raw.get("experience")
    if experience_raw is not None:
        try:
            experience = ExperienceTier(experience_raw)
        except ValueError:
            raise CatalogError(f"Input {name!r} has unknown experience {experience_raw!r}") from None

    subcategory_raw = raw.get("subcategory")
    subcategory = subcategory_raw.strip() if isinstance(subcategory_raw, str) and subcategory_raw.strip() else DEFAULT_SUBCATEGORY

    unit_raw = raw.get("unit")
    custom = bool(raw.get("custom", False))

    quantity_field_name = None
    if element in _QUANTITY_ELEMENTS and formula in _QUANTITY_FORMULAS:
        quantity_field_name = f"{name}Quantity"

    return PricedInput(
        name=name,
        label=label,
        category=category,
        element=element,
        formula=formula,
        price=price,
        selections=tuple(selections_raw),
        unit=unit_raw.strip() if isinstance(unit_raw, str) else "",
        subcategory=subcategory,
        custom=custom,
        size=bool(raw.get("size", False)),
        experience=experience,
        formula_tag=formula_tag if isinstance(formula_tag, str) else None,
        fixed_amount=fixed_amount,
        quantity_field_name=quantity_field_name,
        custom_field_name=f"{name}Custom" if custom else None,
    )


def build_input_catalog(key: str, raw_inputs: Iterable[object], *, path: Optional[Path] = None) -> InputCatalog:
    inputs = [parse_priced_input(item, position=idx) for idx, item in enumerate(raw_inputs)]
    return InputCatalog(key=key, inputs=tuple(inputs), path=path)


def load_input_catalog(path: Path) -> InputCatalog:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CatalogError(f"Expected JSON object in {path}")

    key = data.get("catalog")
    if not isinstance(key, str) or not key.strip():
        raise CatalogError(f"Missing/invalid 'catalog' in {path}")

    raw_inputs = data.get("inputs")
    if not isinstance(raw_inputs, list):
        raise CatalogError(f"Missing/invalid 'inputs' list in {path}")

    catalog = build_input_catalog(key.strip(), raw_inputs, path=path)
    logger.info("Loaded %s catalog with %d inputs from %s", catalog.key, len(catalog), path)
    return catalog


# process-wide cache, keyed by resolved file path
_CATALOG_CACHE: Dict[Path, InputCatalog] = {}


def load_cached_catalog(path: Path) -> InputCatalog:
    resolved = path.resolve()
    catalog = _CATALOG_CACHE.get(resolved)
    if catalog is None:
        catalog = load_input_catalog(resolved)
        _CATALOG_CACHE[resolved] = catalog
    return catalog


def clear_catalog_cache() -> None:
    _CATALOG_CACHE.clear()


def catalog_path(catalog_dir: Path, key: str) -> Path:
    filename = CATALOG_FILENAMES.get(key)
    if filename is None:
        raise CatalogError(f"Unknown catalog key {key!r} (expected one of {sorted(CATALOG_FILENAMES)})")
    return catalog_dir / filename


def load_kitchen_catalog(catalog_dir: Optional[Path] = None) -> InputCatalog:
    return load_cached_catalog(catalog_path(_resolve_catalog_dir(catalog_dir), KITCHEN_CATALOG_KEY))


def load_additional_work_catalog(catalog_dir: Optional[Path] = None) -> InputCatalog:
    return load_cached_catalog(catalog_path(_resolve_catalog_dir(catalog_dir), ADDITIONAL_WORK_CATALOG_KEY))


def validate_catalog(catalog: InputCatalog) -> Tuple[str, ...]:
    """
    Non-fatal consistency warnings for a loaded catalog.

    Structural problems already failed at load time; these are entries that load fine
    but would silently price as zero (or at the wrong tier) at runtime.
    """
    warnings: List[str] = []
    is_kitchen = catalog.key == KITCHEN_CATALOG_KEY
    for inp in catalog.inputs:
        if inp.formula == FormulaKind.UNRECOGNIZED and inp.element != ElementKind.INPUT_FILE_TEXT_AREA:
            warnings.append(f"{inp.name}: unrecognized formula {inp.formula_tag!r} always prices as 0")
        if inp.formula in (FormulaKind.SELECTION_PRICE, FormulaKind.SELECTION_UNIT_PRICE) or (
            inp.element == ElementKind.SELECT_CUSTOM_INPUT_TEXT and inp.has_price_table
        ):
            # the Custom choice is priced through its companion field, not the table
            priced = [s for s in inp.selections if not (inp.custom and s.lower() == "custom")]
            if inp.has_price_table and len(inp.price) < len(priced):  # type: ignore[arg-type]
                warnings.append(f"{inp.name}: {len(inp.price)} prices for {len(priced)} selections")  # type: ignore[arg-type]
        if inp.custom and inp.selections and not any(s.lower() == "custom" for s in inp.selections):
            warnings.append(f"{inp.name}: 'custom' is set but no Custom selection is offered")
        if inp.size:
            if not is_kitchen:
                warnings.append(f"{inp.name}: 'size' is only honoured by the kitchen catalog")
            elif not inp.has_price_table or len(inp.price) < len(KitchenSize):  # type: ignore[arg-type]
                warnings.append(f"{inp.name}: size-priced input needs one price per kitchen size")
        if inp.experience is not None and not is_kitchen:
            warnings.append(f"{inp.name}: 'experience' is only honoured by the kitchen catalog")
    return tuple(warnings)


def _resolve_catalog_dir(catalog_dir: Optional[Path]) -> Path:
    if catalog_dir is not None:
        return catalog_dir
    # imported lazily: app_config reads the environment
    from app_config import load_app_config

    return load_app_config().catalog_dir


def _coerce_tier(tier: Union[ExperienceTier, str]) -> Optional[ExperienceTier]:
    if isinstance(tier, ExperienceTier):
        return tier
    try:
        return ExperienceTier(str(tier).strip().lower())
    except ValueError:
        return None


def _required_str(raw: Mapping[str, object], key: str, position: int) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        ident = raw.get("name") if isinstance(raw.get("name"), str) else f"#{position}"
        raise CatalogError(f"Input {ident} is missing/invalid {key!r}")
    return value.strip()


def _parse_price(value: object, name: str) -> Price:
    if isinstance(value, bool):
        raise CatalogError(f"Input {name!r} has a boolean price")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, list):
        prices: List[float] = []
        for p in value:
            if isinstance(p, bool) or not isinstance(p, (int, float)):
                raise CatalogError(f"Input {name!r} has a non-numeric price entry {p!r}")
            prices.append(float(p))
        return tuple(prices)
    if value is None:
        return 0.0
    raise CatalogError(f"Input {name!r} has invalid price {value!r}")
