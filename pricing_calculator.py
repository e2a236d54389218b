from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from priced_inputs import (
    ElementKind,
    ExperienceTier,
    FormulaKind,
    InputCatalog,
    KitchenSize,
    PricedInput,
)

logger = logging.getLogger(__name__)

FormSnapshot = Mapping[str, object]

_SIZE_INDEX: Dict[KitchenSize, int] = {
    KitchenSize.SMALL: 0,
    KitchenSize.MEDIUM: 1,
    KitchenSize.LARGE: 2,
}


def round_total(total: float) -> float:
    """Round once, at aggregation: 2 places, half away from zero."""
    if not math.isfinite(total):
        return total
    with localcontext() as ctx:
        # enough digits for any finite float at 2 places
        ctx.prec = 400
        return float(Decimal(repr(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def is_absent(value: object) -> bool:
    return value is None or value is False or (isinstance(value, str) and value == "")


def to_number(value: object) -> float:
    """
    Numeric coercion for snapshot values; anything non-numeric becomes 0.

    Booleans are not quantities.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def normalize_flag(value: object) -> str:
    if isinstance(value, str):
        return value.lower()
    if value is True:
        return "yes"
    if value is False:
        return "no"
    return ""


def quantity_of(inp: PricedInput, snapshot: FormSnapshot) -> float:
    if inp.quantity_field_name is None:
        return 0.0
    return to_number(snapshot.get(inp.quantity_field_name))


def selection_index(inp: PricedInput, value: str, *, case_sensitive: bool = False) -> Optional[int]:
    """Position of `value` in the input's selections, if it also has a matching price entry."""
    if not inp.has_price_table or not inp.selections:
        return None
    wanted = value if case_sensitive else value.lower()
    for idx, selection in enumerate(inp.selections):
        candidate = selection if case_sensitive else selection.lower()
        if candidate == wanted:
            return idx if idx < len(inp.price) else None  # type: ignore[arg-type]
    return None


# ---------------------------------------------------------------------------
# Additional-work rules
# ---------------------------------------------------------------------------


def _number_input_price(inp: PricedInput, value: object, snapshot: FormSnapshot) -> float:
    quantity = to_number(value)
    if quantity <= 0:
        return 0.0
    if inp.formula == FormulaKind.UNIT_TIMES_PRICE:
        return quantity * inp.base_price
    return 0.0


def _radio_button_price(inp: PricedInput, value: object, snapshot: FormSnapshot) -> float:
    flag = normalize_flag(value)
    if not flag or flag == "no":
        return 0.0
    if inp.formula == FormulaKind.BOOLEAN_PRESENCE:
        # lowercased above, so only "yes" can match
        if flag != "yes" and flag != "Yes":
            return 0.0
        return inp.base_price
    if inp.formula == FormulaKind.UNIT_TIMES_PRICE:
        quantity = quantity_of(inp, snapshot)
        if quantity <= 0:
            return 0.0
        return inp.base_price * quantity
    return 0.0


def _select_custom_text_price(inp: PricedInput, value: object, snapshot: FormSnapshot) -> float:
    if not isinstance(value, str) or not value:
        return 0.0
    if inp.formula != FormulaKind.UNIT_TIMES_PRICE:
        return 0.0
    unit_price = inp.base_price
    idx = selection_index(inp, value)
    if idx is not None:
        unit_price = inp.price[idx]  # type: ignore[index]
    quantity = quantity_of(inp, snapshot)
    if quantity <= 0:
        return 0.0
    return unit_price * quantity


def _not_priced(inp: PricedInput, value: object, snapshot: FormSnapshot) -> float:
    # checkbox/select/inputFileTextArea are informational in the additional-work formula set
    return 0.0


ItemRule = Callable[[PricedInput, object, FormSnapshot], float]

ADDITIONAL_WORK_RULES: Dict[ElementKind, ItemRule] = {
    ElementKind.NUMBER_INPUT: _number_input_price,
    ElementKind.RADIO_BUTTON: _radio_button_price,
    ElementKind.SELECT_CUSTOM_INPUT_TEXT: _select_custom_text_price,
    ElementKind.CHECKBOX: _not_priced,
    ElementKind.SELECT: _not_priced,
    ElementKind.INPUT_FILE_TEXT_AREA: _not_priced,
}


def calculate_item_price(inp: PricedInput, snapshot: FormSnapshot) -> float:
    """
    Contribution of a single input, unrounded.

    The `{name}Custom` companion is deliberately not read: custom overrides are
    stored with the quote but do not feed the total.
    """
    value = snapshot.get(inp.name)
    if is_absent(value):
        return 0.0
    return ADDITIONAL_WORK_RULES[inp.element](inp, value, snapshot)


def calculate_total(inputs: Union[InputCatalog, Iterable[PricedInput]], snapshot: FormSnapshot) -> float:
    """
    Total price of a filled-in form against a catalog (already tier-filtered where that applies).

    Missing fields, malformed numbers and unrecognized formulas contribute 0; this never raises
    for snapshot contents.
    """
    items = inputs.get_all() if isinstance(inputs, InputCatalog) else inputs
    total = 0.0
    for inp in items:
        total += calculate_item_price(inp, snapshot)
    return round_total(total)


# ---------------------------------------------------------------------------
# Kitchen rules
# ---------------------------------------------------------------------------


def size_index(kitchen_size: Union[KitchenSize, str]) -> int:
    try:
        return _SIZE_INDEX[KitchenSize(kitchen_size)]
    except ValueError:
        logger.debug("Unknown kitchen size %r; pricing as small", kitchen_size)
        return 0


def _sized_price(inp: PricedInput, idx: int) -> float:
    prices = inp.price
    if isinstance(prices, tuple):
        if idx < len(prices):
            return prices[idx]
        return prices[0] if prices else 0.0
    return prices


def kitchen_base_price(inp: PricedInput, idx: int) -> float:
    if inp.size and inp.has_price_table:
        return _sized_price(inp, idx)
    return inp.base_price


def _kitchen_checkbox_price(inp: PricedInput, value: object, snapshot: FormSnapshot, idx: int) -> float:
    if not value:
        return 0.0
    if inp.size and inp.has_price_table:
        prices = inp.price
        return prices[idx] if idx < len(prices) else 0.0  # type: ignore[arg-type,index]
    return kitchen_base_price(inp, idx)


def _kitchen_radio_button_price(inp: PricedInput, value: object, snapshot: FormSnapshot, idx: int) -> float:
    flag = normalize_flag(value)
    if not flag or flag in ("no", "none"):
        return 0.0
    # "custom" values are stored for display only
    if flag == "custom":
        return 0.0

    if inp.formula == FormulaKind.BOOLEAN_PRESENCE:
        if flag != "yes":
            return 0.0
        if inp.size and inp.has_price_table:
            prices = inp.price
            return prices[idx] if idx < len(prices) else 0.0  # type: ignore[arg-type,index]
        return kitchen_base_price(inp, idx)

    if inp.formula in (FormulaKind.UNIT_TIMES_PRICE, FormulaKind.SELECTION_UNIT_PRICE):
        quantity = quantity_of(inp, snapshot)
        if quantity <= 0:
            return 0.0
        if inp.formula == FormulaKind.SELECTION_UNIT_PRICE:
            sel = selection_index(inp, flag)
            if sel is not None:
                return inp.price[sel] * quantity  # type: ignore[index]
        return kitchen_base_price(inp, idx) * quantity

    if inp.formula == FormulaKind.SELECTION_PRICE:
        sel = selection_index(inp, flag)
        if sel is not None:
            return inp.price[sel]  # type: ignore[index]
        return 0.0

    if inp.formula == FormulaKind.FIXED_AMOUNT and inp.fixed_amount is not None:
        return inp.fixed_amount

    return 0.0


def _kitchen_number_input_price(inp: PricedInput, value: object, snapshot: FormSnapshot, idx: int) -> float:
    quantity = to_number(value)
    if quantity <= 0:
        return 0.0
    if inp.formula == FormulaKind.UNIT_TIMES_PRICE:
        return quantity * kitchen_base_price(inp, idx)
    return 0.0


def _kitchen_select_price(inp: PricedInput, value: object, snapshot: FormSnapshot, idx: int) -> float:
    if not value:
        return 0.0
    if inp.formula == FormulaKind.SELECTION_PRICE and isinstance(value, str):
        sel = selection_index(inp, value, case_sensitive=True)
        if sel is not None:
            return inp.price[sel]  # type: ignore[index]
    if inp.size and inp.has_price_table:
        prices = inp.price
        return prices[idx] if idx < len(prices) else 0.0  # type: ignore[arg-type,index]
    return kitchen_base_price(inp, idx)


def _kitchen_not_priced(inp: PricedInput, value: object, snapshot: FormSnapshot, idx: int) -> float:
    return 0.0


KitchenRule = Callable[[PricedInput, object, FormSnapshot, int], float]

KITCHEN_RULES: Dict[ElementKind, KitchenRule] = {
    ElementKind.CHECKBOX: _kitchen_checkbox_price,
    ElementKind.RADIO_BUTTON: _kitchen_radio_button_price,
    ElementKind.NUMBER_INPUT: _kitchen_number_input_price,
    ElementKind.SELECT: _kitchen_select_price,
    ElementKind.SELECT_CUSTOM_INPUT_TEXT: _kitchen_not_priced,
    ElementKind.INPUT_FILE_TEXT_AREA: _kitchen_not_priced,
}


def calculate_kitchen_item_price(
    inp: PricedInput, value: object, snapshot: FormSnapshot, kitchen_size: Union[KitchenSize, str] = KitchenSize.SMALL
) -> float:
    return KITCHEN_RULES[inp.element](inp, value, snapshot, size_index(kitchen_size))


def calculate_kitchen_total(
    catalog: InputCatalog,
    snapshot: FormSnapshot,
    experience: Union[ExperienceTier, str],
    kitchen_size: Union[KitchenSize, str] = KitchenSize.SMALL,
) -> float:
    """
    Kitchen estimate total for one experience tier and kitchen size.

    List values (grouped checkboxes) hold the names of the checked entries; each
    name is resolved against the whole catalog and priced as checked.
    """
    total = 0.0
    for inp in catalog.filter_by_experience(experience):
        value = snapshot.get(inp.name)

        if isinstance(value, (list, tuple)):
            for item_name in value:
                item = catalog.get_by_name(item_name) if isinstance(item_name, str) else None
                if item is None:
                    logger.debug("Ignoring unknown grouped value %r under %s", item_name, inp.name)
                    continue
                total += calculate_kitchen_item_price(item, True, snapshot, kitchen_size)
            continue

        if is_absent(value):
            continue
        total += calculate_kitchen_item_price(inp, value, snapshot, kitchen_size)

    return round_total(total)
