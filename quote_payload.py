from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Union

from priced_inputs import ExperienceTier, InputCatalog, KitchenSize


def information_field_names(catalog: InputCatalog) -> List[str]:
    """Every snapshot key a quote may persist, in catalog order: name, Quantity, Custom."""
    names: List[str] = []
    for inp in catalog.get_all():
        names.append(inp.name)
        if inp.quantity_field_name:
            names.append(inp.quantity_field_name)
        if inp.custom_field_name:
            names.append(inp.custom_field_name)
    return names


def build_information(catalog: InputCatalog, snapshot: Mapping[str, object]) -> Dict[str, object]:
    """
    Catalog-backed slice of a form snapshot, ready to persist with the quote.

    Keys the catalog does not know about (UI bookkeeping, customer fields) are dropped,
    as are unset values (None / "").
    """
    out: Dict[str, object] = {}
    for key in information_field_names(catalog):
        if key not in snapshot:
            continue
        value = snapshot[key]
        if value is None or (isinstance(value, str) and value == ""):
            continue
        out[key] = value
    return out


def build_quote_payload(
    *,
    category: str,
    catalog: InputCatalog,
    snapshot: Mapping[str, object],
    total_price: float,
    experience: Optional[Union[ExperienceTier, str]] = None,
    kitchen_size: Optional[Union[KitchenSize, str]] = None,
) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "category": category,
        "information": build_information(catalog, snapshot),
        "totalPrice": total_price,
    }
    if experience is not None:
        payload["experience"] = experience.value if isinstance(experience, ExperienceTier) else str(experience)
    if kitchen_size is not None:
        payload["type"] = kitchen_size.value if isinstance(kitchen_size, KitchenSize) else str(kitchen_size)
    return payload
