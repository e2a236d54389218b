from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from priced_inputs import DEFAULT_SUBCATEGORY, ExperienceTier, InputCatalog, PricedInput


@dataclass(frozen=True)
class SubcategoryGroup:
    subcategory: str
    title: str
    inputs: Tuple[PricedInput, ...]


@dataclass(frozen=True)
class CategoryGroup:
    category: str
    title: str
    subcategories: Tuple[SubcategoryGroup, ...]


@dataclass(frozen=True)
class DetailRow:
    name: str
    label: str
    display_value: str


@dataclass(frozen=True)
class DetailSection:
    category: str
    title: str
    # (subcategory title, rows); the untitled "default" subcategory has title ""
    subsections: Tuple[Tuple[str, Tuple[DetailRow, ...]], ...]


_CAPITAL_RE = re.compile(r"([A-Z])")

# values the export treats as "not filled in"
_EMPTY_VALUES = (None, False, "", "No")


def format_title(key: str) -> str:
    """
    Title-case a camelCase key: "wallDemo" -> "Wall Demo".

    ASCII capitals only, so the result does not depend on locale.
    """
    spaced = _CAPITAL_RE.sub(r" \1", key)
    return (spaced[:1].upper() + spaced[1:]).strip()


def get_ordered_grouped_inputs(inputs: Iterable[PricedInput]) -> Tuple[CategoryGroup, ...]:
    """
    Group a flat input sequence into category -> subcategory -> inputs.

    Categories, subcategories and inputs all keep their first-seen order; the
    same subcategory key under two categories yields two separate groups.
    """
    category_order: List[str] = []
    subcategory_order: Dict[str, List[str]] = {}
    members: Dict[Tuple[str, str], List[PricedInput]] = {}

    for inp in inputs:
        category_key = inp.category
        if category_key not in subcategory_order:
            category_order.append(category_key)
            subcategory_order[category_key] = []

        subcategory_key = inp.subcategory or DEFAULT_SUBCATEGORY
        composite = (category_key, subcategory_key)
        if composite not in members:
            subcategory_order[category_key].append(subcategory_key)
            members[composite] = []
        members[composite].append(inp)

    groups: List[CategoryGroup] = []
    for category_key in category_order:
        subgroups = tuple(
            SubcategoryGroup(
                subcategory=sub_key,
                title="" if sub_key == DEFAULT_SUBCATEGORY else format_title(sub_key),
                inputs=tuple(members[(category_key, sub_key)]),
            )
            for sub_key in subcategory_order[category_key]
        )
        groups.append(CategoryGroup(category=category_key, title=format_title(category_key), subcategories=subgroups))
    return tuple(groups)


def group_catalog(
    catalog: InputCatalog, experience: Optional[Union[ExperienceTier, str]] = None
) -> Tuple[CategoryGroup, ...]:
    inputs = catalog.get_all() if experience is None else catalog.filter_by_experience(experience)
    return get_ordered_grouped_inputs(inputs)


def is_filled(value: object) -> bool:
    # `in` would treat 0 as equal to False
    return not any(value is v or (type(value) is type(v) and value == v) for v in _EMPTY_VALUES)


def display_value(inp: PricedInput, value: object) -> str:
    if value is True:
        return "Yes"
    if value is False:
        return "No"
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, (list, tuple)):
        text = ", ".join(str(v) for v in value)
    else:
        text = str(value)
    if inp.unit:
        text += f" {inp.unit}"
    return text


def filled_details(groups: Iterable[CategoryGroup], values: Mapping[str, object]) -> Tuple[DetailSection, ...]:
    """
    Details view for document export: the same grouping, keeping only fields with a value.

    Empty subcategories and categories are dropped; order is untouched.
    """
    sections: List[DetailSection] = []
    for group in groups:
        subsections: List[Tuple[str, Tuple[DetailRow, ...]]] = []
        for sub in group.subcategories:
            rows = tuple(
                DetailRow(name=inp.name, label=inp.label, display_value=display_value(inp, values.get(inp.name)))
                for inp in sub.inputs
                if is_filled(values.get(inp.name))
            )
            if rows:
                subsections.append((sub.title, rows))
        if subsections:
            sections.append(DetailSection(category=group.category, title=group.title, subsections=tuple(subsections)))
    return tuple(sections)
