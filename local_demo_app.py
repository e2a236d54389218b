from __future__ import annotations

import json
import logging
from typing import Mapping, Optional

import streamlit as st

from app_config import AppConfig, configure_logging, load_app_config, load_env_file
from input_grouping import DetailSection, filled_details, group_catalog
from priced_inputs import (
    ADDITIONAL_WORK_CATALOG_KEY,
    KITCHEN_CATALOG_KEY,
    CatalogError,
    ElementKind,
    ExperienceTier,
    InputCatalog,
    KitchenSize,
    PricedInput,
    load_additional_work_catalog,
    load_kitchen_catalog,
)
from pricing_calculator import calculate_kitchen_total, calculate_total, kitchen_base_price, size_index
from quote_payload import build_quote_payload, information_field_names

logger = logging.getLogger(__name__)

QUOTE_CATEGORIES = {
    "Kitchen": KITCHEN_CATALOG_KEY,
    "Additional work (bathroom / basement)": ADDITIONAL_WORK_CATALOG_KEY,
}


def _format_usd(amount: float) -> str:
    return f"${amount:,.2f}"


def _state_key(catalog_key: str, field_name: str) -> str:
    # Both catalogs live in one session; prefix so field names never collide.
    return f"{catalog_key}:{field_name}"


def _grouped_checkbox_options(catalog: InputCatalog, inp: PricedInput) -> tuple[str, ...]:
    """
    Member names for a grouped checkbox field.

    A checkbox named after its own category (e.g. `subFloor`) stores the list of
    checked sibling checkboxes instead of a boolean.
    """
    if inp.element != ElementKind.CHECKBOX or inp.name != inp.category:
        return ()
    return tuple(
        other.name
        for other in catalog.get_all()
        if other.category == inp.category and other.element == ElementKind.CHECKBOX and other.name != inp.name
    )


def _grouped_member_names(catalog: InputCatalog) -> set[str]:
    members: set[str] = set()
    for inp in catalog.get_all():
        members.update(_grouped_checkbox_options(catalog, inp))
    return members


def _default_state(catalog: InputCatalog) -> dict[str, object]:
    state: dict[str, object] = {}
    for inp in catalog.get_all():
        if _grouped_checkbox_options(catalog, inp):
            state[_state_key(catalog.key, inp.name)] = []
        elif inp.element == ElementKind.CHECKBOX:
            state[_state_key(catalog.key, inp.name)] = False
        else:
            state[_state_key(catalog.key, inp.name)] = None
        if inp.quantity_field_name:
            state[_state_key(catalog.key, inp.quantity_field_name)] = None
        if inp.custom_field_name:
            state[_state_key(catalog.key, inp.custom_field_name)] = None
    return state


def _snapshot_from_state(catalog: InputCatalog, state: Mapping[str, object]) -> dict[str, object]:
    """Form snapshot (field name -> value) for one catalog out of the prefixed session state."""
    snapshot: dict[str, object] = {}
    for field_name in information_field_names(catalog):
        key = _state_key(catalog.key, field_name)
        if key in state:
            snapshot[field_name] = state[key]
    return snapshot


def _price_hint(inp: PricedInput, kitchen_size: Optional[KitchenSize]) -> str:
    if inp.element == ElementKind.INPUT_FILE_TEXT_AREA:
        return ""
    if inp.has_price_table and not inp.size:
        return ""
    if kitchen_size is not None:
        price = kitchen_base_price(inp, size_index(kitchen_size))
    else:
        price = inp.base_price
    if price <= 0:
        return ""
    return f"{_format_usd(price)} / {inp.unit}" if inp.unit else _format_usd(price)


def _init_state(catalog: InputCatalog) -> None:
    for key, value in _default_state(catalog).items():
        if key not in st.session_state:
            st.session_state[key] = value


def _reset_state(catalog: InputCatalog) -> None:
    for key, value in _default_state(catalog).items():
        st.session_state[key] = value


def _render_input(catalog: InputCatalog, inp: PricedInput, kitchen_size: Optional[KitchenSize]) -> None:
    key = _state_key(catalog.key, inp.name)
    hint = _price_hint(inp, kitchen_size)
    label = f"{inp.label} ({hint})" if hint else inp.label

    if inp.element == ElementKind.NUMBER_INPUT:
        st.number_input(f"{label} [{inp.unit}]" if inp.unit else label, min_value=0.0, step=1.0, key=key)
    elif inp.element == ElementKind.CHECKBOX:
        members = _grouped_checkbox_options(catalog, inp)
        if members:
            labels = {name: catalog.get_by_name(name).label for name in members}  # type: ignore[union-attr]
            st.multiselect(label, options=list(members), format_func=lambda n: labels.get(n, n), key=key)
        else:
            st.checkbox(label, key=key)
    elif inp.element == ElementKind.RADIO_BUTTON:
        st.radio(
            label,
            options=[None, *inp.selections],
            format_func=lambda v: "(not set)" if v is None else v,
            horizontal=True,
            key=key,
        )
    elif inp.element in (ElementKind.SELECT, ElementKind.SELECT_CUSTOM_INPUT_TEXT):
        st.selectbox(label, options=[None, *inp.selections], format_func=lambda v: "(not set)" if v is None else v, key=key)
    elif inp.element == ElementKind.INPUT_FILE_TEXT_AREA:
        st.text_area(label, key=key)

    value = st.session_state.get(key)
    if inp.quantity_field_name and value and str(value).lower() not in ("no", "none", "custom"):
        st.number_input(
            f"{inp.label} quantity" + (f" [{inp.unit}]" if inp.unit else ""),
            min_value=0.0,
            step=1.0,
            key=_state_key(catalog.key, inp.quantity_field_name),
        )
    if inp.custom_field_name and isinstance(value, str) and value.lower() == "custom":
        st.number_input(f"{inp.label} (custom)", key=_state_key(catalog.key, inp.custom_field_name))


def _render_catalog_form(
    catalog: InputCatalog, experience: Optional[ExperienceTier], kitchen_size: Optional[KitchenSize]
) -> None:
    members = _grouped_member_names(catalog)
    for group in group_catalog(catalog, experience):
        with st.expander(group.title, expanded=False):
            for sub in group.subcategories:
                if sub.title:
                    st.markdown(f"**{sub.title}**")
                for inp in sub.inputs:
                    if inp.name in members:
                        continue
                    _render_input(catalog, inp, kitchen_size)


def _render_details(sections: tuple[DetailSection, ...]) -> None:
    if not sections:
        st.caption("Nothing filled in yet.")
        return
    for section in sections:
        st.markdown(f"#### {section.title.upper()}")
        for sub_title, rows in section.subsections:
            if sub_title:
                st.markdown(f"**{sub_title}**")
            st.table([{"Item": row.label, "Value": row.display_value} for row in rows])


def _load_catalog(catalog_key: str, config: AppConfig) -> InputCatalog:
    if catalog_key == KITCHEN_CATALOG_KEY:
        return load_kitchen_catalog(config.catalog_dir)
    return load_additional_work_catalog(config.catalog_dir)


def main() -> None:
    load_env_file()
    config = load_app_config()
    configure_logging(config)

    st.set_page_config(page_title="Remodel Estimate - Quote Demo (Local)", layout="wide")
    st.title("Remodel Estimate - Quote Demo (Local)")

    with st.sidebar:
        category_label = st.radio("Quote category", options=list(QUOTE_CATEGORIES), key="quote_category")
    catalog_key = QUOTE_CATEGORIES[category_label]

    try:
        catalog = _load_catalog(catalog_key, config)
    except (CatalogError, OSError) as exc:
        logger.error("Unable to load %s catalog: %s", catalog_key, exc)
        st.error(f"Could not load the {category_label.lower()} catalog: {exc}")
        st.stop()
        return
    _init_state(catalog)

    experience: Optional[ExperienceTier] = None
    kitchen_size: Optional[KitchenSize] = None
    if catalog_key == KITCHEN_CATALOG_KEY:
        with st.sidebar:
            tiers = list(ExperienceTier)
            experience = st.selectbox(
                "Experience",
                options=tiers,
                index=tiers.index(config.default_experience),
                format_func=lambda t: t.value.title(),
                key="kitchen_experience",
            )
            sizes = list(KitchenSize)
            kitchen_size = st.radio(
                "Kitchen size",
                options=sizes,
                index=sizes.index(config.default_kitchen_size),
                format_func=lambda s: s.value.title(),
                horizontal=True,
                key="kitchen_size",
            )

    with st.sidebar:
        if st.button("Reset form"):
            _reset_state(catalog)
            st.rerun()

    tab_form, tab_details = st.tabs(["Estimate", "Details & payload"])

    with tab_form:
        _render_catalog_form(catalog, experience, kitchen_size)

    # Recompute on every rerun so the sidebar total always matches the form.
    snapshot = _snapshot_from_state(catalog, st.session_state)
    if experience is not None and kitchen_size is not None:
        total = calculate_kitchen_total(catalog, snapshot, experience, kitchen_size)
    else:
        total = calculate_total(catalog, snapshot)

    with st.sidebar:
        st.metric("Estimated total", _format_usd(total))

    with tab_details:
        _render_details(filled_details(group_catalog(catalog, experience), snapshot))
        payload = build_quote_payload(
            category=catalog_key,
            catalog=catalog,
            snapshot=snapshot,
            total_price=total,
            experience=experience,
            kitchen_size=kitchen_size,
        )
        st.json(payload)
        st.download_button(
            "Download payload (JSON)",
            data=json.dumps(payload, indent=2),
            file_name=f"{catalog_key}_quote.json",
            mime="application/json",
        )


if __name__ == "__main__":
    main()
