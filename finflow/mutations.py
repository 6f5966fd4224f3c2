# finflow/mutations.py
"""
Structural edits on ``FinanceData``.

Every function is pure: it takes the current data and returns a
``MutationResult`` whose ``data`` is a new value (or the untouched input when
nothing was applied). Unrelated entities are shared, not copied.
"""
from __future__ import annotations
from dataclasses import replace
from typing import Any, Optional, Tuple
import logging
import math

from finflow.aggregation import total_income, total_spending
from finflow.models import (
    FinanceData,
    IncomeSource,
    SpendingCategory,
    SubCategory,
    find_category,
    new_id,
)
from finflow.results import MutationResult, applied, not_found, rejected

logger = logging.getLogger(__name__)

# "name" is the legacy alias of "label"
_FIELD_ALIASES = {"name": "label", "label": "label", "amount": "amount"}


def _field(field: str) -> str:
    try:
        return _FIELD_ALIASES[field]
    except KeyError:
        raise ValueError(f"Unknown field '{field}'. Expected one of: label, name, amount") from None


def _parse_amount(value: Any) -> Optional[float]:
    """Return a usable non-negative amount or None when the value is unusable."""
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return None
    return amount


def _with_categories(data: FinanceData, cats: Tuple[SpendingCategory, ...]) -> FinanceData:
    return replace(data, spending_categories=cats)


# ----- add -----

def add_income_source(data: FinanceData) -> MutationResult:
    source = IncomeSource(id=new_id())
    return applied(replace(data, income_sources=data.income_sources + (source,)), entity_id=source.id)


def add_spending_category(data: FinanceData) -> MutationResult:
    category = SpendingCategory(id=new_id())
    return applied(_with_categories(data, data.spending_categories + (category,)), entity_id=category.id)


def add_sub_category(data: FinanceData, category_id: str, label: str = "") -> MutationResult:
    if find_category(data, category_id) is None:
        return not_found(data, f"Spending category {category_id} does not exist")
    sub = SubCategory(id=new_id(), label=label)
    cats = tuple(
        replace(c, sub_categories=c.sub_categories + (sub,)) if c.id == category_id else c
        for c in data.spending_categories
    )
    return applied(_with_categories(data, cats), entity_id=sub.id)


# ----- update -----

def update_income_source(data: FinanceData, source_id: str, field: str, value: Any) -> MutationResult:
    attr = _field(field)
    if not any(s.id == source_id for s in data.income_sources):
        return not_found(data, f"Income source {source_id} does not exist")
    if attr == "amount":
        value = _parse_amount(value)
        if value is None:
            return rejected(data, "Amount must be a non-negative number")
    else:
        value = str(value)
    sources = tuple(replace(s, **{attr: value}) if s.id == source_id else s for s in data.income_sources)
    return applied(replace(data, income_sources=sources), entity_id=source_id)


def update_spending_category(data: FinanceData, category_id: str, field: str, value: Any) -> MutationResult:
    """Edit a category label or its allocation amount."""
    attr = _field(field)
    if find_category(data, category_id) is None:
        return not_found(data, f"Spending category {category_id} does not exist")
    if attr == "amount":
        value = _parse_amount(value)
        if value is None:
            return rejected(data, "Amount must be a non-negative number")
    else:
        value = str(value)
    cats = tuple(replace(c, **{attr: value}) if c.id == category_id else c for c in data.spending_categories)
    return applied(_with_categories(data, cats), entity_id=category_id)


def update_sub_category(
    data: FinanceData,
    category_id: str,
    sub_id: str,
    field: str,
    value: Any,
) -> MutationResult:
    """Edit one sub-category field.

    Amount edits are checked against total income before anything changes:
    if the new amount would push total spending above total income the whole
    update is rejected and ``data`` is returned as-is.
    """
    attr = _field(field)
    category = find_category(data, category_id)
    if category is None:
        return not_found(data, f"Spending category {category_id} does not exist")
    target = next((s for s in category.sub_categories if s.id == sub_id), None)
    if target is None:
        return not_found(data, f"Subcategory {sub_id} does not exist in category {category_id}")

    if attr == "amount":
        value = _parse_amount(value)
        if value is None:
            return rejected(data, "Amount must be a non-negative number")
        prospective = total_spending(data) - target.amount + value
        income = total_income(data)
        if prospective > income:
            logger.info(
                "Rejected amount %s for %s/%s: spending %s would exceed income %s",
                value, category_id, sub_id, prospective, income,
            )
            return rejected(
                data,
                f"Total spending would be {prospective:,.2f}, above total income of {income:,.2f}",
            )
    else:
        value = str(value)

    subs = tuple(replace(s, **{attr: value}) if s.id == sub_id else s for s in category.sub_categories)
    cats = tuple(
        replace(c, sub_categories=subs) if c.id == category_id else c
        for c in data.spending_categories
    )
    return applied(_with_categories(data, cats), entity_id=sub_id)


# ----- remove -----

def remove_income_source(data: FinanceData, source_id: str) -> MutationResult:
    sources = tuple(s for s in data.income_sources if s.id != source_id)
    if len(sources) == len(data.income_sources):
        return not_found(data, f"Income source {source_id} does not exist")
    return applied(replace(data, income_sources=sources), entity_id=source_id)


def remove_spending_category(data: FinanceData, category_id: str) -> MutationResult:
    # sub-categories are owned by the category and go with it
    cats = tuple(c for c in data.spending_categories if c.id != category_id)
    if len(cats) == len(data.spending_categories):
        return not_found(data, f"Spending category {category_id} does not exist")
    return applied(_with_categories(data, cats), entity_id=category_id)


def remove_sub_category(data: FinanceData, category_id: str, sub_id: str) -> MutationResult:
    category = find_category(data, category_id)
    if category is None:
        return not_found(data, f"Spending category {category_id} does not exist")
    subs = tuple(s for s in category.sub_categories if s.id != sub_id)
    if len(subs) == len(category.sub_categories):
        return not_found(data, f"Subcategory {sub_id} does not exist in category {category_id}")
    cats = tuple(
        replace(c, sub_categories=subs) if c.id == category_id else c
        for c in data.spending_categories
    )
    return applied(_with_categories(data, cats), entity_id=sub_id)


def headroom(data: FinanceData) -> float:
    """Income still available for sub-category amounts."""
    return max(0.0, total_income(data) - total_spending(data))


def max_sub_amount(data: FinanceData, category_id: str, sub_id: str) -> float:
    """Largest amount the given sub-category may be set to."""
    category = find_category(data, category_id)
    if category is None:
        return 0.0
    current = next((s.amount for s in category.sub_categories if s.id == sub_id), 0.0)
    return headroom(data) + current
