# finflow/aggregation.py
from __future__ import annotations
from typing import List

import pandas as pd

from finflow.models import FinanceData, SpendingCategory


def total_income(data: FinanceData) -> float:
    return float(sum(src.amount for src in data.income_sources))


def category_total(category: SpendingCategory) -> float:
    return float(sum(sub.amount for sub in category.sub_categories))


def total_spending(data: FinanceData) -> float:
    # Always recomputed from sub-categories; the category-level amount is an
    # allocation quantity and must not feed into spending.
    return float(sum(category_total(cat) for cat in data.spending_categories))


def leftover(data: FinanceData) -> float:
    return total_income(data) - total_spending(data)


def allocation_amount(category: SpendingCategory) -> float:
    """Amount a category contributes to its budget tier."""
    if category.amount is not None:
        return float(category.amount)
    return category_total(category)


SUMMARY_COLUMNS: List[str] = ["Category", "Tier", "Subcategories", "Total", "Allocated", "Share of income"]


def summary_frame(data: FinanceData) -> pd.DataFrame:
    income = total_income(data)
    rows = []
    for cat in data.spending_categories:
        total = category_total(cat)
        rows.append({
            "Category": cat.label or "Unnamed",
            "Tier": cat.tier.value,
            "Subcategories": len(cat.sub_categories),
            "Total": total,
            "Allocated": allocation_amount(cat),
            "Share of income": (total / income * 100.0) if income > 0 else 0.0,
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
