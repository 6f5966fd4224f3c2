# finflow/default_catalog.py
from __future__ import annotations
from typing import Optional

from rapidfuzz import fuzz, process

from finflow.models import FinanceData, IncomeSource, SpendingCategory, SubCategory

# Immutable defaults (read-only). You can expand safely; never modify at runtime.
DEFAULT_CATEGORIES: dict[str, list[str]] = {
    "Housing": ["Rent/Mortgage", "Utilities", "Maintenance", "Property Tax", "Insurance"],
    "Transportation": ["Public Transport", "Car Maintenance", "Fuel", "Parking", "Insurance"],
    "Food": ["Groceries", "Dining Out", "Coffee"],
    "Entertainment": ["Movies & Shows", "Hobbies", "Social Activities", "Subscriptions"],
    "Health": ["Insurance Premiums", "Prescriptions", "Dental", "Vision"],
    "Personal & Family": ["Childcare", "School", "Gifts", "Clothing"],
    "Debt": ["Credit Card Payment", "Student Loan", "Auto Loan"],
    "Savings": ["Emergency Fund", "Investment", "Retirement"],
}

DEFAULT_INCOME_SOURCES: list[str] = ["Salary", "Investments", "Freelance", "Side Hustle"]


def flat_default_categories() -> list[str]:
    return list(DEFAULT_CATEGORIES.keys())


def defaults_for(category: str) -> list[str]:
    return DEFAULT_CATEGORIES.get(category, [])


def suggest_category(text: str, cutoff: int = 60) -> tuple[str, int]:
    """Closest catalog category for a typed label, with its match score."""
    if not text or not text.strip():
        return ("", 0)
    match = process.extractOne(text, flat_default_categories(), scorer=fuzz.token_set_ratio, score_cutoff=cutoff)
    if not match:
        return ("", 0)
    return (match[0], int(match[1]))


def default_subcategories(label: str, existing: Optional[list[str]] = None) -> list[str]:
    """Stock sub-category labels for a category that aren't already used."""
    name, _ = suggest_category(label)
    taken = {e.strip().lower() for e in (existing or [])}
    return [s for s in defaults_for(name) if s.lower() not in taken]


def sample_finance_data() -> FinanceData:
    """Demo household used when nothing has been saved yet."""
    def cat(cid: str, label: str, subs: list[tuple[str, float]]) -> SpendingCategory:
        return SpendingCategory(
            id=cid,
            label=label,
            sub_categories=tuple(
                SubCategory(id=f"{cid}-{i}", label=sub_label, amount=amount)
                for i, (sub_label, amount) in enumerate(subs, start=1)
            ),
        )

    return FinanceData(
        income_sources=(
            IncomeSource(id="1", label="Salary", amount=3500),
            IncomeSource(id="2", label="Investments", amount=500),
            IncomeSource(id="3", label="Freelance", amount=1000),
        ),
        spending_categories=(
            cat("1", "Housing", [("Rent", 1500), ("Utilities", 500)]),
            cat("2", "Transportation", [("Public Transport", 200), ("Car Maintenance", 300)]),
            cat("3", "Food", [("Groceries", 500), ("Dining Out", 300)]),
            cat("4", "Entertainment", [("Movies & Shows", 200), ("Hobbies", 300), ("Social Activities", 200)]),
            cat("5", "Savings", [("Emergency Fund", 600), ("Investment", 400)]),
        ),
    )
