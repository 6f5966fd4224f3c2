# finflow/allocation.py
"""
Budget planner: files spending categories into the 75/15/10 tiers.

Each tier holds an ordered bucket of categories. Bucket order is the relative
order of its members inside ``FinanceData.spending_categories``, so moving one
category never disturbs the position of anything else.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Tuple
import logging

from finflow.aggregation import allocation_amount, total_income
from finflow.models import (
    FinanceData,
    PERCENT_TIERS,
    SpendingCategory,
    Tier,
    TIER_ORDER,
    find_category,
)
from finflow.results import MutationResult, applied, not_found, unchanged

logger = logging.getLogger(__name__)


def tier_capacity(tier: Tier, income: float) -> float:
    if tier.percent is None:
        return 0.0
    return income * tier.percent / 100


def tier_total(tier: Tier, categories: Iterable[SpendingCategory]) -> float:
    return float(sum(allocation_amount(c) for c in categories if c.tier is tier))


def bucket(data: FinanceData, tier: Tier) -> Tuple[SpendingCategory, ...]:
    return tuple(c for c in data.spending_categories if c.tier is tier)


def columns(data: FinanceData) -> Dict[Tier, Tuple[SpendingCategory, ...]]:
    return {tier: bucket(data, tier) for tier in TIER_ORDER}


@dataclass(frozen=True)
class TierStatus:
    tier: Tier
    capacity: float
    total: float

    @property
    def difference(self) -> float:
        return self.capacity - self.total

    @property
    def is_over(self) -> bool:
        return self.difference < 0

    @property
    def magnitude(self) -> float:
        return abs(self.difference)

    @property
    def label(self) -> str:
        return "Over by" if self.is_over else "Under by"

    def describe(self) -> str:
        return f"{self.label} ${self.magnitude:,.2f}"


def tier_status(data: FinanceData, tier: Tier) -> TierStatus:
    return TierStatus(
        tier=tier,
        capacity=tier_capacity(tier, total_income(data)),
        total=tier_total(tier, data.spending_categories),
    )


def plan_status(data: FinanceData) -> List[TierStatus]:
    return [tier_status(data, tier) for tier in PERCENT_TIERS]


def _move(
    data: FinanceData,
    category_id: str,
    target_tier: Tier,
    target_index: int,
    clamp: bool,
) -> MutationResult:
    moved = find_category(data, category_id)
    if moved is None:
        return not_found(data, f"Spending category {category_id} does not exist")

    source_bucket = bucket(data, moved.tier)
    source_index = next(i for i, c in enumerate(source_bucket) if c.id == category_id)

    remaining: List[SpendingCategory] = [c for c in data.spending_categories if c.id != category_id]
    dest = [c for c in remaining if c.tier is target_tier]
    index = max(0, min(int(target_index), len(dest)))

    if moved.tier is target_tier and index == source_index:
        return unchanged(data, "Category is already at that position")

    updated = replace(moved, tier=target_tier)
    # a reorder inside the same tier keeps membership, so totals stay as they are
    if clamp and moved.tier is not target_tier and target_tier.percent is not None:
        headroom = max(0.0, tier_capacity(target_tier, total_income(data)) - tier_total(target_tier, remaining))
        wanted = allocation_amount(moved)
        if wanted > headroom:
            logger.debug("Clamping %s from %s to %s in %s", category_id, wanted, headroom, target_tier.value)
            updated = replace(updated, amount=headroom)

    if index < len(dest):
        # slot in front of the category currently holding that bucket position
        anchor = remaining.index(dest[index])
    elif dest:
        anchor = remaining.index(dest[-1]) + 1
    else:
        anchor = len(remaining)
    remaining.insert(anchor, updated)

    return applied(replace(data, spending_categories=tuple(remaining)), entity_id=category_id)


def assign_category(data: FinanceData, category_id: str, target_tier: Tier, target_index: int) -> MutationResult:
    """Move a category into ``target_tier`` at ``target_index``.

    Capacity is only advisory here; see ``tier_status`` for over/under reporting.
    """
    return _move(data, category_id, target_tier, target_index, clamp=False)


def assign_category_clamped(data: FinanceData, category_id: str, target_tier: Tier, target_index: int) -> MutationResult:
    """Like ``assign_category`` but truncates the moved category's allocation
    to whatever headroom the target tier has left (never below zero)."""
    return _move(data, category_id, target_tier, target_index, clamp=True)


def release_allocation(data: FinanceData, category_id: str) -> MutationResult:
    cat = find_category(data, category_id)
    if cat is None:
        return not_found(data, f"Spending category {category_id} does not exist")
    if cat.amount is None:
        return unchanged(data, "Category has no allocation override")
    cats = tuple(replace(c, amount=None) if c.id == category_id else c for c in data.spending_categories)
    return applied(replace(data, spending_categories=cats), entity_id=category_id)


def sort_unallocated(data: FinanceData) -> FinanceData:
    """Order the unallocated bucket by descending amount, leaving tiers alone."""
    ordered = iter(sorted(bucket(data, Tier.UNALLOCATED), key=allocation_amount, reverse=True))
    cats = tuple(next(ordered) if c.tier is Tier.UNALLOCATED else c for c in data.spending_categories)
    if cats == data.spending_categories:
        return data
    return replace(data, spending_categories=cats)
