# finflow/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4


class Tier(Enum):
    """Budget bucket a spending category is filed under."""

    SEVENTY_FIVE = "75%"
    FIFTEEN = "15%"
    TEN = "10%"
    UNALLOCATED = "Unallocated"

    @property
    def percent(self) -> Optional[int]:
        return _TIER_PERCENT[self]

    @property
    def fraction(self) -> float:
        pct = self.percent
        return 0.0 if pct is None else pct / 100

    @classmethod
    def from_percent(cls, pct) -> "Tier":
        # anything missing or unknown lands in the unallocated bucket
        try:
            pct = float(str(pct).rstrip("%"))
        except (TypeError, ValueError):
            return cls.UNALLOCATED
        for tier, value in _TIER_PERCENT.items():
            if value is not None and pct == value:
                return tier
        return cls.UNALLOCATED


_TIER_PERCENT = {
    Tier.SEVENTY_FIVE: 75,
    Tier.FIFTEEN: 15,
    Tier.TEN: 10,
    Tier.UNALLOCATED: None,
}

# Display / iteration order of the planner columns
TIER_ORDER: Tuple[Tier, ...] = (Tier.SEVENTY_FIVE, Tier.FIFTEEN, Tier.TEN, Tier.UNALLOCATED)
PERCENT_TIERS: Tuple[Tier, ...] = TIER_ORDER[:3]


@dataclass(frozen=True)
class IncomeSource:
    id: str
    label: str = ""
    amount: float = 0.0


@dataclass(frozen=True)
class SubCategory:
    id: str               # unique within the parent category
    label: str = ""
    amount: float = 0.0


@dataclass(frozen=True)
class SpendingCategory:
    id: str
    label: str = ""
    amount: Optional[float] = None   # allocation override; None -> derived from sub-categories
    tier: Tier = Tier.UNALLOCATED
    sub_categories: Tuple[SubCategory, ...] = ()


@dataclass(frozen=True)
class FinanceData:
    income_sources: Tuple[IncomeSource, ...] = field(default_factory=tuple)
    spending_categories: Tuple[SpendingCategory, ...] = field(default_factory=tuple)


def new_id() -> str:
    return uuid4().hex


def find_category(data: FinanceData, category_id: str) -> Optional[SpendingCategory]:
    return next((c for c in data.spending_categories if c.id == category_id), None)
