# finflow/results.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from finflow.models import FinanceData


class Outcome(Enum):
    OK = "ok"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a lookup-then-change operation.

    For anything other than ``Outcome.OK`` the ``data`` attribute is the very
    object that was passed in, so callers can keep using it unconditionally.
    """

    data: FinanceData
    outcome: Outcome = Outcome.OK
    message: str = ""
    entity_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.OK, Outcome.UNCHANGED)

    @property
    def changed(self) -> bool:
        return self.outcome is Outcome.OK


def applied(data: FinanceData, entity_id: Optional[str] = None) -> MutationResult:
    return MutationResult(data=data, outcome=Outcome.OK, entity_id=entity_id)


def unchanged(data: FinanceData, message: str = "") -> MutationResult:
    return MutationResult(data=data, outcome=Outcome.UNCHANGED, message=message)


def not_found(data: FinanceData, message: str) -> MutationResult:
    return MutationResult(data=data, outcome=Outcome.NOT_FOUND, message=message)


def rejected(data: FinanceData, message: str) -> MutationResult:
    return MutationResult(data=data, outcome=Outcome.REJECTED, message=message)


class InvalidPayload(ValueError):
    """Raised when imported finance data does not have the expected shape."""


class StorageError(Exception):
    """Raised when a persistence backend cannot read or write."""


class AuthError(Exception):
    """Raised when Google credentials are missing or rejected."""
