"""Structured results returned by the accounting engine.

Business failures are values, not exceptions: callers branch on
``allowed`` / ``success`` and show ``message`` to the user.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime


@dataclass
class CreditCheckResult:
    allowed: bool
    remaining_credits: int
    message: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CreditDeductionResult:
    """Outcome of a ledger mutation.

    ``allowed`` mirrors ``success`` for the fused check-and-deduct call.
    """

    success: bool
    new_balance: int
    message: str | None = None
    error_code: str | None = None

    @property
    def allowed(self) -> bool:
        return self.success

    def to_dict(self) -> dict:
        data = asdict(self)
        data["allowed"] = self.allowed
        return data


@dataclass
class CreditBalance:
    balance: int
    package_name: str | None = None
    end_date: datetime | None = None

    def to_dict(self) -> dict:
        subscription = None
        if self.package_name is not None:
            subscription = {
                "package_name": self.package_name,
                "end_date": self.end_date.isoformat() if self.end_date else None,
            }
        return {"balance": self.balance, "subscription": subscription}


@dataclass
class ExpiryStatus:
    is_expiring: bool
    days_remaining: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RevisionResult:
    allowed: bool
    is_free: bool
    credit_cost: int
    new_revision_count: int
    message: str
    error_code: str | None = None
    new_balance: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RevisionInfo:
    current_count: int
    max_free: int
    total_revisions: int
    next_revision_cost: int
    free_revisions_remaining: int

    def to_dict(self) -> dict:
        return asdict(self)
