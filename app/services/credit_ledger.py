"""Credit ledger — the only code that changes a subscription's balance.

Every spend is one conditional decrement in the store
(``remaining >= amount`` is part of the UPDATE), so a balance can never go
negative and two concurrent spends cannot both use the same credit.
Callers that need the spend to commit together with other writes pass
``commit=False`` and commit the surrounding transaction themselves.
"""

import logging
import math

from app.config.settings import get_setting
from app.domain.clock import as_utc, utcnow
from app.domain.exceptions import ErrorCode
from app.domain.results import (
    CreditBalance,
    CreditCheckResult,
    CreditDeductionResult,
    ExpiryStatus,
)
from app.repositories.base import persistence_guard
from app.repositories.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)

NO_SUBSCRIPTION_MESSAGE = "No active subscription found. Please subscribe to a package."


def insufficient_message(available: int, required: int) -> str:
    return f"Insufficient credits. You have {available} credits but need {required}."


class CreditLedger:
    """Check, spend and grant credits on a user's active subscription."""

    def __init__(self, subscription_repo: SubscriptionRepository | None = None):
        self._sub_repo = subscription_repo or SubscriptionRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def check_credits(self, user_id: int, required: int = 1) -> CreditCheckResult:
        """Whether the user can afford ``required`` credits right now.

        Advisory only: the spend itself re-checks atomically.
        """
        with persistence_guard("check credits"):
            subscription = self._sub_repo.get_active_for_user(user_id)

        if not subscription:
            return CreditCheckResult(
                allowed=False,
                remaining_credits=0,
                message=NO_SUBSCRIPTION_MESSAGE,
                error_code=ErrorCode.NO_ACTIVE_SUBSCRIPTION,
            )

        if subscription.remaining_credits < required:
            return CreditCheckResult(
                allowed=False,
                remaining_credits=subscription.remaining_credits,
                message=insufficient_message(subscription.remaining_credits, required),
                error_code=ErrorCode.INSUFFICIENT_CREDITS,
            )

        return CreditCheckResult(allowed=True, remaining_credits=subscription.remaining_credits)

    def get_credit_balance(self, user_id: int) -> CreditBalance:
        with persistence_guard("read credit balance"):
            subscription = self._sub_repo.get_active_for_user(user_id)
            if not subscription:
                return CreditBalance(balance=0)
            return CreditBalance(
                balance=subscription.remaining_credits,
                package_name=subscription.package.name,
                end_date=subscription.end_date,
            )

    def check_subscription_expiry(self, user_id: int) -> ExpiryStatus:
        """Days left on the newest subscription still flagged active.

        No subscription counts as already expiring.
        """
        with persistence_guard("check subscription expiry"):
            subscription = self._sub_repo.get_latest_flagged_active(user_id)

        if not subscription:
            return ExpiryStatus(is_expiring=True, days_remaining=0)

        seconds_left = (as_utc(subscription.end_date) - utcnow()).total_seconds()
        days_remaining = math.ceil(seconds_left / 86400)
        return ExpiryStatus(
            is_expiring=days_remaining <= get_setting("EXPIRY_WARNING_DAYS"),
            days_remaining=max(0, days_remaining),
        )

    def get_transactions(self, user_id: int) -> list[dict]:
        with persistence_guard("read credit transactions"):
            return [t.to_dict() for t in self._sub_repo.get_transactions(user_id)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def check_and_deduct_credits(
        self, user_id: int, amount: int = 1, reason: str | None = None, commit: bool = True,
    ) -> CreditDeductionResult:
        """Check and spend in one step; ``allowed`` on the result mirrors ``success``."""
        return self._spend(user_id, amount, reason, commit)

    def deduct_credits(
        self, user_id: int, amount: int = 1, reason: str | None = None, commit: bool = True,
    ) -> CreditDeductionResult:
        """Spend ``amount`` credits. Fails, leaving the balance untouched, if it is too low."""
        return self._spend(user_id, amount, reason, commit)

    def add_credits(
        self, user_id: int, amount: int, reason: str | None = None, commit: bool = True,
    ) -> CreditDeductionResult:
        """Grant credits (refund, bonus, approved payment).

        Credits are never granted to an expired or missing subscription.
        """
        if amount <= 0:
            raise ValueError("amount must be positive")

        with persistence_guard("add credits"):
            subscription = self._sub_repo.get_active_for_user(user_id)
            if not subscription:
                return CreditDeductionResult(
                    success=False,
                    new_balance=0,
                    message="No active subscription found.",
                    error_code=ErrorCode.NO_ACTIVE_SUBSCRIPTION,
                )

            self._sub_repo.increment(subscription.id, amount)
            new_balance = self._sub_repo.refresh(subscription).remaining_credits
            self._sub_repo.record_transaction(subscription, amount, new_balance, reason)
            if commit:
                self._sub_repo.commit()

        logger.info("[CREDIT] Added %s to user %s. Reason: %s", amount, user_id, reason or "N/A")
        return CreditDeductionResult(
            success=True,
            new_balance=new_balance,
            message=f"Successfully added {amount} credit(s).",
        )

    def _spend(self, user_id: int, amount: int, reason: str | None, commit: bool) -> CreditDeductionResult:
        if amount < 0:
            raise ValueError("amount must not be negative")

        with persistence_guard("deduct credits"):
            subscription = self._sub_repo.get_active_for_user(user_id)
            if not subscription:
                return CreditDeductionResult(
                    success=False,
                    new_balance=0,
                    message=NO_SUBSCRIPTION_MESSAGE,
                    error_code=ErrorCode.NO_ACTIVE_SUBSCRIPTION,
                )

            if amount == 0:
                return CreditDeductionResult(
                    success=True,
                    new_balance=subscription.remaining_credits,
                    message="Nothing to deduct.",
                )

            now = utcnow()
            deducted = self._sub_repo.try_deduct(subscription.id, amount, now)
            balance = self._sub_repo.refresh(subscription).remaining_credits
            if not deducted and (not subscription.is_active or as_utc(subscription.end_date) < now):
                logger.warning("[CREDIT] Subscription %s lapsed before deduction", subscription.id)
                return CreditDeductionResult(
                    success=False,
                    new_balance=0,
                    message=NO_SUBSCRIPTION_MESSAGE,
                    error_code=ErrorCode.NO_ACTIVE_SUBSCRIPTION,
                )
            if not deducted:
                logger.warning(
                    "[CREDIT] Rejected deduction of %s from user %s (balance %s)",
                    amount, user_id, balance,
                )
                return CreditDeductionResult(
                    success=False,
                    new_balance=balance,
                    message=insufficient_message(balance, amount),
                    error_code=ErrorCode.INSUFFICIENT_CREDITS,
                )

            self._sub_repo.record_transaction(subscription, -amount, balance, reason)
            if commit:
                self._sub_repo.commit()

        logger.info("[CREDIT] Deducted %s from user %s. Reason: %s", amount, user_id, reason or "N/A")
        return CreditDeductionResult(
            success=True,
            new_balance=balance,
            message=f"Successfully deducted {amount} credit(s).",
        )
