"""Subscription service — package subscriptions and the expiry sweep.

A user holds at most one active, unexpired subscription: ``subscribe``
refuses a second one, and the ledger always charges that single row.
"""

import logging
import math
from datetime import datetime, timedelta

from app.config.settings import get_setting
from app.domain.clock import as_utc, utcnow
from app.domain.exceptions import ConflictError, ResourceNotFoundError
from app.repositories.activity_repository import NotificationRepository
from app.repositories.base import persistence_guard
from app.repositories.package_repository import PackageRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.side_effects import SideEffects

logger = logging.getLogger(__name__)

EXPIRING_TITLE = "Subscription Expiring Soon"
EXPIRED_TITLE = "Subscription Expired"
RENOTIFY_AFTER = timedelta(days=7)


class SubscriptionService:
    """Manages the subscription lifecycle around the credit ledger."""

    def __init__(self, side_effects: SideEffects | None = None):
        self._sub_repo = SubscriptionRepository()
        self._package_repo = PackageRepository()
        self._notification_repo = NotificationRepository()
        self._side_effects = side_effects or SideEffects()

    def subscribe(self, user_id: int, package_id: int) -> dict:
        """Start a subscription funded with the package's credits."""
        with persistence_guard("subscribe"):
            if self._sub_repo.get_active_for_user(user_id):
                raise ConflictError(
                    "You already have an active subscription. "
                    "Please cancel it first or wait for it to expire."
                )

            package = self._package_repo.get_by_id(package_id)
            if not package or not package.is_active:
                raise ResourceNotFoundError("Package", package_id)

            now = utcnow()
            subscription = self._sub_repo.create(
                user_id=user_id,
                package_id=package.id,
                remaining_credits=package.credits,
                start_date=now,
                end_date=now + timedelta(days=package.duration_days),
                is_active=True,
            )
            self._sub_repo.record_transaction(
                subscription, package.credits, package.credits, f"Subscribed to {package.name}",
            )
            self._sub_repo.commit()

        logger.info(
            "Subscription id=%s user=%s package=%s credits=%s",
            subscription.id, user_id, package.id, package.credits,
        )
        self._side_effects.notify(
            user_id,
            "Subscription Activated",
            f"Your {package.name} subscription is now active with {package.credits} credits!",
        )
        return subscription.to_dict()

    def cancel(self, user_id: int, subscription_id: int) -> dict:
        """Deactivate one of the user's active subscriptions."""
        with persistence_guard("cancel subscription"):
            subscription = self._sub_repo.get_by_id(subscription_id)
            if not subscription or subscription.user_id != user_id or not subscription.is_active:
                raise ResourceNotFoundError("ClientSubscription", subscription_id)

            subscription = self._sub_repo.update(
                subscription, is_active=False, cancelled_at=utcnow(),
            )
            self._sub_repo.commit()

        logger.info("Subscription id=%s cancelled by user=%s", subscription_id, user_id)
        self._side_effects.notify(
            user_id,
            "Subscription Cancelled",
            "Your subscription has been cancelled.",
        )
        return subscription.to_dict()

    def get_history(self, user_id: int) -> list[dict]:
        with persistence_guard("read subscription history"):
            return [s.to_dict() for s in self._sub_repo.get_history(user_id)]

    def process_expirations(self, now: datetime | None = None) -> dict:
        """Daily sweep: warn subscriptions about to expire, retire expired ones.

        A user is warned when exactly ``EXPIRY_WARNING_DAYS`` remain, and no
        title is sent to the same user twice within a week.
        """
        now = now or utcnow()
        warning_days = get_setting("EXPIRY_WARNING_DAYS")
        results = {"expiring_notified": 0, "expired_notified": 0, "expired_deactivated": 0}

        with persistence_guard("process subscription expirations"):
            expiring = self._sub_repo.get_expiring_between(now, now + timedelta(days=warning_days))
            for subscription in expiring:
                seconds_left = (as_utc(subscription.end_date) - now).total_seconds()
                days_remaining = math.ceil(seconds_left / 86400)
                if days_remaining != warning_days:
                    continue
                if self._already_notified(subscription.user_id, EXPIRING_TITLE, now):
                    continue
                self._side_effects.notify(
                    subscription.user_id,
                    EXPIRING_TITLE,
                    f"Your {subscription.package.name} subscription expires in "
                    f"{days_remaining} days. You have {subscription.remaining_credits} "
                    f"credits remaining.",
                    link="/client/subscription",
                )
                results["expiring_notified"] += 1

            for subscription in self._sub_repo.get_expired_active(now):
                if not self._already_notified(subscription.user_id, EXPIRED_TITLE, now):
                    self._side_effects.notify(
                        subscription.user_id,
                        EXPIRED_TITLE,
                        f"Your {subscription.package.name} subscription has expired. "
                        f"Subscribe to a new package to keep requesting services.",
                        link="/client/subscription",
                    )
                    results["expired_notified"] += 1

                self._sub_repo.update(subscription, is_active=False)
                self._sub_repo.commit()
                results["expired_deactivated"] += 1

        logger.info(
            "Expiry sweep: %s expiring notified, %s expired notified, %s deactivated",
            results["expiring_notified"], results["expired_notified"], results["expired_deactivated"],
        )
        return results

    def _already_notified(self, user_id: int, title: str, now: datetime) -> bool:
        return self._notification_repo.exists_since(user_id, title, now - RENOTIFY_AFTER)
