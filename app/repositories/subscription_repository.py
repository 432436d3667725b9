"""Client subscription repository.

Balance changes are single conditional UPDATE statements, so two
concurrent spends can never both succeed against the same credit.
"""

from datetime import datetime

from sqlalchemy import update

from app.domain.clock import utcnow
from app.domain.models import ClientSubscription, CreditTransaction
from app.extensions import db
from app.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[ClientSubscription]):
    """Data access for ClientSubscription records."""

    def __init__(self):
        super().__init__(ClientSubscription)

    def get_active_for_user(
        self, user_id: int, now: datetime | None = None,
    ) -> ClientSubscription | None:
        """Return the user's active, unexpired subscription.

        The write path keeps this to at most one row; newest-first is only
        a tiebreak for legacy data.
        """
        now = now or utcnow()
        return (
            ClientSubscription.query
            .filter(
                ClientSubscription.user_id == user_id,
                ClientSubscription.is_active.is_(True),
                ClientSubscription.end_date >= now,
            )
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
            .first()
        )

    def get_latest_flagged_active(self, user_id: int) -> ClientSubscription | None:
        """Newest subscription still flagged active, ignoring its end date."""
        return (
            ClientSubscription.query
            .filter(
                ClientSubscription.user_id == user_id,
                ClientSubscription.is_active.is_(True),
            )
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
            .first()
        )

    def get_history(self, user_id: int) -> list[ClientSubscription]:
        return (
            ClientSubscription.query
            .filter_by(user_id=user_id)
            .order_by(ClientSubscription.created_at.desc(), ClientSubscription.id.desc())
            .all()
        )

    def get_expiring_between(self, start: datetime, end: datetime) -> list[ClientSubscription]:
        return (
            ClientSubscription.query
            .filter(
                ClientSubscription.is_active.is_(True),
                ClientSubscription.end_date >= start,
                ClientSubscription.end_date <= end,
            )
            .all()
        )

    def get_expired_active(self, now: datetime) -> list[ClientSubscription]:
        return (
            ClientSubscription.query
            .filter(
                ClientSubscription.is_active.is_(True),
                ClientSubscription.end_date < now,
            )
            .all()
        )

    # ------------------------------------------------------------------
    # Balance mutations
    # ------------------------------------------------------------------

    def try_deduct(self, subscription_id: int, amount: int, now: datetime | None = None) -> bool:
        """Atomically subtract ``amount`` if the balance covers it.

        Returns False (and changes nothing) when the balance is too low,
        including when a concurrent spend got there first, or when the
        subscription was cancelled or ran out since it was read.
        """
        now = now or utcnow()
        result = db.session.execute(
            update(ClientSubscription)
            .where(
                ClientSubscription.id == subscription_id,
                ClientSubscription.is_active.is_(True),
                ClientSubscription.end_date >= now,
                ClientSubscription.remaining_credits >= amount,
            )
            .values(remaining_credits=ClientSubscription.remaining_credits - amount)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    def increment(self, subscription_id: int, amount: int) -> bool:
        """Atomically add ``amount`` to the balance."""
        result = db.session.execute(
            update(ClientSubscription)
            .where(ClientSubscription.id == subscription_id)
            .values(remaining_credits=ClientSubscription.remaining_credits + amount)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    def record_transaction(
        self,
        subscription: ClientSubscription,
        amount: int,
        balance_after: int,
        reason: str | None,
    ) -> CreditTransaction:
        entry = CreditTransaction(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            amount=amount,
            balance_after=balance_after,
            reason=(reason or "")[:255],
        )
        db.session.add(entry)
        db.session.flush()
        return entry

    def get_transactions(self, user_id: int) -> list[CreditTransaction]:
        return (
            CreditTransaction.query
            .filter_by(user_id=user_id)
            .order_by(CreditTransaction.id.desc())
            .all()
        )
