"""Revision service — free/paid revision cycle on delivered requests.

Flow: load request → authorize → status check → active subscription →
live revision policy → decide → (deduct) → guarded request update →
commit → system comment + provider notification.

The credit deduction and the request update share one transaction: if the
request changed underneath us the whole thing rolls back and no credit is
spent.
"""

import logging

from app.domain.exceptions import ErrorCode
from app.domain.models import RequestStatus, RevisionType
from app.domain.results import RevisionInfo, RevisionResult
from app.domain.revision_policy import (
    current_revision_policy,
    decide_revision,
    free_revision_comment,
    free_revision_message,
    insufficient_credits_message,
    paid_revision_comment,
    paid_revision_message,
    project_revision_info,
)
from app.repositories.base import persistence_guard
from app.repositories.request_repository import RequestRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.credit_ledger import CreditLedger
from app.services.side_effects import SideEffects

logger = logging.getLogger(__name__)


def _rejected(message: str, error_code: str, count: int = 0, cost: int = 0) -> RevisionResult:
    return RevisionResult(
        allowed=False,
        is_free=False,
        credit_cost=cost,
        new_revision_count=count,
        message=message,
        error_code=error_code,
    )


class RevisionService:
    """Handles revision requests and the read-only revision preview."""

    def __init__(
        self,
        ledger: CreditLedger | None = None,
        side_effects: SideEffects | None = None,
    ):
        self._request_repo = RequestRepository()
        self._sub_repo = SubscriptionRepository()
        self._ledger = ledger or CreditLedger(self._sub_repo)
        self._side_effects = side_effects or SideEffects()

    def handle_revision_request(self, request_id: int, user_id: int) -> RevisionResult:
        """Request a revision on delivered work.

        Never raises for business outcomes; see ``RevisionResult.error_code``.
        """
        with persistence_guard("request revision"):
            result, request, comment = self._apply_revision(request_id, user_id)

        if result.allowed:
            self._emit_revision_side_effects(request, user_id, result, comment)
        return result

    def get_revision_info(self, request_id: int, user_id: int) -> RevisionInfo:
        """Preview of the revision counters and the cost of the next revision.

        Missing requests and requests owned by someone else read as all zeros.
        """
        with persistence_guard("read revision info"):
            request = self._request_repo.get_by_id(request_id)
            if not request or request.client_id != user_id:
                return RevisionInfo(0, 0, 0, 0, 0)

            policy = current_revision_policy(request.service_type)
            return project_revision_info(
                request.current_revision_count, request.total_revisions, policy,
            )

    def is_revision_free(self, request_id: int, user_id: int) -> bool:
        return self.get_revision_info(request_id, user_id).free_revisions_remaining > 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _apply_revision(self, request_id: int, user_id: int):
        request = self._request_repo.get_by_id(request_id)
        if not request:
            return _rejected("Request not found.", ErrorCode.NOT_FOUND), None, None

        if request.client_id != user_id:
            return _rejected(
                "Only the request owner can request revisions.", ErrorCode.FORBIDDEN,
            ), request, None

        seen_count = request.current_revision_count
        if request.status != RequestStatus.DELIVERED:
            return _rejected(
                f"Revisions can only be requested for delivered work "
                f"(current status: {request.status}).",
                ErrorCode.INVALID_STATE,
                count=seen_count,
            ), request, None

        subscription = self._sub_repo.get_active_for_user(user_id)
        if not subscription:
            return _rejected(
                "No active subscription. Please subscribe to request revisions.",
                ErrorCode.NO_ACTIVE_SUBSCRIPTION,
                count=seen_count,
            ), request, None

        policy = current_revision_policy(request.service_type)
        decision = decide_revision(seen_count, policy)
        new_balance = subscription.remaining_credits

        if not decision.is_free:
            if subscription.remaining_credits < decision.credit_cost:
                logger.warning(
                    "Paid revision blocked request=%s user=%s need=%s have=%s",
                    request_id, user_id, decision.credit_cost, subscription.remaining_credits,
                )
                return _rejected(
                    insufficient_credits_message(policy, subscription.remaining_credits),
                    ErrorCode.INSUFFICIENT_CREDITS,
                    count=seen_count,
                    cost=decision.credit_cost,
                ), request, None

            deduction = self._ledger.deduct_credits(
                user_id,
                decision.credit_cost,
                reason=f"Paid revision for request {request_id}: {request.title}",
                commit=False,
            )
            if not deduction.success:
                self._request_repo.rollback()
                return _rejected(
                    deduction.message or "Failed to deduct credits.",
                    deduction.error_code or ErrorCode.INSUFFICIENT_CREDITS,
                    count=seen_count,
                    cost=decision.credit_cost,
                ), request, None
            new_balance = deduction.new_balance

        updated = self._request_repo.apply_revision(
            request_id,
            seen_count=seen_count,
            next_count=decision.next_count,
            revision_type=RevisionType.FREE if decision.is_free else RevisionType.PAID,
            added_cost=decision.credit_cost,
        )
        if not updated:
            self._request_repo.rollback()
            logger.warning("Revision on request=%s lost a concurrent update", request_id)
            return _rejected(
                "This request was changed by another action. Please reload and try again.",
                ErrorCode.CONCURRENT_MODIFICATION,
                count=seen_count,
            ), request, None

        self._request_repo.commit()
        request = self._request_repo.refresh(request)

        logger.info(
            "Revision accepted request=%s free=%s cost=%s count=%s",
            request_id, decision.is_free, decision.credit_cost, decision.next_count,
        )
        if decision.is_free:
            message = free_revision_message(decision.next_count, policy)
            comment = free_revision_comment(decision.next_count, policy)
        else:
            message = paid_revision_message(decision, policy, new_balance)
            comment = paid_revision_comment(decision, policy)

        result = RevisionResult(
            allowed=True,
            is_free=decision.is_free,
            credit_cost=decision.credit_cost,
            new_revision_count=request.current_revision_count,
            message=message,
            new_balance=new_balance,
        )
        return result, request, comment

    def _emit_revision_side_effects(
        self, request, user_id: int, result: RevisionResult, comment: str,
    ) -> None:
        self._side_effects.comment(request.id, user_id, comment)
        kind = "a revision" if result.is_free else "a paid revision"
        self._side_effects.notify(
            request.provider_id,
            "Revision Requested",
            f'Client requested {kind} for "{request.title}"',
            link=f"/provider/requests/{request.id}",
        )
