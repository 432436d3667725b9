"""Revision policy — free/paid decision and request status transitions.

Pure business logic with no Flask or database dependency. The revision
service applies these decisions to stored requests; the read-only
projection (``project_revision_info``) uses the very same ``decide_revision``
so the preview shown to a client always matches what they will be charged.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.models import RequestStatus
from app.domain.results import RevisionInfo

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    RequestStatus.PENDING: {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED},
    RequestStatus.IN_PROGRESS: {RequestStatus.DELIVERED, RequestStatus.CANCELLED},
    RequestStatus.DELIVERED: {
        RequestStatus.REVISION_REQUESTED,
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.REVISION_REQUESTED: {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED},
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


@dataclass(frozen=True)
class RevisionPolicy:
    max_free_revisions: int
    paid_revision_cost: int
    reset_free_revisions_on_paid: bool


def current_revision_policy(service_type) -> RevisionPolicy:
    """Revision settings in force *now* for a service type.

    Pricing is deliberately not snapshotted on the request: an admin edit
    applies to every later revision, including on existing requests.
    Switching to snapshot-at-creation only needs this function to read
    from the request instead.
    """
    return RevisionPolicy(
        max_free_revisions=max(0, service_type.max_free_revisions or 0),
        paid_revision_cost=max(0, service_type.paid_revision_cost or 0),
        reset_free_revisions_on_paid=bool(service_type.reset_free_revisions_on_paid),
    )


@dataclass(frozen=True)
class RevisionDecision:
    is_free: bool
    credit_cost: int
    next_count: int
    resets_counter: bool = False


def decide_revision(current_count: int, policy: RevisionPolicy) -> RevisionDecision:
    """Decide whether the next revision is free and where the counter goes.

    A paid revision either resets the counter to zero or leaves it at its
    exhausted value; it never advances past the free allotment.
    """
    if current_count < policy.max_free_revisions:
        return RevisionDecision(is_free=True, credit_cost=0, next_count=current_count + 1)

    resets = policy.reset_free_revisions_on_paid
    return RevisionDecision(
        is_free=False,
        credit_cost=policy.paid_revision_cost,
        next_count=0 if resets else current_count,
        resets_counter=resets,
    )


def project_revision_info(
    current_count: int, total_revisions: int, policy: RevisionPolicy,
) -> RevisionInfo:
    decision = decide_revision(current_count, policy)
    return RevisionInfo(
        current_count=current_count,
        max_free=policy.max_free_revisions,
        total_revisions=total_revisions,
        next_revision_cost=decision.credit_cost,
        free_revisions_remaining=max(0, policy.max_free_revisions - current_count),
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
def free_revision_comment(used: int, policy: RevisionPolicy) -> str:
    return f"Revision requested ({used}/{policy.max_free_revisions} free revisions used)"


def free_revision_message(used: int, policy: RevisionPolicy) -> str:
    return (
        f"Free revision requested ({used}/{policy.max_free_revisions} used). "
        "Provider will be notified."
    )


def paid_revision_comment(decision: RevisionDecision, policy: RevisionPolicy) -> str:
    text = f"Paid revision requested ({decision.credit_cost} credit(s) used)."
    if decision.resets_counter:
        return (
            f"{text} Free revision counter reset - "
            f"{policy.max_free_revisions} free revisions available again."
        )
    return f"{text} Free revision counter not reset - next revision is also paid."


def paid_revision_message(
    decision: RevisionDecision, policy: RevisionPolicy, new_balance: int,
) -> str:
    return f"{paid_revision_comment(decision, policy)} Credits remaining: {new_balance}"


def insufficient_credits_message(policy: RevisionPolicy, available: int) -> str:
    return (
        f"You've used all {policy.max_free_revisions} free revisions. "
        f"Additional revisions cost {policy.paid_revision_cost} credit(s), "
        f"but you have {available} credit(s) remaining. Please purchase more credits."
    )
