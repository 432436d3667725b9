"""Request service — accounting orchestration around service requests.

Creation flow: validate answers → PricingEngine.quote() → charge credits →
persist request, with the charge and the insert committed together.
Revision flow: feedback check → RevisionService → feedback comment.
"""

import logging

from app.config.settings import get_setting
from app.domain.attribute_validation import AttributeValidator
from app.domain.clock import utcnow
from app.domain.exceptions import (
    AccountingError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InsufficientCreditsError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from app.domain.models import RequestStatus
from app.domain.pricing_engine import Priority, PricingEngine
from app.domain.results import RevisionResult
from app.domain.revision_policy import can_transition
from app.repositories.base import persistence_guard
from app.repositories.request_repository import RequestRepository
from app.repositories.service_type_repository import ServiceTypeRepository
from app.services.credit_ledger import CreditLedger
from app.services.revision_service import RevisionService
from app.services.side_effects import CommentType, SideEffects

logger = logging.getLogger(__name__)

PROVIDER_STATUSES = {RequestStatus.IN_PROGRESS, RequestStatus.DELIVERED}


class RequestService:
    """Orchestrates request creation and the revision cycle with the credit ledger."""

    def __init__(
        self,
        ledger: CreditLedger | None = None,
        side_effects: SideEffects | None = None,
    ):
        self._request_repo = RequestRepository()
        self._service_type_repo = ServiceTypeRepository()
        self._validator = AttributeValidator()
        self._pricing_engine = PricingEngine()
        self._ledger = ledger or CreditLedger()
        self._side_effects = side_effects or SideEffects()
        self._revisions = RevisionService(self._ledger, self._side_effects)

    # ------------------------------------------------------------------
    # Pricing and creation
    # ------------------------------------------------------------------

    def quote_request(
        self,
        service_type_id: int,
        priority: str = Priority.MEDIUM,
        attribute_responses: list[dict] | None = None,
    ) -> dict:
        """Price a request without charging anything."""
        service_type = self._get_service_type(service_type_id)
        return self._pricing_engine.quote(service_type, attribute_responses or [], priority).to_dict()

    def create_request(
        self,
        client_id: int,
        service_type_id: int,
        title: str,
        description: str = "",
        priority: str = Priority.MEDIUM,
        attribute_responses: list[dict] | None = None,
    ) -> dict:
        """Create a request and charge its price.

        Steps:
          1. Validate the service type and the client's answers
          2. Price the request
          3. Spend the credits (not yet committed)
          4. Persist the request and commit both together

        A failed charge raises and leaves nothing behind.
        """
        responses = attribute_responses or []
        service_type = self._get_service_type(service_type_id)
        self._validator.validate(service_type.attributes or [], responses)
        quote = self._pricing_engine.quote(service_type, responses, priority)

        with persistence_guard("create request"):
            charge = self._ledger.check_and_deduct_credits(
                client_id,
                quote.total,
                reason=f"New request: {title} (priority {priority})",
                commit=False,
            )
            if not charge.allowed:
                self._request_repo.rollback()
                logger.warning(
                    "Request creation blocked client=%s cost=%s reason=%s",
                    client_id, quote.total, charge.error_code,
                )
                if charge.error_code == ErrorCode.INSUFFICIENT_CREDITS:
                    raise InsufficientCreditsError(
                        charge.message, required=quote.total, available=charge.new_balance,
                    )
                raise AccountingError(charge.message, charge.error_code)

            request = self._request_repo.create(
                client_id=client_id,
                service_type_id=service_type.id,
                title=title,
                description=description,
                priority=priority,
                status=RequestStatus.PENDING,
                credit_cost=quote.total,
                attribute_responses=responses,
            )
            self._request_repo.commit()

        logger.info(
            "Request created id=%s client=%s service_type=%s cost=%s",
            request.id, client_id, service_type.id, quote.total,
        )
        self._side_effects.comment(
            request.id, client_id, "Request created. Waiting for a provider to accept.",
        )

        data = request.to_dict()
        data["cost_breakdown"] = quote.to_dict()
        data["credits_remaining"] = charge.new_balance
        return data

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------

    def request_revision(self, request_id: int, user_id: int, feedback: str) -> RevisionResult:
        """Client asks for changes on delivered work."""
        min_length = get_setting("MIN_REVISION_FEEDBACK_LENGTH")
        feedback = (feedback or "").strip()
        if len(feedback) < min_length:
            raise ValidationError(
                f"Please provide detailed feedback (at least {min_length} characters).",
                details={"min_length": min_length, "length": len(feedback)},
            )

        result = self._revisions.handle_revision_request(request_id, user_id)
        if result.allowed:
            self._side_effects.comment(request_id, user_id, feedback, CommentType.MESSAGE)
        return result

    def get_revision_info(self, request_id: int, user_id: int) -> dict:
        return self._revisions.get_revision_info(request_id, user_id).to_dict()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_request(self, request_id: int, user_id: int) -> dict:
        """Fetch a request for its client or assigned provider."""
        request = self._get_request(request_id)
        if user_id not in (request.client_id, request.provider_id):
            raise ForbiddenError("You don't have access to this request")

        data = request.to_dict()
        if user_id == request.client_id:
            data["revision_info"] = self.get_revision_info(request_id, user_id)
        return data

    def list_client_requests(self, client_id: int, status: str | None = None) -> list[dict]:
        return [r.to_dict() for r in self._request_repo.get_by_client(client_id, status)]

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def accept(self, request_id: int, provider_id: int) -> dict:
        """Provider takes a pending request."""
        request = self._get_request(request_id)
        if provider_id == request.client_id:
            raise ForbiddenError("You cannot accept your own request")
        if request.provider_id:
            raise ConflictError("This request has already been accepted")

        self._transition(request, RequestStatus.IN_PROGRESS, provider_id=provider_id)
        self._side_effects.comment(request_id, provider_id, "Request accepted.")
        self._side_effects.notify(
            request.client_id,
            "Request Accepted",
            f'Your request "{request.title}" has been accepted by a provider.',
            link=f"/client/requests/{request_id}",
        )
        return request.to_dict()

    def update_status(
        self, request_id: int, provider_id: int, status: str, message: str | None = None,
    ) -> dict:
        """Assigned provider resumes work or delivers."""
        if status not in PROVIDER_STATUSES:
            raise ValidationError(f"Providers may only set {sorted(PROVIDER_STATUSES)}")

        request = self._get_request(request_id)
        if request.provider_id != provider_id:
            raise ForbiddenError("You are not assigned to this request")

        self._transition(request, status)

        delivered = status == RequestStatus.DELIVERED
        self._side_effects.comment(
            request_id,
            provider_id,
            message or f"Status updated to {status}",
            CommentType.DELIVERABLE if delivered else CommentType.SYSTEM,
        )
        self._side_effects.notify(
            request.client_id,
            "Deliverable Ready" if delivered else "Status Update",
            f'Your request "{request.title}" has a new deliverable ready for review.'
            if delivered
            else f'Your request "{request.title}" status has been updated.',
            link=f"/client/requests/{request_id}",
        )
        return request.to_dict()

    def approve(self, request_id: int, client_id: int) -> dict:
        """Client accepts the delivered work."""
        request = self._get_owned_request(request_id, client_id)
        self._transition(request, RequestStatus.COMPLETED, completed_at=utcnow())
        self._side_effects.comment(request_id, client_id, "Request approved and completed.")
        self._side_effects.notify(
            request.provider_id,
            "Request Completed",
            f'Client has approved "{request.title}". Great job!',
            link=f"/provider/requests/{request_id}",
        )
        return request.to_dict()

    def cancel(self, request_id: int, client_id: int) -> dict:
        """Client withdraws the request. Spent credits are not refunded."""
        request = self._get_owned_request(request_id, client_id)
        self._transition(request, RequestStatus.CANCELLED)
        self._side_effects.comment(request_id, client_id, "Request cancelled by client.")
        self._side_effects.notify(
            request.provider_id,
            "Request Cancelled",
            f'Client cancelled "{request.title}".',
            link=f"/provider/requests/{request_id}",
        )
        return request.to_dict()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_service_type(self, service_type_id: int):
        service_type = self._service_type_repo.get_by_id(service_type_id)
        if not service_type or not service_type.is_active:
            raise ResourceNotFoundError("ServiceType", service_type_id)
        return service_type

    def _get_request(self, request_id: int):
        request = self._request_repo.get_by_id(request_id)
        if not request:
            raise ResourceNotFoundError("ServiceRequest", request_id)
        return request

    def _get_owned_request(self, request_id: int, client_id: int):
        request = self._get_request(request_id)
        if request.client_id != client_id:
            raise ForbiddenError("You don't own this request")
        return request

    def _transition(self, request, to_status: str, **values) -> None:
        current = request.status
        if not can_transition(current, to_status):
            raise InvalidStateError(f"Cannot move request from {current} to {to_status}")

        with persistence_guard("update request status"):
            if not self._request_repo.transition(request.id, current, to_status, **values):
                self._request_repo.rollback()
                raise InvalidStateError("Request status changed concurrently; please reload")
            self._request_repo.commit()

        self._request_repo.refresh(request)
        logger.info("Request id=%s status %s -> %s", request.id, current, to_status)
