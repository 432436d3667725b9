"""Request service tests: charged creation, feedback validation and status workflow."""

import pytest

from app.domain.exceptions import (
    AccountingError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InsufficientCreditsError,
    InvalidStateError,
    PricingError,
    ResourceNotFoundError,
    RuleViolationError,
    ValidationError,
)
from app.domain.models import ClientSubscription, CreditTransaction, RequestStatus, ServiceRequest
from app.extensions import db
from app.services.credit_ledger import CreditLedger
from app.services.request_service import RequestService

CLIENT = 1
PROVIDER = 2
OTHER_PROVIDER = 4

PRODUCTS = {"key": "products", "question": "Number of products", "type": "number",
            "required": True, "credit_impact": 1, "included_quantity": 20}


@pytest.fixture()
def service(recorder):
    return RequestService(CreditLedger(), recorder)


@pytest.fixture()
def menu(make_service_type):
    return make_service_type(name="Digital Menu", credit_cost=50, attributes=[PRODUCTS])


def _products(count: str):
    return [{"key": "products", "question": "Number of products", "answer": count}]


class TestCreateRequest:

    def test_charges_the_quoted_total(self, service, menu, make_subscription):
        subscription = make_subscription(CLIENT, credits=100)

        quote = service.quote_request(menu.id, "high", _products("25"))
        data = service.create_request(CLIENT, menu.id, "Menu", priority="high",
                                      attribute_responses=_products("25"))

        assert quote["total"] == 57
        assert data["credit_cost"] == 57
        assert data["cost_breakdown"] == quote
        assert data["credits_remaining"] == 43
        assert data["status"] == RequestStatus.PENDING
        assert db.session.get(ClientSubscription, subscription.id).remaining_credits == 43
        assert CreditTransaction.query.one().amount == -57

    def test_insufficient_credits_persist_nothing(self, service, menu, make_subscription):
        subscription = make_subscription(CLIENT, credits=10)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            service.create_request(CLIENT, menu.id, "Menu", attribute_responses=_products("20"))

        assert exc_info.value.details == {"required": 51, "available": 10}
        assert exc_info.value.status_code == 402
        assert ServiceRequest.query.count() == 0
        assert db.session.get(ClientSubscription, subscription.id).remaining_credits == 10

    def test_no_subscription(self, service, menu):
        with pytest.raises(AccountingError) as exc_info:
            service.create_request(CLIENT, menu.id, "Menu", attribute_responses=_products("20"))
        assert exc_info.value.error_code == ErrorCode.NO_ACTIVE_SUBSCRIPTION
        assert ServiceRequest.query.count() == 0

    def test_invalid_answers_are_not_charged(self, service, menu, make_subscription):
        subscription = make_subscription(CLIENT, credits=100)

        with pytest.raises(RuleViolationError):
            service.create_request(CLIENT, menu.id, "Menu", attribute_responses=[])

        assert db.session.get(ClientSubscription, subscription.id).remaining_credits == 100

    def test_inactive_service_type(self, service, make_service_type, make_subscription):
        make_subscription(CLIENT)
        retired = make_service_type(is_active=False)
        with pytest.raises(ResourceNotFoundError):
            service.create_request(CLIENT, retired.id, "Old")

    def test_oversized_answer_is_rejected_without_charge(self, service, make_service_type,
                                                         make_subscription):
        subscription = make_subscription(CLIENT, credits=100)
        words = {"key": "words", "question": "Words", "type": "number",
                 "credit_impact": 1, "included_quantity": 0}
        copywriting = make_service_type(name="Copywriting", attributes=[words])

        with pytest.raises(PricingError) as exc_info:
            service.create_request(CLIENT, copywriting.id, "Essay", attribute_responses=[
                {"key": "words", "question": "Words", "answer": "1e30"},
            ])

        assert exc_info.value.status_code == 422
        assert ServiceRequest.query.count() == 0
        assert CreditTransaction.query.count() == 0
        assert db.session.get(ClientSubscription, subscription.id).remaining_credits == 100

    def test_creation_comment(self, service, recorder, menu, make_subscription):
        make_subscription(CLIENT, credits=100)
        data = service.create_request(CLIENT, menu.id, "Menu", attribute_responses=_products("1"))
        assert recorder.comments.sent[0]["request_id"] == data["id"]
        assert recorder.comments.sent[0]["content"].startswith("Request created")


class TestRequestRevision:

    def test_short_feedback_is_rejected(self, service, make_service_type, make_request, make_subscription):
        make_subscription(CLIENT)
        service_request = make_request(make_service_type(), CLIENT, PROVIDER)

        with pytest.raises(ValidationError) as exc_info:
            service.request_revision(service_request.id, CLIENT, "  too short ")

        assert exc_info.value.details["min_length"] == 10
        assert db.session.get(ServiceRequest, service_request.id).status == RequestStatus.DELIVERED

    def test_feedback_is_stored_as_message(self, service, recorder, make_service_type,
                                           make_request, make_subscription):
        make_subscription(CLIENT)
        service_request = make_request(make_service_type(), CLIENT, PROVIDER)

        result = service.request_revision(service_request.id, CLIENT, "Please use the darker logo.")

        assert result.allowed
        assert recorder.comments.sent[-1] == {
            "request_id": service_request.id,
            "user_id": CLIENT,
            "content": "Please use the darker logo.",
            "type": "MESSAGE",
        }

    def test_rejected_revision_stores_no_feedback(self, service, recorder, make_service_type,
                                                  make_request, make_subscription):
        make_subscription(CLIENT)
        service_request = make_request(make_service_type(), CLIENT, PROVIDER,
                                       status=RequestStatus.IN_PROGRESS)

        result = service.request_revision(service_request.id, CLIENT, "Please use the darker logo.")

        assert result.error_code == ErrorCode.INVALID_STATE
        assert recorder.comments.sent == []


class TestStatusWorkflow:

    @pytest.fixture()
    def pending(self, make_service_type, make_request):
        return make_request(make_service_type(), CLIENT, status=RequestStatus.PENDING)

    def test_full_cycle(self, service, recorder, pending):
        service.accept(pending.id, PROVIDER)
        service.update_status(pending.id, PROVIDER, RequestStatus.DELIVERED, "Final files attached")
        data = service.approve(pending.id, CLIENT)

        assert data["status"] == RequestStatus.COMPLETED
        assert data["provider_id"] == PROVIDER
        assert data["completed_at"] is not None
        assert recorder.comments.sent[1]["type"] == "DELIVERABLE"
        assert [n["user_id"] for n in recorder.notifications.sent] == [CLIENT, CLIENT, PROVIDER]

    def test_accepting_twice_conflicts(self, service, pending):
        service.accept(pending.id, PROVIDER)
        with pytest.raises(ConflictError):
            service.accept(pending.id, OTHER_PROVIDER)

    def test_only_assigned_provider_updates(self, service, pending):
        service.accept(pending.id, PROVIDER)
        with pytest.raises(ForbiddenError):
            service.update_status(pending.id, OTHER_PROVIDER, RequestStatus.DELIVERED)

    def test_provider_cannot_complete(self, service, pending):
        service.accept(pending.id, PROVIDER)
        with pytest.raises(ValidationError):
            service.update_status(pending.id, PROVIDER, RequestStatus.COMPLETED)

    def test_cannot_approve_undelivered_work(self, service, pending):
        with pytest.raises(InvalidStateError):
            service.approve(pending.id, CLIENT)

    def test_cannot_cancel_completed_request(self, service, make_service_type, make_request):
        done = make_request(make_service_type(), CLIENT, PROVIDER, status=RequestStatus.COMPLETED)
        with pytest.raises(InvalidStateError):
            service.cancel(done.id, CLIENT)

    def test_cancel_by_owner_only(self, service, pending):
        with pytest.raises(ForbiddenError):
            service.cancel(pending.id, PROVIDER)
        assert service.cancel(pending.id, CLIENT)["status"] == RequestStatus.CANCELLED

    def test_revision_cycle_returns_to_delivery(self, service, make_service_type, make_request,
                                                make_subscription):
        make_subscription(CLIENT)
        service_request = make_request(make_service_type(), CLIENT, PROVIDER)

        service.request_revision(service_request.id, CLIENT, "Make the headline bigger")
        service.update_status(service_request.id, PROVIDER, RequestStatus.IN_PROGRESS)
        data = service.update_status(service_request.id, PROVIDER, RequestStatus.DELIVERED)

        assert data["status"] == RequestStatus.DELIVERED
        assert data["current_revision_count"] == 1

    def test_get_request_access(self, service, pending):
        assert "revision_info" in service.get_request(pending.id, CLIENT)
        with pytest.raises(ForbiddenError):
            service.get_request(pending.id, PROVIDER)

    def test_client_cannot_accept_own_request(self, service, pending):
        with pytest.raises(ForbiddenError):
            service.accept(pending.id, CLIENT)
        stored = db.session.get(ServiceRequest, pending.id)
        assert (stored.status, stored.provider_id) == (RequestStatus.PENDING, None)
