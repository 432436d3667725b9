"""Revision service tests: free allotment, paid revisions, guards and side effects."""

import pytest

from app.domain.exceptions import ErrorCode
from app.domain.models import ClientSubscription, CreditTransaction, RequestStatus, RevisionType, ServiceRequest
from app.extensions import db
from app.services.revision_service import RevisionService

CLIENT = 1
PROVIDER = 2
STRANGER = 3


def _reload(model, record_id):
    db.session.expire_all()
    return db.session.get(model, record_id)


def _redeliver(service_request):
    """Provider resumes work and delivers again."""
    service_request.status = RequestStatus.DELIVERED
    db.session.commit()


@pytest.fixture()
def service(recorder):
    return RevisionService(side_effects=recorder)


@pytest.fixture()
def delivered(make_service_type, make_request):
    def _make(**policy):
        service_type = make_service_type(**policy)
        return make_request(service_type, CLIENT, PROVIDER)

    return _make


class TestFreeRevisions:

    def test_first_three_are_free(self, service, delivered, make_subscription):
        subscription = make_subscription(CLIENT, credits=10)
        service_request = delivered()

        for expected_count in (1, 2, 3):
            result = service.handle_revision_request(service_request.id, CLIENT)
            assert result.allowed
            assert result.is_free
            assert result.credit_cost == 0
            assert result.new_revision_count == expected_count
            _redeliver(service_request)

        stored = _reload(ServiceRequest, service_request.id)
        assert stored.total_revisions == 3
        assert stored.revision_type == RevisionType.FREE
        assert stored.is_revision
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 10

    def test_status_moves_to_revision_requested(self, service, delivered, make_subscription):
        make_subscription(CLIENT)
        service_request = delivered()

        service.handle_revision_request(service_request.id, CLIENT)

        assert _reload(ServiceRequest, service_request.id).status == RequestStatus.REVISION_REQUESTED

    def test_comment_and_provider_notification(self, service, recorder, delivered, make_subscription):
        make_subscription(CLIENT)
        service_request = delivered()

        service.handle_revision_request(service_request.id, CLIENT)

        assert recorder.comments.sent == [{
            "request_id": service_request.id,
            "user_id": CLIENT,
            "content": "Revision requested (1/3 free revisions used)",
            "type": "SYSTEM",
        }]
        [notification] = recorder.notifications.sent
        assert notification["user_id"] == PROVIDER
        assert notification["title"] == "Revision Requested"
        assert notification["link"] == f"/provider/requests/{service_request.id}"


class TestPaidRevisions:

    def test_fourth_revision_is_paid_and_resets(self, service, delivered, make_subscription):
        subscription = make_subscription(CLIENT, credits=10)
        service_request = delivered()
        service_request.current_revision_count = 3
        service_request.total_revisions = 3
        db.session.commit()

        result = service.handle_revision_request(service_request.id, CLIENT)

        assert result.allowed
        assert not result.is_free
        assert result.credit_cost == 1
        assert result.new_revision_count == 0
        assert result.new_balance == 9
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 9
        stored = _reload(ServiceRequest, service_request.id)
        assert stored.total_revisions == 4
        assert stored.credit_cost == 6
        assert stored.revision_type == RevisionType.PAID
        assert CreditTransaction.query.one().amount == -1

    def test_without_reset_the_next_one_is_paid_too(self, service, delivered, make_subscription):
        subscription = make_subscription(CLIENT, credits=10)
        service_request = delivered(reset_free_revisions_on_paid=False)
        service_request.current_revision_count = 3
        db.session.commit()

        fourth = service.handle_revision_request(service_request.id, CLIENT)
        _redeliver(service_request)
        fifth = service.handle_revision_request(service_request.id, CLIENT)

        assert (fourth.is_free, fourth.new_revision_count) == (False, 3)
        assert (fifth.is_free, fifth.new_revision_count) == (False, 3)
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 8
        assert "not reset" in fifth.message

    def test_no_credits_means_no_mutation(self, service, recorder, delivered, make_subscription):
        subscription = make_subscription(CLIENT, credits=0)
        service_request = delivered()
        service_request.current_revision_count = 3
        service_request.total_revisions = 3
        db.session.commit()

        result = service.handle_revision_request(service_request.id, CLIENT)

        assert not result.allowed
        assert result.error_code == ErrorCode.INSUFFICIENT_CREDITS
        assert result.credit_cost == 1
        assert "cost 1 credit(s)" in result.message
        assert "you have 0 credit(s)" in result.message
        stored = _reload(ServiceRequest, service_request.id)
        assert (stored.status, stored.current_revision_count, stored.total_revisions) == (
            RequestStatus.DELIVERED, 3, 3,
        )
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 0
        assert recorder.comments.sent == []
        assert recorder.notifications.sent == []

    def test_lost_request_update_refunds_nothing_spent(
        self, service, delivered, make_subscription, monkeypatch,
    ):
        subscription = make_subscription(CLIENT, credits=5)
        service_request = delivered(max_free_revisions=0)
        monkeypatch.setattr(service._request_repo, "apply_revision", lambda *args, **kwargs: False)

        result = service.handle_revision_request(service_request.id, CLIENT)

        assert not result.allowed
        assert result.error_code == ErrorCode.CONCURRENT_MODIFICATION
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 5
        assert CreditTransaction.query.count() == 0


class TestGuards:

    @pytest.mark.parametrize("status", [
        RequestStatus.PENDING,
        RequestStatus.IN_PROGRESS,
        RequestStatus.REVISION_REQUESTED,
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    ])
    def test_only_delivered_work_can_be_revised(self, service, make_service_type, make_request,
                                                make_subscription, status):
        make_subscription(CLIENT, credits=100)
        service_request = make_request(make_service_type(), CLIENT, PROVIDER, status=status)

        result = service.handle_revision_request(service_request.id, CLIENT)

        assert not result.allowed
        assert result.error_code == ErrorCode.INVALID_STATE
        assert status in result.message

    def test_unknown_request(self, service):
        assert service.handle_revision_request(999, CLIENT).error_code == ErrorCode.NOT_FOUND

    def test_only_the_owner(self, service, delivered, make_subscription):
        make_subscription(STRANGER)
        service_request = delivered()
        result = service.handle_revision_request(service_request.id, STRANGER)
        assert result.error_code == ErrorCode.FORBIDDEN

    def test_requires_subscription(self, service, delivered):
        service_request = delivered()
        result = service.handle_revision_request(service_request.id, CLIENT)
        assert result.error_code == ErrorCode.NO_ACTIVE_SUBSCRIPTION


class TestRevisionInfo:

    @pytest.mark.parametrize("count", [0, 2, 3])
    @pytest.mark.parametrize("reset", [True, False])
    def test_preview_matches_charge(self, service, delivered, make_subscription, count, reset):
        make_subscription(CLIENT, credits=10)
        service_request = delivered(reset_free_revisions_on_paid=reset)
        service_request.current_revision_count = count
        db.session.commit()

        info = service.get_revision_info(service_request.id, CLIENT)
        result = service.handle_revision_request(service_request.id, CLIENT)

        assert info.next_revision_cost == result.credit_cost
        assert service.is_revision_free(service_request.id, CLIENT) is (
            _reload(ServiceRequest, service_request.id).current_revision_count < 3
        )

    def test_policy_edits_apply_to_open_requests(self, service, delivered, make_subscription):
        make_subscription(CLIENT, credits=10)
        service_request = delivered()
        service_request.current_revision_count = 1
        db.session.commit()
        assert service.is_revision_free(service_request.id, CLIENT)

        service_request.service_type.max_free_revisions = 1
        service_request.service_type.paid_revision_cost = 4
        db.session.commit()

        assert service.get_revision_info(service_request.id, CLIENT).next_revision_cost == 4
        result = service.handle_revision_request(service_request.id, CLIENT)
        assert (result.is_free, result.credit_cost, result.new_balance) == (False, 4, 6)

    def test_hidden_from_other_users(self, service, delivered):
        service_request = delivered()
        assert service.get_revision_info(service_request.id, STRANGER).to_dict() == {
            "current_count": 0,
            "max_free": 0,
            "total_revisions": 0,
            "next_revision_cost": 0,
            "free_revisions_remaining": 0,
        }


class TestSideEffectFailures:

    def test_failing_collaborators_do_not_undo_the_revision(
        self, failing_side_effects, delivered, make_subscription,
    ):
        subscription = make_subscription(CLIENT, credits=3)
        service_request = delivered(max_free_revisions=0, paid_revision_cost=2)

        result = RevisionService(side_effects=failing_side_effects).handle_revision_request(
            service_request.id, CLIENT,
        )

        assert result.allowed
        assert _reload(ServiceRequest, service_request.id).status == RequestStatus.REVISION_REQUESTED
        assert _reload(ClientSubscription, subscription.id).remaining_credits == 1
