"""Shared test fixtures."""

from datetime import timedelta
from itertools import count

import pytest

from app import create_app
from app.domain.clock import utcnow
from app.domain.models import ClientSubscription, Package, RequestStatus, ServiceRequest, ServiceType
from app.extensions import db as _db
from app.services.side_effects import CommentPublisher, NotificationPublisher, SideEffects


@pytest.fixture(scope="session")
def app():
    """Create an application instance configured for testing."""
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture(autouse=True)
def db_session(app):
    """Ensure a clean database state for each test.

    Re-creates all tables before each test to guarantee isolation.
    """
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def package(db_session):
    pkg = Package(name="Starter", credits=30, duration_days=30, price=99)
    db_session.add(pkg)
    db_session.commit()
    return pkg


@pytest.fixture()
def make_subscription(db_session, package):
    """Give a user an active subscription with an explicit balance."""

    def _make(user_id: int, credits: int = 10, days: int = 30, **overrides):
        now = utcnow()
        values = {
            "user_id": user_id,
            "package_id": package.id,
            "remaining_credits": credits,
            "start_date": now,
            "end_date": now + timedelta(days=days),
            "is_active": True,
        }
        values.update(overrides)
        subscription = ClientSubscription(**values)
        db_session.add(subscription)
        db_session.commit()
        return subscription

    return _make


@pytest.fixture()
def make_service_type(db_session):
    """Service type defaulting to 3 free revisions, then 1 credit with reset."""
    numbers = count(1)

    def _make(**overrides):
        values = {
            "name": f"Service {next(numbers)}",
            "credit_cost": 5,
            "max_free_revisions": 3,
            "paid_revision_cost": 1,
            "reset_free_revisions_on_paid": True,
            "attributes": [],
        }
        values.update(overrides)
        service_type = ServiceType(**values)
        db_session.add(service_type)
        db_session.commit()
        return service_type

    return _make


@pytest.fixture()
def make_request(db_session):
    """A request already priced and, by default, delivered."""

    def _make(service_type, client_id: int, provider_id: int | None = None, **overrides):
        values = {
            "client_id": client_id,
            "provider_id": provider_id,
            "service_type_id": service_type.id,
            "title": "Spring campaign",
            "status": RequestStatus.DELIVERED,
            "credit_cost": service_type.credit_cost,
        }
        values.update(overrides)
        service_request = ServiceRequest(**values)
        db_session.add(service_request)
        db_session.commit()
        return service_request

    return _make


# ---------------------------------------------------------------------------
# Side-effect doubles
# ---------------------------------------------------------------------------
class RecordingNotifications(NotificationPublisher):
    def __init__(self):
        self.sent = []

    def create_notification(self, user_id, title, message, link=None):
        self.sent.append({"user_id": user_id, "title": title, "message": message, "link": link})


class RecordingComments(CommentPublisher):
    def __init__(self):
        self.sent = []

    def create_system_comment(self, request_id, user_id, content, type="SYSTEM"):
        self.sent.append({"request_id": request_id, "user_id": user_id, "content": content, "type": type})


class FailingPublisher(NotificationPublisher, CommentPublisher):
    def create_notification(self, user_id, title, message, link=None):
        raise RuntimeError("notification backend down")

    def create_system_comment(self, request_id, user_id, content, type="SYSTEM"):
        raise RuntimeError("comment backend down")


@pytest.fixture()
def recorder():
    """SideEffects wired to in-memory recorders."""
    return SideEffects(RecordingNotifications(), RecordingComments())


@pytest.fixture()
def failing_side_effects():
    publisher = FailingPublisher()
    return SideEffects(publisher, publisher)
