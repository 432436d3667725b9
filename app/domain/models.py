"""SQLAlchemy ORM models.

Service-type questions (attributes) and client answers are stored as JSON,
so admins can change a service's questionnaire without schema changes.
User ids are opaque integers owned by the external auth system.
"""

from app.domain.clock import utcnow
from app.extensions import db


class RequestStatus:
    """Lifecycle states of a service request."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, IN_PROGRESS, DELIVERED, REVISION_REQUESTED, COMPLETED, CANCELLED)


class RevisionType:
    FREE = "free"
    PAID = "paid"


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------
class Package(db.Model):
    """A purchasable bundle of credits valid for a number of days."""

    __tablename__ = "packages"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.Text, default="")
    credits = db.Column(db.Integer, nullable=False)
    duration_days = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    subscriptions = db.relationship("ClientSubscription", back_populates="package", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "credits": self.credits,
            "duration_days": self.duration_days,
            "price": float(self.price),
            "is_active": self.is_active,
        }


# ---------------------------------------------------------------------------
# Client Subscription
# ---------------------------------------------------------------------------
class ClientSubscription(db.Model):
    """A client's credit balance for one package period.

    ``remaining_credits`` is only ever changed through the credit ledger.
    """

    __tablename__ = "client_subscriptions"
    __table_args__ = (
        db.CheckConstraint("remaining_credits >= 0", name="remaining_credits_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    package_id = db.Column(
        db.Integer, db.ForeignKey("packages.id"), nullable=False, index=True,
    )
    remaining_credits = db.Column(db.Integer, nullable=False, default=0)
    start_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    package = db.relationship("Package", back_populates="subscriptions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "package_id": self.package_id,
            "package_name": self.package.name if self.package else None,
            "remaining_credits": self.remaining_credits,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "is_active": self.is_active,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }


# ---------------------------------------------------------------------------
# Credit Transaction
# ---------------------------------------------------------------------------
class CreditTransaction(db.Model):
    """Append-only audit entry for every balance change."""

    __tablename__ = "credit_transactions"

    id = db.Column(db.Integer, primary_key=True)
    subscription_id = db.Column(
        db.Integer, db.ForeignKey("client_subscriptions.id"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subscription_id": self.subscription_id,
            "amount": self.amount,
            "balance_after": self.balance_after,
            "reason": self.reason,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Service Type
# ---------------------------------------------------------------------------
class ServiceType(db.Model):
    """A service offering with its pricing and revision policy.

    Revision settings are read at the moment of every revision, so editing
    them changes what in-flight requests will pay next.
    """

    __tablename__ = "service_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.Text, default="")
    credit_cost = db.Column(db.Integer, nullable=False, default=1)
    max_free_revisions = db.Column(db.Integer, nullable=False, default=3)
    paid_revision_cost = db.Column(db.Integer, nullable=False, default=1)
    reset_free_revisions_on_paid = db.Column(db.Boolean, nullable=False, default=True)
    priority_cost_low = db.Column(db.Integer, nullable=True)
    priority_cost_medium = db.Column(db.Integer, nullable=True)
    priority_cost_high = db.Column(db.Integer, nullable=True)
    attributes = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    requests = db.relationship("ServiceRequest", back_populates="service_type", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "credit_cost": self.credit_cost,
            "max_free_revisions": self.max_free_revisions,
            "paid_revision_cost": self.paid_revision_cost,
            "reset_free_revisions_on_paid": self.reset_free_revisions_on_paid,
            "priority_cost_low": self.priority_cost_low,
            "priority_cost_medium": self.priority_cost_medium,
            "priority_cost_high": self.priority_cost_high,
            "attributes": self.attributes or [],
            "is_active": self.is_active,
        }


# ---------------------------------------------------------------------------
# Service Request
# ---------------------------------------------------------------------------
class ServiceRequest(db.Model):
    """A client's priced order for a service type."""

    __tablename__ = "service_requests"
    __table_args__ = (
        db.CheckConstraint("current_revision_count >= 0", name="revision_count_non_negative"),
        db.CheckConstraint("total_revisions >= 0", name="total_revisions_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, nullable=False, index=True)
    provider_id = db.Column(db.Integer, nullable=True, index=True)
    service_type_id = db.Column(
        db.Integer, db.ForeignKey("service_types.id"), nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(db.String(10), nullable=False, default="medium")
    status = db.Column(db.String(30), nullable=False, default=RequestStatus.PENDING, index=True)
    credit_cost = db.Column(db.Integer, nullable=False, default=0)
    current_revision_count = db.Column(db.Integer, nullable=False, default=0)
    total_revisions = db.Column(db.Integer, nullable=False, default=0)
    is_revision = db.Column(db.Boolean, nullable=False, default=False)
    revision_type = db.Column(db.String(10), nullable=True)
    attribute_responses = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    service_type = db.relationship("ServiceType", back_populates="requests")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "provider_id": self.provider_id,
            "service_type_id": self.service_type_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "credit_cost": self.credit_cost,
            "current_revision_count": self.current_revision_count,
            "total_revisions": self.total_revisions,
            "is_revision": self.is_revision,
            "revision_type": self.revision_type,
            "attribute_responses": self.attribute_responses or [],
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


# ---------------------------------------------------------------------------
# Side-effect records
# ---------------------------------------------------------------------------
class RequestComment(db.Model):
    """A message or system entry on a request's timeline."""

    __tablename__ = "request_comments"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("service_requests.id"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="SYSTEM")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "content": self.content,
            "type": self.type,
            "created_at": self.created_at.isoformat(),
        }


class Notification(db.Model):
    """An in-app notification addressed to one user."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255), nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }
