"""Client API namespace — credits, subscriptions, requests and revisions.

All routes delegate to service-layer classes. Controllers are kept thin
(parse → validate → call service → respond). The acting user comes from
the ``X-User-Id`` header set by the upstream auth layer.
"""

from flask import request
from flask_restx import Namespace, Resource, fields
from pydantic import ValidationError as PydanticValidationError

from app.api.common import current_user_id, json_body
from app.domain.exceptions import AppError
from app.schemas.request_schema import RequestCreateSchema, RequestQuoteSchema, RevisionRequestSchema
from app.schemas.response import app_error_response, invalid_input_response, result_response, success_response
from app.schemas.subscription_schema import SubscribeSchema
from app.services.catalog_service import CatalogService
from app.services.credit_ledger import CreditLedger
from app.services.request_service import RequestService
from app.services.retry import call_with_retry
from app.services.subscription_service import SubscriptionService

ns = Namespace("client", description="Client-facing accounting APIs")

# ---------------------------------------------------------------------------
# Swagger models (for documentation only)
# ---------------------------------------------------------------------------
attribute_response_model = ns.model("AttributeResponse", {
    "key": fields.String(description="Stable attribute key"),
    "question": fields.String(required=True),
    "answer": fields.Raw(description="String, number or list of selected options"),
})

quote_model = ns.model("RequestQuoteInput", {
    "service_type_id": fields.Integer(required=True),
    "priority": fields.String(default="medium", enum=["low", "medium", "high"]),
    "attribute_responses": fields.List(fields.Nested(attribute_response_model)),
})

request_model = ns.inherit("RequestInput", quote_model, {
    "title": fields.String(required=True),
    "description": fields.String(),
})

revision_model = ns.model("RevisionInput", {
    "feedback": fields.String(required=True, description="What should change"),
})

subscribe_model = ns.model("SubscribeInput", {
    "package_id": fields.Integer(required=True),
})

# ---------------------------------------------------------------------------
# Service instances
# ---------------------------------------------------------------------------
_ledger = CreditLedger()
_request_svc = RequestService(_ledger)
_subscription_svc = SubscriptionService()
_catalog_svc = CatalogService()


# ---------------------------------------------------------------------------
# Catalog routes
# ---------------------------------------------------------------------------
@ns.route("/packages")
class PackageList(Resource):
    """Packages open for subscription."""

    @ns.doc("list_active_packages")
    def get(self):
        return success_response(_catalog_svc.list_packages(active_only=True))


@ns.route("/service-types")
class ServiceTypeList(Resource):
    """Service types with their questions and pricing."""

    @ns.doc("list_active_service_types")
    def get(self):
        return success_response(_catalog_svc.list_service_types(active_only=True))


# ---------------------------------------------------------------------------
# Credit routes
# ---------------------------------------------------------------------------
@ns.route("/credits")
class CreditBalanceResource(Resource):
    """Current balance of the active subscription."""

    @ns.doc("get_credit_balance")
    def get(self):
        try:
            balance = call_with_retry(_ledger.get_credit_balance, current_user_id())
            return success_response(balance.to_dict())
        except AppError as err:
            return app_error_response(err)


@ns.route("/credits/check")
class CreditCheck(Resource):
    """Whether the client can afford a given amount (?required=)."""

    @ns.doc("check_credits")
    def get(self):
        try:
            required = request.args.get("required", 1, type=int)
            result = call_with_retry(_ledger.check_credits, current_user_id(), required)
            return success_response(result.to_dict())
        except AppError as err:
            return app_error_response(err)


@ns.route("/credits/transactions")
class CreditTransactions(Resource):
    """Audit trail of balance changes."""

    @ns.doc("list_credit_transactions")
    def get(self):
        try:
            return success_response(call_with_retry(_ledger.get_transactions, current_user_id()))
        except AppError as err:
            return app_error_response(err)


# ---------------------------------------------------------------------------
# Subscription routes
# ---------------------------------------------------------------------------
@ns.route("/subscriptions")
class SubscriptionList(Resource):
    """Subscribe to a package and view subscription history."""

    @ns.doc("list_subscriptions")
    def get(self):
        try:
            return success_response(call_with_retry(_subscription_svc.get_history, current_user_id()))
        except AppError as err:
            return app_error_response(err)

    @ns.doc("subscribe")
    @ns.expect(subscribe_model)
    def post(self):
        try:
            user_id = current_user_id()
            data = SubscribeSchema(**json_body())
            result = call_with_retry(_subscription_svc.subscribe, user_id, data.package_id)
            return success_response(result, 201)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/subscriptions/expiry")
class SubscriptionExpiry(Resource):
    """Days left on the current subscription."""

    @ns.doc("check_subscription_expiry")
    def get(self):
        try:
            status = call_with_retry(_ledger.check_subscription_expiry, current_user_id())
            return success_response(status.to_dict())
        except AppError as err:
            return app_error_response(err)


@ns.route("/subscriptions/<int:subscription_id>/cancel")
@ns.param("subscription_id", "The subscription ID")
class SubscriptionCancel(Resource):

    @ns.doc("cancel_subscription")
    def post(self, subscription_id: int):
        try:
            result = call_with_retry(_subscription_svc.cancel, current_user_id(), subscription_id)
            return success_response(result)
        except AppError as err:
            return app_error_response(err)


# ---------------------------------------------------------------------------
# Request routes
# ---------------------------------------------------------------------------
@ns.route("/requests/quote")
class RequestQuote(Resource):
    """Price a request before submitting it."""

    @ns.doc("quote_request")
    @ns.expect(quote_model)
    def post(self):
        try:
            data = RequestQuoteSchema(**json_body())
            result = _request_svc.quote_request(
                data.service_type_id, data.priority, data.responses(),
            )
            return success_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests")
class RequestList(Resource):
    """Create requests and list the client's own (?status=)."""

    @ns.doc("list_requests")
    def get(self):
        try:
            status = request.args.get("status")
            return success_response(_request_svc.list_client_requests(current_user_id(), status))
        except AppError as err:
            return app_error_response(err)

    @ns.doc("create_request")
    @ns.expect(request_model)
    def post(self):
        """Submit a request; its price is charged immediately."""
        try:
            user_id = current_user_id()
            data = RequestCreateSchema(**json_body())
            result = call_with_retry(
                _request_svc.create_request,
                client_id=user_id,
                service_type_id=data.service_type_id,
                title=data.title,
                description=data.description,
                priority=data.priority,
                attribute_responses=data.responses(),
            )
            return success_response(result, 201)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>")
@ns.param("request_id", "The service request ID")
class RequestDetail(Resource):

    @ns.doc("get_request")
    def get(self, request_id: int):
        """Fetch a request with its revision counters."""
        try:
            return success_response(_request_svc.get_request(request_id, current_user_id()))
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>/revisions")
@ns.param("request_id", "The service request ID")
class RequestRevision(Resource):
    """Ask for changes on delivered work."""

    @ns.doc("get_revision_info")
    def get(self, request_id: int):
        """Revision counters and the cost of the next revision."""
        try:
            return success_response(_request_svc.get_revision_info(request_id, current_user_id()))
        except AppError as err:
            return app_error_response(err)

    @ns.doc("request_revision")
    @ns.expect(revision_model)
    def post(self, request_id: int):
        """Request a free or paid revision."""
        try:
            user_id = current_user_id()
            data = RevisionRequestSchema(**json_body())
            result = call_with_retry(
                _request_svc.request_revision, request_id, user_id, data.feedback,
            )
            return result_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>/approve")
@ns.param("request_id", "The service request ID")
class RequestApprove(Resource):

    @ns.doc("approve_request")
    def post(self, request_id: int):
        """Accept the delivered work and complete the request."""
        try:
            return success_response(_request_svc.approve(request_id, current_user_id()))
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>/cancel")
@ns.param("request_id", "The service request ID")
class RequestCancel(Resource):

    @ns.doc("cancel_request")
    def post(self, request_id: int):
        try:
            return success_response(_request_svc.cancel(request_id, current_user_id()))
        except AppError as err:
            return app_error_response(err)
