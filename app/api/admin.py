"""Admin API namespace — catalog, credit grants and the expiry sweep.

All routes delegate to service-layer classes. Controllers are kept thin
(parse → validate → call service → respond).
"""

from flask_restx import Namespace, Resource, fields
from pydantic import ValidationError as PydanticValidationError

from app.api.common import json_body
from app.domain.exceptions import AppError
from app.schemas.package_schema import PackageCreateSchema, PackageUpdateSchema
from app.schemas.response import app_error_response, invalid_input_response, result_response, success_response
from app.schemas.service_type_schema import ServiceTypeCreateSchema, ServiceTypeUpdateSchema
from app.schemas.subscription_schema import CreditGrantSchema
from app.services.catalog_service import CatalogService
from app.services.credit_ledger import CreditLedger
from app.services.retry import call_with_retry
from app.services.subscription_service import SubscriptionService

ns = Namespace("admin", description="Administration APIs")

# ---------------------------------------------------------------------------
# Swagger models
# ---------------------------------------------------------------------------
package_model = ns.model("PackageInput", {
    "name": fields.String(required=True),
    "description": fields.String(),
    "credits": fields.Integer(required=True),
    "duration_days": fields.Integer(required=True),
    "price": fields.Float(default=0),
    "is_active": fields.Boolean(default=True),
})

option_cost_model = ns.model("OptionCost", {
    "value": fields.String(required=True),
    "credit_cost": fields.Float(default=0),
})

attribute_model = ns.model("Attribute", {
    "key": fields.String(description="Stable snake_case key"),
    "question": fields.String(required=True),
    "type": fields.String(required=True, enum=["text", "textarea", "number", "select", "multiselect"]),
    "required": fields.Boolean(default=False),
    "options": fields.List(fields.String),
    "options_with_cost": fields.List(fields.Nested(option_cost_model)),
    "credit_impact": fields.Float(description="Credits per unit of a numeric answer"),
    "included_quantity": fields.Float(description="Units included before credit_impact applies"),
    "min": fields.Float(),
    "max": fields.Float(),
})

service_type_model = ns.model("ServiceTypeInput", {
    "name": fields.String(required=True),
    "description": fields.String(),
    "credit_cost": fields.Integer(default=1),
    "max_free_revisions": fields.Integer(default=3),
    "paid_revision_cost": fields.Integer(default=1),
    "reset_free_revisions_on_paid": fields.Boolean(default=True),
    "priority_cost_low": fields.Integer(),
    "priority_cost_medium": fields.Integer(),
    "priority_cost_high": fields.Integer(),
    "attributes": fields.List(fields.Nested(attribute_model)),
    "is_active": fields.Boolean(default=True),
})

credit_grant_model = ns.model("CreditGrant", {
    "user_id": fields.Integer(required=True),
    "amount": fields.Integer(required=True),
    "reason": fields.String(),
})

# ---------------------------------------------------------------------------
# Service instances
# ---------------------------------------------------------------------------
_catalog_svc = CatalogService()
_ledger = CreditLedger()
_subscription_svc = SubscriptionService()


# ---------------------------------------------------------------------------
# Package routes
# ---------------------------------------------------------------------------
@ns.route("/packages")
class PackageList(Resource):
    """Create and list packages."""

    @ns.doc("list_packages")
    def get(self):
        return success_response(_catalog_svc.list_packages())

    @ns.doc("create_package")
    @ns.expect(package_model)
    def post(self):
        try:
            data = PackageCreateSchema(**json_body())
            return success_response(_catalog_svc.create_package(**data.model_dump()), 201)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/packages/<int:package_id>")
@ns.param("package_id", "The package ID")
class PackageDetail(Resource):

    @ns.doc("update_package")
    @ns.expect(package_model)
    def patch(self, package_id: int):
        try:
            data = PackageUpdateSchema(**json_body())
            result = _catalog_svc.update_package(package_id, **data.model_dump(exclude_unset=True))
            return success_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


# ---------------------------------------------------------------------------
# Service type routes
# ---------------------------------------------------------------------------
@ns.route("/service-types")
class ServiceTypeList(Resource):
    """Create and list service types."""

    @ns.doc("list_service_types")
    def get(self):
        return success_response(_catalog_svc.list_service_types())

    @ns.doc("create_service_type")
    @ns.expect(service_type_model)
    def post(self):
        try:
            data = ServiceTypeCreateSchema(**json_body())
            return success_response(_catalog_svc.create_service_type(**data.to_record()), 201)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/service-types/<int:service_type_id>")
@ns.param("service_type_id", "The service type ID")
class ServiceTypeDetail(Resource):
    """Fetch or edit a service type. Revision policy edits apply to open requests."""

    @ns.doc("get_service_type")
    def get(self, service_type_id: int):
        try:
            return success_response(_catalog_svc.get_service_type(service_type_id))
        except AppError as err:
            return app_error_response(err)

    @ns.doc("update_service_type")
    @ns.expect(service_type_model)
    def patch(self, service_type_id: int):
        try:
            data = ServiceTypeUpdateSchema(**json_body())
            result = _catalog_svc.update_service_type(service_type_id, **data.to_record())
            return success_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


# ---------------------------------------------------------------------------
# Credit and subscription routes
# ---------------------------------------------------------------------------
@ns.route("/credits/grant")
class CreditGrant(Resource):
    """Add credits to a user's active subscription (refund, bonus, approved payment)."""

    @ns.doc("grant_credits")
    @ns.expect(credit_grant_model)
    def post(self):
        try:
            data = CreditGrantSchema(**json_body())
            result = call_with_retry(_ledger.add_credits, data.user_id, data.amount, data.reason)
            return result_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)


@ns.route("/users/<int:user_id>/transactions")
@ns.param("user_id", "The user ID")
class UserTransactions(Resource):

    @ns.doc("list_user_transactions")
    def get(self, user_id: int):
        try:
            return success_response(call_with_retry(_ledger.get_transactions, user_id))
        except AppError as err:
            return app_error_response(err)


@ns.route("/subscriptions/process-expirations")
class ExpirationSweep(Resource):
    """Run the daily expiry sweep (called by a scheduler)."""

    @ns.doc("process_expirations")
    def post(self):
        try:
            return success_response(call_with_retry(_subscription_svc.process_expirations))
        except AppError as err:
            return app_error_response(err)
