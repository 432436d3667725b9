"""Provider API namespace — taking and delivering requests."""

from flask_restx import Namespace, Resource, fields
from pydantic import ValidationError as PydanticValidationError

from app.api.common import current_user_id, json_body
from app.domain.exceptions import AppError
from app.schemas.request_schema import StatusUpdateSchema
from app.schemas.response import app_error_response, invalid_input_response, success_response
from app.services.request_service import RequestService
from app.services.retry import call_with_retry

ns = Namespace("provider", description="Provider workflow APIs")

status_model = ns.model("ProviderStatusUpdate", {
    "status": fields.String(required=True, enum=["IN_PROGRESS", "DELIVERED"]),
    "message": fields.String(description="Note or deliverable description"),
})

_request_svc = RequestService()


@ns.route("/requests/<int:request_id>")
@ns.param("request_id", "The service request ID")
class ProviderRequestDetail(Resource):

    @ns.doc("get_assigned_request")
    def get(self, request_id: int):
        try:
            return success_response(_request_svc.get_request(request_id, current_user_id()))
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>/accept")
@ns.param("request_id", "The service request ID")
class ProviderAccept(Resource):

    @ns.doc("accept_request")
    def post(self, request_id: int):
        """Take a pending request."""
        try:
            result = call_with_retry(_request_svc.accept, request_id, current_user_id())
            return success_response(result)
        except AppError as err:
            return app_error_response(err)


@ns.route("/requests/<int:request_id>/status")
@ns.param("request_id", "The service request ID")
class ProviderStatusUpdate(Resource):

    @ns.doc("update_request_status")
    @ns.expect(status_model)
    def patch(self, request_id: int):
        """Resume work on a revision or deliver."""
        try:
            user_id = current_user_id()
            data = StatusUpdateSchema(**json_body())
            result = call_with_retry(
                _request_svc.update_status, request_id, user_id, data.status, data.message,
            )
            return success_response(result)
        except PydanticValidationError as err:
            return invalid_input_response(err)
        except AppError as err:
            return app_error_response(err)
