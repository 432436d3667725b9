"""Service request repository."""

from sqlalchemy import update

from app.domain.models import RequestStatus, ServiceRequest
from app.extensions import db
from app.repositories.base import BaseRepository


class RequestRepository(BaseRepository[ServiceRequest]):
    """Data access for ServiceRequest records."""

    def __init__(self):
        super().__init__(ServiceRequest)

    def get_by_client(self, client_id: int, status: str | None = None) -> list[ServiceRequest]:
        """Return a client's requests, newest first."""
        query = ServiceRequest.query.filter_by(client_id=client_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(ServiceRequest.id.desc()).all()

    def apply_revision(
        self,
        request_id: int,
        seen_count: int,
        next_count: int,
        revision_type: str,
        added_cost: int,
    ) -> bool:
        """Move a delivered request into revision, guarded by what was read.

        The UPDATE only matches while the request is still DELIVERED with
        the counter the caller based its decision on; a concurrent click
        makes it match nothing.
        """
        result = db.session.execute(
            update(ServiceRequest)
            .where(
                ServiceRequest.id == request_id,
                ServiceRequest.status == RequestStatus.DELIVERED,
                ServiceRequest.current_revision_count == seen_count,
            )
            .values(
                current_revision_count=next_count,
                total_revisions=ServiceRequest.total_revisions + 1,
                credit_cost=ServiceRequest.credit_cost + added_cost,
                status=RequestStatus.REVISION_REQUESTED,
                is_revision=True,
                revision_type=revision_type,
            )
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    def transition(self, request_id: int, from_status: str, to_status: str, **values) -> bool:
        """Change status only if the request is still in ``from_status``."""
        result = db.session.execute(
            update(ServiceRequest)
            .where(
                ServiceRequest.id == request_id,
                ServiceRequest.status == from_status,
            )
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1
