"""Service type repository."""

from app.domain.models import ServiceType
from app.repositories.base import BaseRepository


class ServiceTypeRepository(BaseRepository[ServiceType]):
    """Data access for ServiceType records."""

    def __init__(self):
        super().__init__(ServiceType)

    def get_active(self) -> list[ServiceType]:
        """Return only active service types."""
        return ServiceType.query.filter_by(is_active=True).order_by(ServiceType.id).all()
