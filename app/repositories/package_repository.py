"""Package repository."""

from app.domain.models import Package
from app.repositories.base import BaseRepository


class PackageRepository(BaseRepository[Package]):
    """Data access for Package records."""

    def __init__(self):
        super().__init__(Package)

    def get_active(self) -> list[Package]:
        """Return only packages open for subscription."""
        return Package.query.filter_by(is_active=True).order_by(Package.id).all()
