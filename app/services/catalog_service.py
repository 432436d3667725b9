"""Catalog service — admin management of packages and service types."""

import logging

from app.domain.exceptions import ConflictError, ResourceNotFoundError
from app.repositories.package_repository import PackageRepository
from app.repositories.service_type_repository import ServiceTypeRepository

logger = logging.getLogger(__name__)


class CatalogService:
    """Manages package and service type CRUD operations.

    Service type edits apply immediately, including to requests already in
    flight: the revision policy is always read live.
    """

    def __init__(self):
        self._package_repo = PackageRepository()
        self._service_type_repo = ServiceTypeRepository()

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def create_package(self, name: str, credits: int, duration_days: int, **kwargs) -> dict:
        """Create a new credit package."""
        self._ensure_unique(self._package_repo, name)
        package = self._package_repo.create(
            name=name, credits=credits, duration_days=duration_days, **kwargs,
        )
        self._package_repo.commit()
        logger.info("Created package id=%s name='%s' credits=%s", package.id, name, credits)
        return package.to_dict()

    def update_package(self, package_id: int, **kwargs) -> dict:
        package = self._package_repo.get_by_id(package_id)
        if not package:
            raise ResourceNotFoundError("Package", package_id)
        if "name" in kwargs and kwargs["name"] != package.name:
            self._ensure_unique(self._package_repo, kwargs["name"])

        package = self._package_repo.update(package, **kwargs)
        self._package_repo.commit()
        logger.info("Updated package id=%s", package_id)
        return package.to_dict()

    def list_packages(self, active_only: bool = False) -> list[dict]:
        packages = self._package_repo.get_active() if active_only else self._package_repo.get_all()
        return [p.to_dict() for p in packages]

    # ------------------------------------------------------------------
    # Service types
    # ------------------------------------------------------------------

    def create_service_type(self, name: str, **kwargs) -> dict:
        """Create a service type with its questions and revision policy."""
        self._ensure_unique(self._service_type_repo, name)
        service_type = self._service_type_repo.create(name=name, **kwargs)
        self._service_type_repo.commit()
        logger.info("Created service type id=%s name='%s'", service_type.id, name)
        return service_type.to_dict()

    def update_service_type(self, service_type_id: int, **kwargs) -> dict:
        """Update a service type; revision settings take effect on the next revision."""
        service_type = self._service_type_repo.get_by_id(service_type_id)
        if not service_type:
            raise ResourceNotFoundError("ServiceType", service_type_id)
        if "name" in kwargs and kwargs["name"] != service_type.name:
            self._ensure_unique(self._service_type_repo, kwargs["name"])

        service_type = self._service_type_repo.update(service_type, **kwargs)
        self._service_type_repo.commit()
        logger.info("Updated service type id=%s fields=%s", service_type_id, sorted(kwargs))
        return service_type.to_dict()

    def get_service_type(self, service_type_id: int) -> dict:
        service_type = self._service_type_repo.get_by_id(service_type_id)
        if not service_type:
            raise ResourceNotFoundError("ServiceType", service_type_id)
        return service_type.to_dict()

    def list_service_types(self, active_only: bool = False) -> list[dict]:
        if active_only:
            service_types = self._service_type_repo.get_active()
        else:
            service_types = self._service_type_repo.get_all()
        return [s.to_dict() for s in service_types]

    @staticmethod
    def _ensure_unique(repo, name: str) -> None:
        if repo.filter_by(name=name):
            raise ConflictError(f"'{name}' already exists")
