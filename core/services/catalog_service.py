# =============================================================================
# core/services/catalog_service.py - Braider Service Catalog
# =============================================================================
# CRUD for the services a braider offers (name, price, duration).
# Writes require braider ownership, checked through the service's braider.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError
from core.models.braider import ServiceCreate, ServiceUpdate
from core.services.ownership_service import OwnershipService
from lib.supabase_client import SupabaseClient
from lib.utils import to_iso, utc_now

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Service for braider service listings.
    """

    @staticmethod
    def list_services(braider_id: str, available_only: bool = False) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"braider_id": braider_id}
        if available_only:
            filters["is_available"] = True
        return SupabaseClient.fetch_many("services", order_by="price", **filters)

    @staticmethod
    def create_service(user_id: UUID | str, braider_id: str, payload: ServiceCreate) -> dict[str, Any]:
        """
        Add a service to a braider's catalog.

        Raises:
            OwnershipError: If the user doesn't own the braider profile
        """
        OwnershipService.ensure_valid(OwnershipService.validate_braider_ownership(user_id, braider_id))

        service = SupabaseClient.insert_one("services", {**payload.model_dump(), "braider_id": braider_id})
        logger.info(f"Created service {service['id']} for braider {braider_id}")
        return service

    @staticmethod
    def _owned_service(user_id: UUID | str, service_id: str) -> dict[str, Any]:
        service = SupabaseClient.fetch_one("services", id=service_id)
        if not service:
            raise NotFoundError("service", service_id)
        OwnershipService.ensure_valid(
            OwnershipService.validate_braider_ownership(user_id, service["braider_id"])
        )
        return service

    @staticmethod
    def update_service(user_id: UUID | str, service_id: str, changes: ServiceUpdate) -> dict[str, Any]:
        service = CatalogService._owned_service(user_id, service_id)

        data = changes.model_dump(exclude_unset=True)
        if not data:
            return service

        data["updated_at"] = to_iso(utc_now())
        rows = SupabaseClient.update_where("services", data, id=service_id)
        return rows[0] if rows else service

    @staticmethod
    def delete_service(user_id: UUID | str, service_id: str) -> None:
        CatalogService._owned_service(user_id, service_id)
        SupabaseClient.delete_where("services", id=service_id)
        logger.info(f"Deleted service {service_id}")
