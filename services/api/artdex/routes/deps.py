"""Shared route dependencies and error helpers."""

from typing import Any

from fastapi import HTTPException, Request

from artdex.services.catalog import CatalogService


def get_catalog_service(request: Request) -> CatalogService:
    """CatalogService built at startup (see main.lifespan)."""
    service = getattr(request.app.state, "catalog_service", None)
    if service is None:
        raise api_error(503, "SERVICE_UNAVAILABLE", "Catalog service is not initialized")
    return service


def api_error(status_code: int, code: str, message: str, detail: dict[str, Any] | None = None) -> HTTPException:
    """HTTPException carrying the structured error body."""
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "detail": detail,
            }
        },
    )


def store_unavailable(operation: str) -> HTTPException:
    return api_error(503, "STORE_UNAVAILABLE", f"Could not {operation}, try again later")


def item_not_found(item_id: str) -> HTTPException:
    return api_error(404, "ITEM_NOT_FOUND", f"Item {item_id} not found", {"item_id": item_id})
