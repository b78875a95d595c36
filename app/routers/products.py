# app/routers/products.py
from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_backend_client
from app.core.http_client import BackendClient
from app.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["Products"])


# -------- Public catalog (proxied to the backend) --------


@router.get("")
async def list_products(
    request: Request,
    client: BackendClient = Depends(get_backend_client),
):
    """
    List products.

    - Public endpoint.
    - Query parameters (page, limit, category, sort, ...) are passed
      through to the backend unchanged.
    """
    return await CatalogService(client).list_products(dict(request.query_params))


@router.get("/search")
async def search_products(
    q: str,
    client: BackendClient = Depends(get_backend_client),
):
    """
    Full-text product search (public).
    """
    return await CatalogService(client).search_products(q)


@router.get("/categories")
async def list_categories(client: BackendClient = Depends(get_backend_client)):
    """
    Product categories (public).
    """
    return await CatalogService(client).list_categories()


@router.get("/{id_or_slug}")
async def get_product(
    id_or_slug: str,
    client: BackendClient = Depends(get_backend_client),
):
    """
    Get a single product by id or slug.

    - Public endpoint.
    """
    return await CatalogService(client).get_product(id_or_slug)
