from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from catalogo_api.core.deps import get_store
from catalogo_api.core.errors import CatalogoError
from catalogo_api.core.logging import get_logger
from catalogo_api.repositories import CatalogoStore
from catalogo_api.schemas import (
    CategoryCreated,
    CategoryRead,
    ErrorResponse,
    HealthError,
    HealthOk,
    ProductCreated,
    ProductRead,
    parse_category_create,
    parse_product_create,
)

logger = get_logger(__name__)

router = APIRouter()

_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@router.get(
    "/health",
    response_model=HealthOk,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": HealthError}},
)
async def health(store: CatalogoStore = Depends(get_store)):
    try:
        db_time = await store.server_time()
    except CatalogoError as e:
        logger.warning("Healthcheck failed: %s", e.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": e.message},
        )
    return HealthOk(db_time=db_time)


# ==================================================
#                     PRODUCTOS
# ==================================================


@router.get("/api/productos", response_model=list[ProductRead], responses=_ERRORS)
async def http_list_products(store: CatalogoStore = Depends(get_store)):
    return await store.list_products()


@router.post(
    "/api/productos",
    response_model=ProductCreated,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def http_create_product(
    body: Any = Body(default=None),
    store: CatalogoStore = Depends(get_store),
):
    payload = parse_product_create(body)
    new_id = await store.create_product(payload)
    return ProductCreated(IdProducto=new_id)


# ==================================================
#                     CATEGORÍAS
# ==================================================


@router.get("/api/categorias", response_model=list[CategoryRead], responses=_ERRORS)
async def http_list_categories(store: CatalogoStore = Depends(get_store)):
    return await store.list_categories()


@router.post(
    "/api/categorias",
    response_model=CategoryCreated,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def http_create_category(
    body: Any = Body(default=None),
    store: CatalogoStore = Depends(get_store),
):
    payload = parse_category_create(body)
    new_id = await store.create_category(payload)
    return CategoryCreated(IdCategoria=new_id)
