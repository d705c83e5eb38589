"""
Storage adapter over dbo.Productos / dbo.Categorias (raw SQL).

Each method runs one parameterized statement on the shared pool. Driver and
SQLAlchemy failures never leave this module: they are classified into the
domain errors of `catalogo_api.core.errors`.

SQL parameter style: SQLAlchemy `text()` named binds (:nombre, :costo, ...).
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalogo_api.core.db import Database
from catalogo_api.core.errors import ConstraintViolation, StorageError, classify_error
from catalogo_api.core.logging import get_logger
from catalogo_api.schemas import CategoryCreate, ProductCreate

logger = get_logger(__name__)

PRODUCT_LIST_LIMIT = 100

_SERVER_TIME = text("SELECT GETDATE() AS now")

_LIST_PRODUCTS = text(
    """
    SELECT TOP (:limit) IdProducto, Nombre, Descripcion, Costo, Stock, FechaCreacion
    FROM dbo.Productos
    ORDER BY IdProducto DESC
    """
)

# OUTPUT INSERTED devuelve la identidad en el mismo round-trip que el INSERT
_INSERT_PRODUCT = text(
    """
    INSERT INTO dbo.Productos (Nombre, Descripcion, Costo, Stock)
    OUTPUT INSERTED.IdProducto
    VALUES (:nombre, :descripcion, :costo, :stock)
    """
)

_LIST_CATEGORIES = text(
    """
    SELECT IdCategoria, Codigo, Nombre, Descripcion, Estado, FechaCreacion
    FROM dbo.Categorias
    ORDER BY IdCategoria DESC
    """
)

_INSERT_CATEGORY = text(
    """
    INSERT INTO dbo.Categorias (Codigo, Nombre, Descripcion, Estado)
    OUTPUT INSERTED.IdCategoria
    VALUES (:codigo, :nombre, :descripcion, :estado)
    """
)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        error = classify_error(exc)
        logger.error("%s failed: %s", operation, error.message)
        raise error from exc


class CatalogoStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    async def server_time(self) -> datetime:
        engine = await self._database.get_pool()
        with _storage_errors("server_time"):
            async with engine.connect() as conn:
                result = await conn.execute(_SERVER_TIME)
                return result.scalar_one()

    async def list_products(self, limit: int = PRODUCT_LIST_LIMIT) -> list[dict[str, Any]]:
        engine = await self._database.get_pool()
        with _storage_errors("list_products"):
            async with engine.connect() as conn:
                result = await conn.execute(_LIST_PRODUCTS, {"limit": limit})
                return [dict(row) for row in result.mappings().all()]

    async def create_product(self, payload: ProductCreate) -> int:
        engine = await self._database.get_pool()
        try:
            with _storage_errors("create_product"):
                async with engine.begin() as conn:
                    result = await conn.execute(
                        _INSERT_PRODUCT,
                        {
                            "nombre": payload.nombre,
                            "descripcion": payload.descripcion,
                            "costo": payload.costo,
                            "stock": payload.stock,
                        },
                    )
                    new_id = int(result.scalar_one())
        except ConstraintViolation as exc:
            # dbo.Productos no tiene clave de negocio: cualquier duplicado es fallo de almacenamiento
            raise StorageError(exc.message) from exc

        logger.info("Producto %s creado", new_id)
        return new_id

    async def list_categories(self) -> list[dict[str, Any]]:
        engine = await self._database.get_pool()
        with _storage_errors("list_categories"):
            async with engine.connect() as conn:
                result = await conn.execute(_LIST_CATEGORIES)
                return [dict(row) for row in result.mappings().all()]

    async def create_category(self, payload: CategoryCreate) -> int:
        engine = await self._database.get_pool()
        try:
            with _storage_errors("create_category"):
                async with engine.begin() as conn:
                    result = await conn.execute(
                        _INSERT_CATEGORY,
                        {
                            "codigo": payload.codigo,
                            "nombre": payload.nombre,
                            "descripcion": payload.descripcion,
                            "estado": payload.estado,
                        },
                    )
                    new_id = int(result.scalar_one())
        except ConstraintViolation as exc:
            # Codigo es la única columna UNIQUE de dbo.Categorias
            raise ConstraintViolation("El código ya existe", number=exc.number) from exc

        logger.info("Categoría %s creada (codigo=%s)", new_id, payload.codigo)
        return new_id
