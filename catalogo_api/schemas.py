"""
Request parsing and response models.

Request bodies arrive as loose JSON objects; `parse_product_create()` and
`parse_category_create()` turn them into fully validated values or raise
`ValidationError` on the first problem, before any database work.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, PlainSerializer

from catalogo_api.core.errors import ValidationError

NOMBRE_MAX = 100
DESCRIPCION_MAX = 255
CODIGO_MAX = 20

_TWO_PLACES = Decimal("0.01")

# decimal(10,2) viaja como número JSON, igual que antes
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ProductCreate(BaseModel):
    nombre: str = Field(min_length=1, max_length=NOMBRE_MAX)
    descripcion: Optional[str] = Field(default=None, max_length=DESCRIPCION_MAX)
    costo: Decimal
    stock: int = 0


class CategoryCreate(BaseModel):
    codigo: str = Field(min_length=1, max_length=CODIGO_MAX)
    nombre: str = Field(min_length=1, max_length=NOMBRE_MAX)
    descripcion: Optional[str] = Field(default=None, max_length=DESCRIPCION_MAX)
    estado: bool = True


class ProductRead(BaseModel):
    IdProducto: int
    Nombre: str
    Descripcion: Optional[str] = None
    Costo: Money
    Stock: Optional[int] = None
    FechaCreacion: Optional[datetime] = None


class CategoryRead(BaseModel):
    IdCategoria: int
    Codigo: str
    Nombre: str
    Descripcion: Optional[str] = None
    Estado: Optional[bool] = None
    FechaCreacion: Optional[datetime] = None


class ProductCreated(BaseModel):
    message: str = "Producto creado"
    IdProducto: int


class CategoryCreated(BaseModel):
    message: str = "Categoría creada"
    IdCategoria: int


class HealthOk(BaseModel):
    ok: bool = True
    db_time: datetime


class HealthError(BaseModel):
    ok: bool = False
    error: str


class ErrorResponse(BaseModel):
    error: str


def _as_object(body: Any) -> dict[str, Any]:
    return body if isinstance(body, dict) else {}


def _text(value: Any, field: str, max_length: int) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise ValidationError(f"{field} debe ser texto")
    value = str(value)
    if len(value) > max_length:
        raise ValidationError(f"{field} admite como máximo {max_length} caracteres")
    return value


def _optional_text(value: Any, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    return _text(value, field, max_length)


def _money(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("costo debe ser numérico")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("costo debe ser numérico") from None
    if not amount.is_finite():
        raise ValidationError("costo debe ser numérico")
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _stock(value: Any) -> int:
    # Sólo enteros "de verdad"; cualquier otra cosa (texto, bool, 2.5) es 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _flag(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    # como una columna bit: cualquier entero distinto de 0 es 1
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise ValidationError("estado debe ser booleano")


def parse_product_create(body: Any) -> ProductCreate:
    data = _as_object(body)
    nombre = data.get("nombre")
    costo = data.get("costo")
    if not nombre or costo is None:
        raise ValidationError("nombre y costo son obligatorios")

    return ProductCreate(
        nombre=_text(nombre, "nombre", NOMBRE_MAX),
        descripcion=_optional_text(data.get("descripcion"), "descripcion", DESCRIPCION_MAX),
        costo=_money(costo),
        stock=_stock(data.get("stock")),
    )


def parse_category_create(body: Any) -> CategoryCreate:
    data = _as_object(body)
    codigo = data.get("codigo")
    nombre = data.get("nombre")
    if not codigo or not nombre:
        raise ValidationError("codigo y nombre son obligatorios")

    return CategoryCreate(
        codigo=_text(codigo, "codigo", CODIGO_MAX),
        nombre=_text(nombre, "nombre", NOMBRE_MAX),
        descripcion=_optional_text(data.get("descripcion"), "descripcion", DESCRIPCION_MAX),
        estado=_flag(data.get("estado")),
    )
