import os
import time
from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest
import requests
from fastapi.testclient import TestClient

# defaults de entorno para que el suite sea estable
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "INFO")

from catalogo_api.core.config import Settings  # noqa: E402
from catalogo_api.core.deps import get_store  # noqa: E402
from catalogo_api.core.errors import ConstraintViolation  # noqa: E402
from catalogo_api.main import create_app  # noqa: E402

DB_TIME = datetime(2024, 5, 17, 10, 30, 0)


class FakeStore:
    """
    In-memory stand-in for CatalogoStore with the same contract:
    identity ids, newest-first listings, product cap and unique Codigo.
    """

    def __init__(self) -> None:
        self.products: list[dict] = []
        self.categories: list[dict] = []
        self.fail: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail is not None:
            raise self.fail

    async def server_time(self) -> datetime:
        self._check()
        return DB_TIME

    async def list_products(self, limit: int = 100) -> list[dict]:
        self._check()
        rows = sorted(self.products, key=lambda r: r["IdProducto"], reverse=True)
        return rows[:limit]

    async def create_product(self, payload) -> int:
        self._check()
        new_id = len(self.products) + 1
        self.products.append(
            {
                "IdProducto": new_id,
                "Nombre": payload.nombre,
                "Descripcion": payload.descripcion,
                "Costo": payload.costo,
                "Stock": payload.stock,
                "FechaCreacion": DB_TIME,
            }
        )
        return new_id

    async def list_categories(self) -> list[dict]:
        self._check()
        return sorted(self.categories, key=lambda r: r["IdCategoria"], reverse=True)

    async def create_category(self, payload) -> int:
        self._check()
        if any(r["Codigo"] == payload.codigo for r in self.categories):
            raise ConstraintViolation("El código ya existe", number=2627)
        new_id = len(self.categories) + 1
        self.categories.append(
            {
                "IdCategoria": new_id,
                "Codigo": payload.codigo,
                "Nombre": payload.nombre,
                "Descripcion": payload.descripcion,
                "Estado": payload.estado,
                "FechaCreacion": DB_TIME,
            }
        )
        return new_id


def make_product_row(product_id: int) -> dict:
    return {
        "IdProducto": product_id,
        "Nombre": f"Producto {product_id}",
        "Descripcion": None,
        "Costo": Decimal("1.00"),
        "Stock": 0,
        "FechaCreacion": DB_TIME,
    }


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def client(store: FakeStore):
    app = create_app(Settings(_env_file=None))
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# =========================
# Live HTTP tests (opcional)
# =========================
@pytest.fixture(scope="session")
def base_url() -> str:
    """
    Base URL de un catalogo-api desplegado, p.ej. CATALOGO_BASE_URL=http://localhost:3000.
    Sin la variable, los tests "live" se saltan.
    """
    url = os.getenv("CATALOGO_BASE_URL", "").strip()
    if not url:
        pytest.skip("CATALOGO_BASE_URL no definido; tests contra servicio real desactivados.")
    url = url.rstrip("/")

    deadline = time.time() + 60.0
    last: Optional[Exception] = None
    while time.time() < deadline:
        try:
            r = requests.get(f"{url}/health", timeout=3)
            if r.status_code == 200:
                return url
        except requests.RequestException as e:
            last = e
        time.sleep(1.0)

    raise RuntimeError(f"catalogo-api no responde en {url}/health. Ultimo error: {last}")
