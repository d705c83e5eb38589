from fastapi import Depends, Request

from catalogo_api.core.db import Database
from catalogo_api.repositories import CatalogoStore


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_store(database: Database = Depends(get_database)) -> CatalogoStore:
    return CatalogoStore(database)
