from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Configuration for catalogo-api.

    Database settings can come either as a full DATABASE_URL or as the DB_*
    pieces (DB_SERVER, DB_PORT, DB_NAME, DB_USER, DB_PASS, DB_ENCRYPT,
    DB_TRUST_SERVER_CERT), which is how the SQL Server hosting panel hands
    them out.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # --- Service ---
    app_name: str = Field(default="catalogo-api", validation_alias="APP_NAME")
    app_version: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    environment: str = Field(default="local", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")

    # CSV; "*" abre CORS a cualquier origen
    cors_allowed_origins: str = Field(default="*", validation_alias="CORS_ALLOWED_ORIGINS")

    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    # -------------------------
    # Database (SQL Server)
    # -------------------------
    # Opción A: URL completa (si se define, se usa tal cual).
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Opción B: piezas
    db_server: str = Field(default="localhost", validation_alias=AliasChoices("DB_SERVER", "DB_HOST"))
    db_port: int = Field(default=1433, validation_alias="DB_PORT")
    db_name: str = Field(default="", validation_alias="DB_NAME")
    db_user: str = Field(default="", validation_alias="DB_USER")
    db_password: str = Field(default="", validation_alias=AliasChoices("DB_PASS", "DB_PASSWORD"))
    db_encrypt: bool = Field(default=False, validation_alias="DB_ENCRYPT")
    db_trust_server_cert: bool = Field(default=False, validation_alias="DB_TRUST_SERVER_CERT")
    db_driver: str = Field(default="ODBC Driver 18 for SQL Server", validation_alias="DB_DRIVER")

    # Pool
    db_pool_max: int = Field(default=10, ge=1, validation_alias="DB_POOL_MAX")
    db_pool_idle_timeout_ms: int = Field(default=30000, ge=0, validation_alias="DB_POOL_IDLE_TIMEOUT_MS")
    db_pool_acquire_timeout_s: float = Field(default=30.0, gt=0, validation_alias="DB_POOL_ACQUIRE_TIMEOUT_S")

    @property
    def database_url_resolved(self) -> str:
        """
        Devuelve DATABASE_URL si viene definido; si no, lo construye desde DB_*.

        The ODBC driver options (Encrypt, TrustServerCertificate) travel as
        query parameters of the mssql+aioodbc URL.
        """
        if self.database_url and self.database_url.strip():
            return self.database_url.strip()

        url = URL.create(
            "mssql+aioodbc",
            username=self.db_user or None,
            password=self.db_password or None,
            host=self.db_server,
            port=self.db_port,
            database=self.db_name or None,
            query={
                "driver": self.db_driver,
                "Encrypt": "yes" if self.db_encrypt else "no",
                "TrustServerCertificate": "yes" if self.db_trust_server_cert else "no",
            },
        )
        return url.render_as_string(hide_password=False)

    @property
    def db_pool_recycle_seconds(self) -> int:
        return max(1, self.db_pool_idle_timeout_ms // 1000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
