"""
Settings del sincronizador (variables de entorno y .env).

Solo la capa de API / casos de uso lee esta configuracion: el nucleo del
sincronizador recibe objetos explicitos (TableSyncSpec, engine, cliente
Firestore) y nunca consulta el entorno del proceso.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


_DEFAULT_PORTS = {"pg": 5432, "mysql": 3306, "mssql": 1433}

_ASYNC_DRIVERS = {
    "pg": "postgresql+asyncpg",
    "mysql": "mysql+aiomysql",
    "mssql": "mssql+aioodbc",
}


class Settings(BaseSettings):
    """
    Configuracion del proceso (API o script).

    Base legacy (ERP):
    - ERP_DATABASE_URL se puede especificar completa (cualquier URL async de SQLAlchemy)
    - Si no, se construye desde ERP_DB_CLIENT / HOST / PORT / USER / PASSWORD / NAME

    Tablas sincronizadas:
    - ERP_TABLE_* y ERP_PK_* permiten renombrar tabla origen y columna PK
    - ERP_FIELD_MAPPING es un JSON {coleccion: {columna_legacy: campo_destino}}
    """

    # Aplicacion
    APP_NAME: str = Field(default="ERP Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Servidor HTTP
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    CORS_ORIGINS: str = Field(default="*")

    # Base legacy - Componentes separados
    ERP_DB_CLIENT: str = Field(default="mysql")
    ERP_DB_HOST: str = Field(default="localhost")
    ERP_DB_PORT: int = Field(default=0)
    ERP_DB_USER: str = Field(default="erp_user")
    ERP_DB_PASSWORD: str = Field(default="erp_pass")
    ERP_DB_NAME: str = Field(default="demo_erp")
    ERP_DB_SCHEMA: str = Field(default="")

    # Base legacy - URL completa (override de componentes si se proporciona)
    ERP_DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=5)

    # Firestore destino (credenciales via GOOGLE_APPLICATION_CREDENTIALS)
    FIRESTORE_PROJECT: str = Field(default="")
    FIRESTORE_DATABASE: str = Field(default="(default)")

    # Parametros del sync incremental
    ERP_CHUNK_SIZE: int = Field(default=2000, gt=0)
    ERP_BATCH_SIZE: int = Field(default=500, gt=0, le=500)
    ERP_THROTTLE_MS: int = Field(default=50, ge=0)
    ERP_PULL_RETRIES: int = Field(default=0, ge=0)
    ERP_SYNC_CONCURRENT_TABLES: bool = Field(default=False)
    ERP_CHECKPOINT_COLLECTION: str = Field(default="etlCheckpoints")
    ERP_JOBS_COLLECTION: str = Field(default="etlJobs")

    # Tablas origen y PK por coleccion destino
    ERP_TABLE_ENTERPRISE: str = Field(default="companies")
    ERP_PK_ENTERPRISE: str = Field(default="id")
    ERP_TABLE_USERS: str = Field(default="employees")
    ERP_PK_USERS: str = Field(default="id")
    ERP_TABLE_ASSETS: str = Field(default="vehicles")
    ERP_PK_ASSETS: str = Field(default="id")
    ERP_TABLE_TELEMETRY: str = Field(default="telemetry_data")
    ERP_PK_TELEMETRY: str = Field(default="id")

    # Mapeo de campos (JSON). Se valida al usarlo, no al cargar settings.
    ERP_FIELD_MAPPING: str = Field(default="")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/erp_sync.log")

    @computed_field
    @property
    def effective_erp_database_url(self) -> str:
        """URL async del ERP: ERP_DATABASE_URL tal cual, o armada desde ERP_DB_*."""
        if self.ERP_DATABASE_URL:
            return self.ERP_DATABASE_URL
        client = self.ERP_DB_CLIENT.lower()
        if client == "postgres":
            client = "pg"
        if client == "sqlite":
            return f"sqlite+aiosqlite:///{self.ERP_DB_NAME}"
        driver = _ASYNC_DRIVERS.get(client, _ASYNC_DRIVERS["mysql"])
        port = self.ERP_DB_PORT or _DEFAULT_PORTS.get(client, 3306)
        return (
            f"{driver}://{self.ERP_DB_USER}:{self.ERP_DB_PASSWORD}"
            f"@{self.ERP_DB_HOST}:{port}/{self.ERP_DB_NAME}"
        )

    @computed_field
    @property
    def throttle_seconds(self) -> float:
        """Pausa entre chunks, en segundos."""
        return self.ERP_THROTTLE_MS / 1000.0

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


def get_cors_origins(cors_string: str) -> List[str]:
    """CORS_ORIGINS: "*", lista JSON o valores separados por coma."""
    cors_string = cors_string.strip()
    if cors_string == "*":
        return ["*"]
    if cors_string.startswith("["):
        return json.loads(cors_string)
    return [origin.strip() for origin in cors_string.split(",") if origin.strip()]


settings = Settings()
