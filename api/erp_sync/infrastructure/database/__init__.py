"""
Conexión a la base legacy (ERP).
"""
from erp_sync.infrastructure.database.session import create_source_engine, source_engine_scope

__all__ = ["create_source_engine", "source_engine_scope"]
