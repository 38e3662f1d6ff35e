"""
Casos de uso de la aplicacion.
"""
from .sync_use_cases import ErpSyncUseCases

__all__ = ["ErpSyncUseCases"]
