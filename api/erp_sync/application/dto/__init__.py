"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    IncrementalSyncRequestDTO,
    IncrementalSyncResponseDTO,
    FullResyncResponseDTO,
    CheckpointDTO,
    CheckpointResetResponseDTO,
)

__all__ = [
    "IncrementalSyncRequestDTO",
    "IncrementalSyncResponseDTO",
    "FullResyncResponseDTO",
    "CheckpointDTO",
    "CheckpointResetResponseDTO",
]
