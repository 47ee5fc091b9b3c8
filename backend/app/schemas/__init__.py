# Pydantic schemas
from app.schemas.model_export import (
    ModelExportCreate,
    ModelExportUpdate,
    ModelExportResponse,
    ModelExportStatusResponse,
    ImportedModelResponse,
    ErrorResponse,
)

__all__ = [
    "ModelExportCreate",
    "ModelExportUpdate",
    "ModelExportResponse",
    "ModelExportStatusResponse",
    "ImportedModelResponse",
    "ErrorResponse",
]
