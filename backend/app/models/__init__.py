# Re-export all models for convenient imports
from app.models.model_export import ModelExport

__all__ = [
    "ModelExport",
]
