from app.services.model_export_service import ModelExportService, model_export_service

__all__ = [
    "ModelExportService",
    "model_export_service",
]
