# API endpoints
from . import health, model_exports

__all__ = ["health", "model_exports"]
