from fastapi import APIRouter
from app.api.v1.endpoints import health, model_exports

api_router = APIRouter()

# Liveness/readiness probes (/health/live, /health/ready)
api_router.include_router(health.router)

# Model export store
api_router.include_router(model_exports.router)
