"""
Model Export API Endpoints

Endpoints:
- POST /exports - Create a model export
- GET /exports/player/{player_user_id} - List a player's exports (sweeps expired ones)
- GET /exports/import/{id}/{player_user_id} - Import an export's payload
- PUT /exports/{id} - Replace an export's serialized data

Errors are raised as ModelExportError subclasses and rendered by the
handlers registered in app.main.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.model_export_service import ModelExportService, model_export_service
from app.schemas.model_export import (
    ModelExportCreate,
    ModelExportUpdate,
    ModelExportEnvelope,
    ModelExportStatusEnvelope,
    ModelExportListEnvelope,
    ImportedModelEnvelope,
    ErrorResponse,
)

router = APIRouter(prefix="/exports", tags=["Model Exports"])

BAD_REQUEST = {status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid request"}}
NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Model not found"}}


def get_model_export_service() -> ModelExportService:
    """Dependency returning the shared export service"""
    return model_export_service


@router.post(
    "",
    response_model=ModelExportEnvelope,
    status_code=status.HTTP_201_CREATED,
    operation_id="create-model-export",
    summary="Create a new model export",
    responses=BAD_REQUEST,
)
@router.post("/", response_model=ModelExportEnvelope, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_model_export(
    request: ModelExportCreate,
    db: AsyncSession = Depends(get_db),
    service: ModelExportService = Depends(get_model_export_service)
):
    """
    Create a model export for a player

    A player can hold at most 5 exports (error 4001). The id is generated
    when omitted; an id that is already taken fails with error 4002.
    """
    export = await service.create_export(
        db=db,
        player_user_id=request.player_user_id,
        serialized_data=request.serialized_data,
        export_id=request.id
    )
    return ModelExportEnvelope(result=export)


@router.get(
    "/player/{player_user_id}",
    response_model=ModelExportListEnvelope,
    operation_id="get-player-models",
    summary="Get all model exports for a player",
    responses=BAD_REQUEST,
)
async def get_player_model_exports(
    player_user_id: int,
    db: AsyncSession = Depends(get_db),
    service: ModelExportService = Depends(get_model_export_service)
):
    """
    List a player's exports, most recent first

    Expired exports are included with is_expired=true and deleted as part of
    this call.
    """
    exports = await service.list_player_exports(db, player_user_id)
    return ModelExportListEnvelope(result=exports)


@router.get(
    "/import/{export_id}/{player_user_id}",
    response_model=ImportedModelEnvelope,
    operation_id="import-model",
    summary="Import a model export",
    responses={**BAD_REQUEST, **NOT_FOUND},
)
async def import_model_export(
    export_id: str,
    player_user_id: int,
    db: AsyncSession = Depends(get_db),
    service: ModelExportService = Depends(get_model_export_service)
):
    """
    Return an export's serialized data to its owner

    An expired export is returned one last time with is_expired=true and
    then deleted.
    """
    imported = await service.import_export(db, export_id, player_user_id)
    return ImportedModelEnvelope(result=imported)


@router.put(
    "/{export_id}",
    response_model=ModelExportStatusEnvelope,
    operation_id="update-model-export",
    summary="Update a model export's serialized data",
    responses={**BAD_REQUEST, **NOT_FOUND},
)
async def update_model_export(
    export_id: str,
    request: ModelExportUpdate,
    db: AsyncSession = Depends(get_db),
    service: ModelExportService = Depends(get_model_export_service)
):
    """
    Replace an export's serialized data

    Updating an expired export deletes it, ignores the new data and returns
    the stored content with is_expired=true.
    """
    export = await service.update_export(db, export_id, request.serialized_data)
    return ModelExportStatusEnvelope(result=export)
