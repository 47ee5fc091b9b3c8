"""
Model Export Schemas - Request/Response models for the export store
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List
from datetime import datetime, timezone


EXPORT_ID_PATTERN = r"^[0-9]{12}$"

# Largest player id a signed 64-bit column holds
MAX_PLAYER_USER_ID = 2**63 - 1


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a trailing Z and microseconds"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# ============== Requests ==============

class ModelExportCreate(BaseModel):
    """Schema for creating a model export"""
    # Format is checked by the service, after the quota check
    id: Optional[str] = Field(
        None,
        description="12-digit numeric id; generated when omitted",
        examples=["100000000000"],
    )
    player_user_id: int = Field(
        ..., gt=0, le=MAX_PLAYER_USER_ID, strict=True, description="Owner of the export"
    )
    serialized_data: str = Field(..., min_length=1, description="Opaque serialized model")


class ModelExportUpdate(BaseModel):
    """Schema for replacing an export's serialized data"""
    serialized_data: str = Field(..., min_length=1, description="Opaque serialized model")


# ============== Responses ==============

class ModelExportResponse(BaseModel):
    """A stored model export"""
    id: str
    player_user_id: int
    serialized_data: str
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)

    class Config:
        from_attributes = True


class ModelExportStatusResponse(ModelExportResponse):
    """A model export with its expiry flag"""
    is_expired: bool


class ImportedModelResponse(BaseModel):
    """Payload handed back when a player imports an export"""
    id: str
    serialized_data: str
    is_expired: bool


# ============== Envelopes ==============

class ErrorDetail(BaseModel):
    code: int
    message: str


class ErrorResponse(BaseModel):
    """Failure envelope shared by every endpoint"""
    success: bool = False
    errors: List[ErrorDetail]


class ModelExportEnvelope(BaseModel):
    success: bool = True
    result: ModelExportResponse


class ModelExportStatusEnvelope(BaseModel):
    success: bool = True
    result: ModelExportStatusResponse


class ModelExportListEnvelope(BaseModel):
    success: bool = True
    result: List[ModelExportStatusResponse]


class ImportedModelEnvelope(BaseModel):
    success: bool = True
    result: ImportedModelResponse
