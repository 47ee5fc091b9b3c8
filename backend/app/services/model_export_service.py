"""
Model Export Service - Lifecycle of exported player models

Handles:
- Creation with a per-player quota
- Listing with a bulk sweep of expired exports
- One-shot import that evicts expired exports
- Payload updates that discard writes to expired exports

Expiry is lazy: an export older than the TTL is only deleted when one of
the operations above observes it. There is no background sweep.
"""

import re
import secrets
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    InvalidArgumentError,
    InvalidExportIdError,
    InvalidPlayerIdError,
    QuotaExceededError,
    DuplicateExportIdError,
    ExportNotFoundError,
)
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.model_export import ModelExport
from app.schemas.model_export import (
    MAX_PLAYER_USER_ID,
    ModelExportResponse,
    ModelExportStatusResponse,
    ImportedModelResponse,
)


EXPORT_ID_RE = re.compile(r"^[0-9]{12}$")
EXPORT_ID_MIN = 100_000_000_000
EXPORT_ID_MAX = 999_999_999_999


def generate_export_id() -> str:
    """Uniformly random 12-digit numeric id"""
    return str(EXPORT_ID_MIN + secrets.randbelow(EXPORT_ID_MAX - EXPORT_ID_MIN + 1))


def is_valid_export_id(export_id: str) -> bool:
    return isinstance(export_id, str) and EXPORT_ID_RE.match(export_id) is not None


def _check_player_id(player_user_id: int) -> None:
    # bool is an int subclass
    if isinstance(player_user_id, bool) or not isinstance(player_user_id, int):
        raise InvalidPlayerIdError()
    if not 0 < player_user_id <= MAX_PLAYER_USER_ID:
        raise InvalidPlayerIdError()


def _check_serialized_data(serialized_data: str) -> None:
    if not isinstance(serialized_data, str) or not serialized_data:
        raise InvalidArgumentError("serialized_data is required")


class ModelExportService:
    """Service for storing and expiring model exports"""

    def __init__(
        self,
        ttl: Optional[timedelta] = None,
        max_per_player: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = ttl if ttl is not None else settings.export_ttl
        self.max_per_player = max_per_player if max_per_player is not None else settings.MAX_EXPORTS_PER_PLAYER
        self.clock = clock

    def is_expired(self, created_at: datetime, now: datetime) -> bool:
        """An export is expired once it is strictly older than the TTL"""
        return now - created_at > self.ttl

    def _with_status(self, export: ModelExport, is_expired: bool) -> ModelExportStatusResponse:
        return ModelExportStatusResponse(**export.to_dict(), is_expired=is_expired)

    # ==================== QUERIES ====================

    async def count_player_exports(self, db: AsyncSession, player_user_id: int) -> int:
        """Number of stored exports for a player, expired or not"""
        result = await db.execute(
            select(func.count())
            .select_from(ModelExport)
            .where(ModelExport.player_user_id == player_user_id)
        )
        return result.scalar_one()

    async def get_export(
        self,
        db: AsyncSession,
        export_id: str,
        player_user_id: Optional[int] = None
    ) -> Optional[ModelExport]:
        """Get export by id, optionally restricted to its owner"""
        query = select(ModelExport).where(ModelExport.id == export_id)
        if player_user_id is not None:
            query = query.where(ModelExport.player_user_id == player_user_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    # ==================== OPERATIONS ====================

    async def create_export(
        self,
        db: AsyncSession,
        player_user_id: int,
        serialized_data: str,
        export_id: Optional[str] = None
    ) -> ModelExportResponse:
        """
        Create a new export for a player

        Checks run in order: quota, id format, id uniqueness. The count and
        the insert share the session transaction; a concurrent creator can
        still slip past the count on backends without serialisable isolation.

        Raises:
            InvalidArgumentError: bad player id, empty payload or bad id
            QuotaExceededError: player already has max_per_player exports
            DuplicateExportIdError: id already taken (no retry for generated ids)
        """
        _check_player_id(player_user_id)
        _check_serialized_data(serialized_data)

        count = await self.count_player_exports(db, player_user_id)
        if count >= self.max_per_player:
            logger.info(
                f"Quota reached for player {player_user_id} ({count}/{self.max_per_player})",
                extra={"event_type": "model_export", "export_event": "quota_exceeded"}
            )
            raise QuotaExceededError(self.max_per_player)

        export_id = export_id or generate_export_id()
        if not is_valid_export_id(export_id):
            raise InvalidExportIdError()

        if await self.get_export(db, export_id) is not None:
            raise DuplicateExportIdError(export_id)

        export = ModelExport(
            id=export_id,
            player_user_id=player_user_id,
            serialized_data=serialized_data,
            created_at=self.clock(),
        )
        db.add(export)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with another creator for the same id
            await db.rollback()
            raise DuplicateExportIdError(export_id)

        logger.log_export_event("created", export.id, player_user_id)
        return ModelExportResponse.model_validate(export)

    async def list_player_exports(
        self,
        db: AsyncSession,
        player_user_id: int
    ) -> List[ModelExportStatusResponse]:
        """
        All exports of a player, newest first, each flagged is_expired

        Expired exports are deleted in a single statement but still appear in
        the returned list. One "now" is used for the whole batch.
        """
        _check_player_id(player_user_id)

        now = self.clock()
        result = await db.execute(
            select(ModelExport)
            .where(ModelExport.player_user_id == player_user_id)
            .order_by(ModelExport.created_at.desc(), ModelExport.id.desc())
        )
        exports = result.scalars().all()

        expired_ids: List[str] = []
        records: List[ModelExportStatusResponse] = []
        for export in exports:
            expired = self.is_expired(export.created_at, now)
            if expired:
                expired_ids.append(export.id)
            records.append(self._with_status(export, expired))

        if expired_ids:
            await db.execute(
                delete(ModelExport).where(ModelExport.id.in_(expired_ids))
            )
            await db.commit()
            logger.info(
                f"Swept {len(expired_ids)} expired exports for player {player_user_id}",
                extra={
                    "event_type": "model_export",
                    "export_event": "swept",
                    "expired_ids": expired_ids,
                }
            )

        return records

    async def import_export(
        self,
        db: AsyncSession,
        export_id: str,
        player_user_id: int
    ) -> ImportedModelResponse:
        """
        Hand back an export's payload to its owner

        An expired export is deleted before returning, but its payload is
        still returned this one time with is_expired=True.

        Raises:
            ExportNotFoundError: no export with this id owned by this player
        """
        _check_player_id(player_user_id)

        export = await self.get_export(db, export_id, player_user_id)
        if export is None:
            raise ExportNotFoundError("Model not found or doesn't belong to this player")

        expired = self.is_expired(export.created_at, self.clock())
        imported = ImportedModelResponse(
            id=export.id,
            serialized_data=export.serialized_data,
            is_expired=expired,
        )

        if expired:
            await db.delete(export)
            await db.commit()
            logger.log_export_event("expired on import", export_id, player_user_id)

        return imported

    async def update_export(
        self,
        db: AsyncSession,
        export_id: str,
        serialized_data: str
    ) -> ModelExportStatusResponse:
        """
        Replace an export's serialized data

        created_at is left untouched. If the export has already expired it is
        deleted instead, the new data is discarded and the stored content is
        returned with is_expired=True.

        Raises:
            InvalidArgumentError: empty payload
            ExportNotFoundError: no export with this id
        """
        _check_serialized_data(serialized_data)

        export = await self.get_export(db, export_id)
        if export is None:
            raise ExportNotFoundError()

        if self.is_expired(export.created_at, self.clock()):
            stale = self._with_status(export, True)
            await db.delete(export)
            await db.commit()
            logger.log_export_event("expired on update", export_id, stale.player_user_id)
            return stale

        export.serialized_data = serialized_data
        await db.commit()
        await db.refresh(export)

        logger.log_export_event("updated", export_id, export.player_user_id)
        return self._with_status(export, False)


# Singleton instance
model_export_service = ModelExportService()
