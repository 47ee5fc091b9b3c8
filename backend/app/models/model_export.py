from sqlalchemy import Column, String, BigInteger, Text, Index

from app.core.database import Base
from app.core.types import UTCDateTime, utcnow


class ModelExport(Base):
    """A player's serialized model, kept for a limited time"""
    __tablename__ = "model_exports"

    # 12-digit numeric string, supplied by the client or generated
    id = Column(String(12), primary_key=True)
    player_user_id = Column(BigInteger, nullable=False, index=True)
    serialized_data = Column(Text, nullable=False)

    # Set once on insert, never updated
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_model_exports_player_created", "player_user_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player_user_id": int(self.player_user_id),
            "serialized_data": self.serialized_data,
            "created_at": self.created_at,
        }

    def __repr__(self):
        return f"<ModelExport {self.id} player={self.player_user_id}>"
