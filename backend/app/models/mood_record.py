"""
PEACE - Mental Health Record Model
日々の気分記録（幸福度・活力・メモ・公開範囲）
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    String,
    Text,
    DateTime,
    ForeignKey,
    SmallInteger,
    Index,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, utc_now

if TYPE_CHECKING:
    from app.models.user import User

MIN_LEVEL = 1
MAX_LEVEL = 10


class RecordStatus(str, Enum):
    """記録の公開範囲"""

    PUBLIC = "public"
    PRIVATE = "private"


class MoodRecord(Base):
    """気分記録モデル"""

    __tablename__ = "mental_health_records"
    __table_args__ = (
        Index("ix_mental_health_records_user_created", "user_id", "created_at"),
        CheckConstraint(
            f"happy_level BETWEEN {MIN_LEVEL} AND {MAX_LEVEL}", name="happy_level_range"
        ),
        CheckConstraint(
            f"energy_level BETWEEN {MIN_LEVEL} AND {MAX_LEVEL}", name="energy_level_range"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    happy_level: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
    )
    energy_level: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(10),
        default=RecordStatus.PRIVATE.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="records",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<MoodRecord {self.id} user={self.user_id}>"
