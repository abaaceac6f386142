"""
PEACE - User Model
ユーザー管理モデル
"""
import uuid
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import String, Boolean, DateTime, Text, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, utc_now

if TYPE_CHECKING:
    from app.models.mood_record import MoodRecord

AUTH_PROVIDER_LOCAL = "local"


class User(Base):
    """ユーザーモデル"""

    __tablename__ = "users"
    __table_args__ = (
        # 論理削除済みの行は一意性チェックの対象外
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index(
            "uq_users_username_active",
            "username",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    first_name: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    last_name: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    auth_provider: Mapped[str] = mapped_column(
        String(20),
        default=AUTH_PROVIDER_LOCAL,
        nullable=False,
    )
    provider_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
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
    records: Mapped[List["MoodRecord"]] = relationship(
        "MoodRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def can_login(self) -> bool:
        return self.is_active and not self.is_deleted

    def __repr__(self) -> str:
        return f"<User {self.email}>"
