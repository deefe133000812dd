from typing import Optional
from datetime import datetime, timezone
from pydantic import field_validator
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime


class ProfileBase(SQLModel):
    # Permanent pool, never touched by consolidation resets
    global_xp: int = Field(default=0)


class Profile(ProfileBase, table=True):
    """
    One row per user account; id equals the user id.
    """
    __tablename__ = "profiles"

    id: int = Field(primary_key=True)
    last_consolidated: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class ProfileState(ProfileBase):
    id: int
    last_consolidated: Optional[datetime] = None

    @field_validator("last_consolidated")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
