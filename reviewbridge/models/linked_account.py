# reviewbridge/models/linked_account.py
from enum import Enum
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
import uuid
from sqlalchemy import DateTime, String, UniqueConstraint

from reviewbridge.timeutil import utcnow


class Provider(str, Enum):
    google = "google"
    facebook = "facebook"


class LinkedAccount(SQLModel, table=True):
    """
    One stored credential set per (user, provider). Tokens are Fernet-encrypted.
    """
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_linkedaccount_user_provider"),)

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    provider: str = Field(sa_column=Column(String, index=True, nullable=False))
    provider_user_id: str = Field(sa_column=Column(String, nullable=False))
    access_token_enc: str
    refresh_token_enc: Optional[str] = None
    # durable page-scoped token (facebook), valid for page_id only
    page_id: Optional[str] = None
    page_token_enc: Optional[str] = None
    token_expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    scope: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
