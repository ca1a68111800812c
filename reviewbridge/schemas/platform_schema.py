# reviewbridge/schemas/platform_schema.py
from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional
import uuid
from datetime import datetime

from reviewbridge.models.linked_account import LinkedAccount
from reviewbridge.timeutil import as_utc

@dataclass
class LinkResult:
    provider: str
    name: Optional[str]
    email: Optional[str]
    account: LinkedAccount

class LinkedAccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    provider: str
    provider_user_id: str
    user_name: Optional[str]
    user_email: Optional[str]
    page_id: Optional[str] = None
    has_page_token: bool = False
    token_expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    normalize_utc = field_validator("token_expires_at", "created_at", "updated_at")(as_utc)

    @classmethod
    def from_account(cls, account: LinkedAccount) -> "LinkedAccountRead":
        read = cls.model_validate(account)
        read.has_page_token = bool(account.page_token_enc)
        return read

class ConnectStart(BaseModel):
    auth_url: str

class SourceRead(BaseModel):
    id: str
    name: Optional[str] = None
    picture_url: Optional[str] = None
