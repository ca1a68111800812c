# reviewbridge/models/testimonial.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
import uuid
from sqlalchemy import DateTime, UniqueConstraint

from reviewbridge.timeutil import utcnow

STATUS_PENDING = "Pending"
TYPE_TEXT = "text"


class Testimonial(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "source", "external_id", name="uq_testimonial_user_source_external"),
    )

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    customer_name: str
    customer_company: str = Field(default="")
    testimonial_text: str
    rating: int
    source: str  # Google, Facebook
    status: str = Field(default=STATUS_PENDING)
    type: str = Field(default=TYPE_TEXT)
    customer_avatar: Optional[str] = Field(default=None)
    date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    external_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
