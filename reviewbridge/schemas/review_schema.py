# reviewbridge/schemas/review_schema.py
from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
import uuid
from datetime import datetime

from reviewbridge.models.testimonial import Testimonial
from reviewbridge.timeutil import as_utc

class ImportOptions(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    cursor: Optional[str] = None
    min_rating: Optional[int] = Field(default=None, ge=1, le=5)
    review_ids: Optional[List[str]] = None  # only these reviews, as selected in a preview

class ImportRequest(ImportOptions):
    source_id: str = Field(min_length=1)

class NormalizedReview(BaseModel):
    external_id: str
    customer_name: str
    customer_avatar: Optional[str] = None
    text: str
    rating: int
    recommendation: Optional[str] = None
    date: Optional[datetime] = None

class PreviewResult(BaseModel):
    reviews: List[NormalizedReview]
    next_cursor: Optional[str] = None
    skipped: int = 0
    filtered: int = 0

@dataclass
class ImportResult:
    testimonials: List[Testimonial]
    imported: int
    skipped: int
    filtered: int
    next_cursor: Optional[str] = None

class TestimonialRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_name: str
    customer_company: str
    testimonial_text: str
    rating: int
    source: str
    status: str
    type: str
    customer_avatar: Optional[str]
    date: Optional[datetime]
    external_id: str
    created_at: datetime
    updated_at: datetime

    normalize_utc = field_validator("date", "created_at", "updated_at")(as_utc)

class ImportResponse(BaseModel):
    imported: int
    skipped: int
    filtered: int
    next_cursor: Optional[str] = None
    testimonials: List[TestimonialRead]
