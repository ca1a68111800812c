# reviewbridge/providers/schemas.py
"""
Provider payload schemas.

Raw Google/Facebook responses are validated into the per-provider models
below at the HTTP boundary, then converted into the provider-neutral
`TokenGrant`, `ProviderProfile`, `SourceAccount` and `SourceReview`.
"""
import re
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reviewbridge.timeutil import as_utc

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")

_GOOGLE_STARS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- provider-neutral ---

class TokenGrant(_Payload):
    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


class ProviderProfile(_Payload):
    id: str = Field(min_length=1)
    email: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if isinstance(value, int) else value


class PageGrant(BaseModel):
    """Durable token of one managed page."""
    page_id: str
    access_token: str


class SourceAccount(BaseModel):
    id: str
    name: Optional[str] = None
    picture_url: Optional[str] = None


class SourceReview(BaseModel):
    """
    One review as delivered by a provider, before rating normalization.
    Exactly one of `rating` / `recommendation` is usually present.
    """
    external_id: str = Field(min_length=1)
    reviewer_name: str = Field(min_length=1)
    reviewer_avatar: Optional[str] = None
    text: Optional[str] = None
    rating: Optional[int] = None
    recommendation: Optional[Literal["positive", "negative"]] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value):
        return as_utc(value)


class ReviewPage(BaseModel):
    reviews: List[SourceReview] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    invalid: int = 0


# --- google ---

class GoogleReviewer(_Payload):
    displayName: Optional[str] = None
    profilePhotoUrl: Optional[str] = None


class GoogleReview(_Payload):
    reviewId: str
    reviewer: GoogleReviewer = Field(default_factory=GoogleReviewer)
    starRating: Optional[int] = None
    comment: Optional[str] = None
    createTime: Optional[datetime] = None

    @field_validator("starRating", mode="before")
    @classmethod
    def parse_star_rating(cls, value):
        # the API reports an enum name, older clients a number
        if isinstance(value, str) and not value.isdigit():
            return _GOOGLE_STARS.get(value.upper())
        return value

    def to_source_review(self) -> SourceReview:
        return SourceReview(
            external_id=self.reviewId,
            reviewer_name=self.reviewer.displayName or "",
            reviewer_avatar=self.reviewer.profilePhotoUrl,
            text=self.comment,
            rating=self.starRating,
            created_at=self.createTime,
        )


class GoogleReviewsResponse(_Payload):
    reviews: List[dict] = Field(default_factory=list)
    nextPageToken: Optional[str] = None


class GoogleAccount(_Payload):
    name: str
    accountName: Optional[str] = None


class GoogleAccountsResponse(_Payload):
    accounts: List[GoogleAccount] = Field(default_factory=list)


class GoogleLocation(_Payload):
    name: str
    title: Optional[str] = None


class GoogleLocationsResponse(_Payload):
    locations: List[GoogleLocation] = Field(default_factory=list)


# --- facebook ---

class FacebookPictureData(_Payload):
    url: Optional[str] = None


class FacebookPicture(_Payload):
    data: FacebookPictureData = Field(default_factory=FacebookPictureData)


class FacebookPage(_Payload):
    id: str
    name: Optional[str] = None
    access_token: Optional[str] = None
    picture: Optional[FacebookPicture] = None


class FacebookPageList(_Payload):
    data: List[FacebookPage] = Field(default_factory=list)


class FacebookReviewer(_Payload):
    id: Optional[str] = None
    name: Optional[str] = None
    profile_picture: Optional[str] = None
    picture: Optional[Union[FacebookPicture, str]] = None

    @property
    def avatar_url(self) -> Optional[str]:
        if self.profile_picture:
            return self.profile_picture
        if isinstance(self.picture, FacebookPicture):
            return self.picture.data.url
        return self.picture


class FacebookReview(_Payload):
    id: str
    reviewer: FacebookReviewer = Field(default_factory=FacebookReviewer)
    rating: Optional[int] = None
    recommendation_type: Optional[Literal["positive", "negative"]] = None
    review_text: Optional[str] = None
    created_time: Optional[datetime] = None

    @field_validator("created_time", mode="before")
    @classmethod
    def expand_offset(cls, value):
        # Graph timestamps use +0000
        if isinstance(value, str):
            return _COMPACT_OFFSET.sub(r"\1:\2", value)
        return value

    def to_source_review(self) -> SourceReview:
        return SourceReview(
            external_id=self.id,
            reviewer_name=self.reviewer.name or "",
            reviewer_avatar=self.reviewer.avatar_url,
            text=self.review_text,
            rating=self.rating,
            recommendation=self.recommendation_type,
            created_at=self.created_time,
        )


class FacebookCursors(_Payload):
    before: Optional[str] = None
    after: Optional[str] = None


class FacebookPaging(_Payload):
    cursors: FacebookCursors = Field(default_factory=FacebookCursors)
    next: Optional[str] = None


class FacebookRatingsResponse(_Payload):
    data: List[dict] = Field(default_factory=list)
    paging: Optional[FacebookPaging] = None
