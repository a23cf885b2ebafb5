"""
Switchboard — User Pydantic Schemas
=====================================

What:  The readable form of a user record, plus the input models used to
       create and update one.
How:   UserRead is built from ORM attributes and serialized with camelCase
       keys (firstName, lastName, ...). Its `website` field goes through
       normalize_website() at serialization time only: the model instance
       and the database row keep whatever was stored.

Readable form example:
    stored website "example.com"
        → {"website": "https://example.com", ...}
    stored website "http://example.com"
        → {"website": "http://example.com", ...}
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

RECOGNIZED_SCHEMES = ("http://", "https://")


def normalize_website(url: Optional[str]) -> Optional[str]:
    """
    Read-time projection for the website field.

    Empty or missing values pass through untouched. Values that already
    start with http:// or https:// are returned as-is; anything else gets
    https:// prepended.
    """
    if not url:
        return url
    if url.startswith(RECOGNIZED_SCHEMES):
        return url
    return "https://" + url


class UserRead(BaseModel):
    """
    What:  Externally visible representation of a user.
    Who:   Returned by every UserService method.

    The password column is deliberately not part of this model, so the
    readable form never echoes it back even though the record stores it.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    created: datetime
    website: Optional[str] = None

    @field_serializer("website")
    def serialize_website(self, website: Optional[str]) -> Optional[str]:
        return normalize_website(website)


class UserCreate(BaseModel):
    """Fields a caller may supply for a new user. All optional; `created` defaults at insert."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    website: Optional[str] = None
    created: Optional[datetime] = Field(
        default=None,
        description="Leave unset to stamp the record with its insert time",
    )


class UserUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    website: Optional[str] = None
