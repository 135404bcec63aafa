from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from shortlink_app.config import settings


class LinkCreate(BaseModel):
    """Allocation request.

    ``original_url`` is a plain string on purpose: pydantic's HttpUrl would
    normalize it (trailing slash, punycode), and the link must redirect to
    exactly what was submitted. The allocator does the URL validation.
    """
    original_url: str = Field(..., description="The original URL to be shortened")
    custom_code: Optional[str] = Field(
        None, description="Optional code, 1-10 letters, digits or '-'"
    )
    validity_minutes: Union[int, Literal["never"]] = Field(
        default_factory=lambda: settings.default_validity_minutes,
        description="Minutes until expiry (30, 60, 1440, 10080, 43200) or 'never'",
    )
    owner_id: str = Field(..., min_length=1, description="Opaque identity of the creator")


class LinkResponse(BaseModel):
    """Response schema built straight from the ShortLink record

    - from_attributes=True reads from the record's attributes
    - @computed_field adds the display URL
    """
    code: str
    original_url: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    clicks: int
    owner_id: str

    @computed_field
    @property
    def short_url(self) -> str:
        """Display URL: <base_url>/<code>"""
        return f"{settings.base_url.rstrip('/')}/{self.code}"

    model_config = ConfigDict(from_attributes=True)


class LinkStats(BaseModel):
    code: str
    clicks: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    expired: bool


class ErrorResponse(BaseModel):
    error: str
    detail: str
