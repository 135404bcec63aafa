"""
Data models shared by every link store backend.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ShortLink(BaseModel):
    """
    The persisted short link record.

    Created once by the allocator; afterwards only ``clicks`` changes,
    and only through the store's atomic increment.
    """

    code: str = Field(..., description="Short code, primary key")
    original_url: str = Field(..., description="Redirect target, stored as submitted")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    expires_at: Optional[datetime] = Field(None, description="Expiry time (UTC); None never expires")
    clicks: int = Field(0, ge=0, description="Successful redirects")
    owner_id: str = Field(..., description="Opaque identity that created the link")

    def is_expired(self, now: datetime) -> bool:
        """Expiry is inclusive: a link is gone at exactly ``expires_at``."""
        return self.expires_at is not None and now >= self.expires_at

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "aZ3kQ9",
                "original_url": "https://example.com/some/long/path",
                "created_at": "2025-10-29T10:30:00Z",
                "expires_at": "2025-10-29T11:00:00Z",
                "clicks": 0,
                "owner_id": "anon-4f9a",
            }
        }
    }
