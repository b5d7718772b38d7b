"""Account models - local mirror of identity-provider users."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.models.task import WireModel


class Identity(BaseModel):
    """Claims of a verified access token."""
    account_id: str = Field(..., min_length=1, description="Identity provider user ID")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    def has_profile(self) -> bool:
        return any((self.email, self.first_name, self.last_name, self.profile_image_url))

    def to_account_record(self) -> dict[str, Any]:
        """Columns written when the account mirror is upserted."""
        return {
            "id": self.account_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_image_url": self.profile_image_url,
        }


class Account(WireModel):
    """Account record. Tasks reference it by `id` and cascade on delete."""
    id: str = Field(..., description="Account ID (identity provider user ID)")
    email: Optional[str] = Field(None, description="Email address")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
