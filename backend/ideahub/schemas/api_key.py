"""
IdeaHub Backend — API Key Schemas
==================================

What:  The read-only view of a key that the gateway works with after validation,
       and the one-time result of issuing a key.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class KeyRecord(BaseModel):
    """
    Outcome of CredentialStore.validate() for a key that exists.

    `is_valid` is computed by the store (active and not expired); the gateway
    only reads it.
    """

    key_id: uuid.UUID
    user_id: str
    permissions: List[str] = Field(default_factory=list)
    rate_limit_per_hour: int = Field(ge=1, le=10000)
    is_valid: bool = True

    def allows(self, capability: str) -> bool:
        """`admin` implies every other capability."""
        return capability in self.permissions or "admin" in self.permissions


class IssuedApiKey(BaseModel):
    """
    Returned exactly once when a key is issued.

    `api_key` is the raw secret. It is not persisted and cannot be retrieved again.
    """

    key_id: uuid.UUID
    user_id: str
    name: str
    api_key: str
    permissions: List[str]
    rate_limit_per_hour: int
    expires_at: Optional[datetime] = None
