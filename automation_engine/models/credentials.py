"""Credential bundles handed to the engine by the host environment."""

import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialType(str, Enum):
    API_KEY = "api_key"
    OAUTH2 = "oauth2"
    SERVICE_ACCOUNT = "service_account"


class CredentialBundle(BaseModel):
    """Pre-resolved secret bundle for one provider.

    Opaque to the scheduler; only the adapter for the matching provider
    interprets its fields.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    type: CredentialType = Field(..., description="Credential kind")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    expires_at: Optional[float] = Field(
        default=None, alias="expiresAt", description="Expiry as unix seconds"
    )
    scope: List[str] = Field(default_factory=list)
    client_email: Optional[str] = Field(default=None, alias="clientEmail")
    private_key: Optional[str] = Field(default=None, alias="privateKey")

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self.expires_at

    @classmethod
    def from_api_key(cls, api_key: str) -> "CredentialBundle":
        return cls(type=CredentialType.API_KEY, api_key=api_key)

    @classmethod
    def from_access_token(
        cls, access_token: str, expires_at: Optional[float] = None
    ) -> "CredentialBundle":
        return cls(type=CredentialType.OAUTH2, access_token=access_token, expires_at=expires_at)


__all__ = ["CredentialType", "CredentialBundle"]
