"""Host-side credential lookup.

The engine never fetches or refreshes credentials itself. These helpers
live on the host side: ``EnvCredentialStore`` turns service settings into
CredentialBundles, and ``GoogleServiceAccountTokenProvider`` exchanges a
service-account key for a short-lived access token.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Dict, Optional, Sequence, Tuple

import jwt
from cryptography.hazmat.primitives import serialization

from automation_engine.config import Settings, get_settings
from automation_engine.core.exceptions import AdapterError, CredentialError
from automation_engine.core.resolver import (
    LOCAL_PROVIDERS,
    PROVIDER_EMAIL,
    PROVIDER_GOOGLE,
    PROVIDER_OPENAI,
)
from automation_engine.models import CredentialBundle, CredentialType
from automation_engine.services.http_client import HTTPClient, error_for_status

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600
# Cached tokens are refreshed this long before they expire
EXPIRY_MARGIN_SECONDS = 300


class EnvCredentialStore:
    """CredentialLookup backed by Settings.

    Usable directly as the ``credentials`` argument of ExecutionEngine.run.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def __call__(self, provider: str) -> Optional[CredentialBundle]:
        return self.get(provider)

    def get(self, provider: str) -> Optional[CredentialBundle]:
        if provider in LOCAL_PROVIDERS:
            return None
        if provider == PROVIDER_OPENAI and self.settings.openai_api_key:
            return CredentialBundle.from_api_key(self.settings.openai_api_key)
        if provider == PROVIDER_EMAIL and self.settings.resend_api_key:
            return CredentialBundle.from_api_key(self.settings.resend_api_key)
        if provider == PROVIDER_GOOGLE and self.settings.google_service_account_json:
            return service_account_bundle(self.settings.google_service_account_json)
        return None


def service_account_bundle(raw: str) -> CredentialBundle:
    """Build a service-account bundle from a Google key file document."""
    try:
        info = json.loads(raw)
    except ValueError as e:
        raise CredentialError(f"Invalid Google service account JSON: {e}") from e
    if not isinstance(info, dict):
        raise CredentialError("Invalid Google service account JSON: expected an object")
    client_email = info.get("client_email")
    private_key = info.get("private_key")
    if not client_email or not private_key:
        raise CredentialError("Google service account JSON must contain client_email and private_key")
    return CredentialBundle(
        type=CredentialType.SERVICE_ACCOUNT,
        client_email=client_email,
        private_key=private_key,
    )


class GoogleServiceAccountTokenProvider:
    """Signs an RS256 assertion and exchanges it for an access token.

    Tokens are cached per (client email, scopes) until five minutes before
    they expire.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        token_url: str = "https://oauth2.googleapis.com/token",
        timeout: float = 30.0,
    ):
        self.http = http_client
        self.token_url = token_url
        self.timeout = timeout
        self._tokens: Dict[Tuple[str, Tuple[str, ...]], Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def __call__(self, credential: CredentialBundle, scopes: Sequence[str]) -> str:
        key = (credential.client_email or "", tuple(scopes))
        with self._lock:
            cached = self._tokens.get(key)
            if cached and cached[1] - EXPIRY_MARGIN_SECONDS > time.time():
                return cached[0]

        token, expires_at = self._exchange(credential, tuple(scopes))
        with self._lock:
            self._tokens[key] = (token, expires_at)
        return token

    def build_assertion(self, credential: CredentialBundle, scopes: Sequence[str]) -> str:
        if not credential.client_email or not credential.private_key:
            raise AdapterError(
                "INVALID_CREDENTIALS", "Service account credentials need clientEmail and privateKey"
            )
        try:
            private_key = serialization.load_pem_private_key(
                credential.private_key.encode("utf-8"), password=None
            )
        except (ValueError, TypeError) as e:
            raise AdapterError("INVALID_CREDENTIALS", f"Failed to parse private key: {e}") from e

        now = int(time.time())
        payload = {
            "iss": credential.client_email,
            "scope": " ".join(scopes),
            "aud": self.token_url,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        return jwt.encode(payload, private_key, algorithm="RS256")

    def _exchange(self, credential: CredentialBundle, scopes: Tuple[str, ...]) -> Tuple[str, float]:
        assertion = self.build_assertion(credential, scopes)
        resp = self.http.request(
            "POST",
            self.token_url,
            data_body={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            timeout=self.timeout,
        )
        err = error_for_status(resp)
        if err is not None:
            logger.warning(f"🔑 Service account token exchange failed: {err.message}")
            raise err

        body = resp.json if isinstance(resp.json, dict) else {}
        token = body.get("access_token")
        if not token:
            raise AdapterError("INVALID_CREDENTIALS", "Token endpoint returned no access_token")
        expires_in = body.get("expires_in") or TOKEN_LIFETIME_SECONDS
        logger.info(f"🔑 Obtained Google access token for {credential.client_email}")
        return token, time.time() + float(expires_in)


__all__ = [
    "EnvCredentialStore",
    "GoogleServiceAccountTokenProvider",
    "service_account_bundle",
    "EXPIRY_MARGIN_SECONDS",
]
