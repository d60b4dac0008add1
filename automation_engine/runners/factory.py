"""Adapter factory mapping provider id to a concrete adapter."""

from __future__ import annotations

from typing import Dict, Optional

from automation_engine.config import Settings, get_settings
from automation_engine.core.resolver import (
    PROVIDER_EMAIL,
    PROVIDER_FLOW,
    PROVIDER_GOOGLE,
    PROVIDER_OPENAI,
    PROVIDER_TRANSFORM,
    PROVIDER_WEBHOOK,
)
from automation_engine.services.http_client import HTTPClient

from .base import ProviderAdapter
from .email import EmailAdapter
from .flow import FlowAdapter
from .google import GoogleAdapter, TokenProvider
from .openai import OpenAIAdapter
from .transform import TransformAdapter
from .webhook import WebhookAdapter


def build_default_adapters(
    settings: Optional[Settings] = None,
    http_client: Optional[HTTPClient] = None,
    token_provider: Optional[TokenProvider] = None,
) -> Dict[str, ProviderAdapter]:
    """One adapter per provider, all sharing a single injected HTTP client."""
    settings = settings or get_settings()
    http = http_client or HTTPClient(timeout=settings.http_timeout_seconds)
    timeout = settings.http_timeout_seconds

    if token_provider is None:
        from automation_engine.services.credentials import GoogleServiceAccountTokenProvider

        token_provider = GoogleServiceAccountTokenProvider(
            http, token_url=settings.google_token_url, timeout=timeout
        )

    return {
        PROVIDER_WEBHOOK: WebhookAdapter(http, timeout),
        PROVIDER_OPENAI: OpenAIAdapter(http, max(timeout, 60.0), base_url=settings.openai_base_url),
        PROVIDER_GOOGLE: GoogleAdapter(http, timeout, token_provider=token_provider),
        PROVIDER_EMAIL: EmailAdapter(
            http,
            timeout,
            base_url=settings.resend_base_url,
            default_from=settings.resend_from_email,
        ),
        PROVIDER_TRANSFORM: TransformAdapter(),
        PROVIDER_FLOW: FlowAdapter(),
    }


__all__ = ["build_default_adapters"]
