"""Webhook provider: trigger pass-through and generic HTTP requests."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.models import CredentialBundle, OperationMetadata, OperationResult, utc_now_iso
from automation_engine.services.http_client import error_for_status

from .base import HTTPProviderAdapter, coerce_float

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


class WebhookAdapter(HTTPProviderAdapter):
    provider_id = "webhook"
    supported_operations = ("webhook.trigger", "webhook.request")
    requires_credentials = False

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        if operation == "webhook.trigger":
            return OperationResult.ok(
                context.trigger_input,
                metadata=OperationMetadata(extra={"triggeredAt": utc_now_iso()}),
            )
        return self._request(config, context)

    def _request(self, cfg: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        url = str(cfg.get("url") or "").strip()
        if not url:
            raise AdapterError("VALIDATION_ERROR", "Missing URL")
        method = str(cfg.get("method") or "GET").upper()
        if method not in ALLOWED_METHODS:
            raise AdapterError("VALIDATION_ERROR", f"Unsupported HTTP method: {method}")

        headers = {k: str(v) for k, v in _as_dict(cfg.get("headers"), "headers").items()}
        params = _as_dict(cfg.get("queryParams"), "queryParams")
        timeout_ms = coerce_float(cfg.get("timeout"), name="timeout")
        timeout = timeout_ms / 1000.0 if timeout_ms is not None else self.timeout
        response_type = str(cfg.get("responseType") or "json").lower()

        json_body = None
        content = None
        body = cfg.get("body")
        if method not in ("GET", "HEAD") and body not in (None, ""):
            if isinstance(body, (dict, list)):
                json_body = body
            else:
                content = str(body)
                headers.setdefault("Content-Type", "text/plain")

        auth = None
        auth_type = str(cfg.get("authType") or "none").lower()
        if auth_type in ("bearer", "basic"):
            auth = {"type": auth_type, **_as_dict(cfg.get("authConfig"), "authConfig")}

        logger.info(f"🌐 {method} {url}")
        resp = self.http.request(
            method,
            url,
            headers=headers,
            params=params or None,
            json_body=json_body,
            content=content,
            auth=auth,
            timeout=self.effective_timeout(context, timeout),
        )
        err = error_for_status(resp)
        if err is not None:
            raise err

        data = resp.text if response_type == "text" or resp.json is None else resp.json
        return {
            "status": resp.status_code,
            "statusText": resp.reason_phrase,
            "headers": resp.headers,
            "data": data,
        }


def _as_dict(value: Any, name: str) -> Dict[str, Any]:
    if value in (None, ""):
        return {}
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError as e:
            raise AdapterError("VALIDATION_ERROR", f"Invalid JSON in {name}") from e
        if isinstance(parsed, dict):
            return parsed
    raise AdapterError("VALIDATION_ERROR", f"{name} must be an object")


__all__ = ["WebhookAdapter"]
