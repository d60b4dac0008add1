"""Email provider adapter (Resend transactional API)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.core.interpolation import render_with_variables
from automation_engine.models import CredentialBundle, CredentialType
from automation_engine.services.http_client import error_for_status

from .base import HTTPProviderAdapter, as_list

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"


class EmailAdapter(HTTPProviderAdapter):
    provider_id = "email"
    supported_operations = ("email.send", "email.sendTemplate")

    def __init__(
        self,
        http_client,
        timeout: float = 30.0,
        base_url: str = RESEND_API_URL,
        default_from: Optional[str] = None,
    ):
        super().__init__(http_client, timeout)
        self.base_url = base_url.rstrip("/")
        self.default_from = default_from

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        if credential.type != CredentialType.API_KEY or not credential.api_key:
            raise AdapterError("INVALID_CREDENTIALS", "Email requires API key credentials")

        if operation == "email.sendTemplate":
            template = config.get("template")
            if not template:
                raise AdapterError("VALIDATION_ERROR", "From, to, and template are required")
            variables = config.get("variables") if isinstance(config.get("variables"), dict) else {}
            html = render_with_variables(str(template), variables, context)
            config = {k: v for k, v in config.items() if k not in ("template", "text", "body")}
            config["html"] = html
        return self._send(config, credential.api_key, context)

    def _send(self, cfg: Dict[str, Any], api_key: str, context: ExecutionContext) -> Dict[str, Any]:
        sender = cfg.get("from") or self.default_from
        to = as_list(cfg.get("to"))
        text = cfg.get("text") or cfg.get("body")
        html = cfg.get("html")

        if not sender:
            raise AdapterError("VALIDATION_ERROR", "Sender (from) is required")
        if not to:
            raise AdapterError("VALIDATION_ERROR", "Email node requires a recipient (to)")
        if not text and not html:
            raise AdapterError("VALIDATION_ERROR", "Email body (text or html) is required")

        subject = cfg.get("subject") or "Workflow Notification"
        body: Dict[str, Any] = {"from": sender, "to": to, "subject": subject}
        if text:
            body["text"] = str(text)
        if html:
            body["html"] = str(html)
        for key, wire in (("cc", "cc"), ("bcc", "bcc"), ("replyTo", "reply_to")):
            values = as_list(cfg.get(key))
            if values:
                body[wire] = values
        if isinstance(cfg.get("headers"), dict) and cfg["headers"]:
            body["headers"] = cfg["headers"]
        if isinstance(cfg.get("tags"), list) and cfg["tags"]:
            body["tags"] = cfg["tags"]
        if isinstance(cfg.get("attachments"), list) and cfg["attachments"]:
            body["attachments"] = cfg["attachments"]

        logger.info(f"📧 Sending email to {len(to)} recipient(s)")
        resp = self.http.request(
            "POST",
            f"{self.base_url}/emails",
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json_body=body,
            timeout=self.effective_timeout(context, self.timeout),
        )
        err = error_for_status(resp)
        if err is not None:
            raise AdapterError(
                err.code,
                f"Email send failed: {err.message}",
                retryable=err.retryable,
                details=err.details,
            )

        message_id = resp.json.get("id") if isinstance(resp.json, dict) else None
        logger.info(f"✅ Email accepted: {message_id}")
        return {"success": True, "messageId": message_id, "to": to, "from": sender, "subject": subject}


__all__ = ["EmailAdapter", "RESEND_API_URL"]
