"""OpenAI provider adapter: chat completions, embeddings and image generation."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.models import CredentialBundle
from automation_engine.services.http_client import error_for_status

from .base import HTTPProviderAdapter, as_list, coerce_float, coerce_int

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_IMAGE_MODEL = "dall-e-3"


class OpenAIAdapter(HTTPProviderAdapter):
    provider_id = "openai"
    supported_operations = ("chat.completion", "chat.stream", "embeddings.create", "images.generate")

    def __init__(self, http_client, timeout: float = 60.0, base_url: str = DEFAULT_BASE_URL):
        super().__init__(http_client, timeout)
        self.base_url = base_url.rstrip("/")

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        api_key = credential.api_key or credential.access_token
        if not api_key:
            raise AdapterError("MISSING_CREDENTIALS", "OpenAI credential has no API key")

        if operation in ("chat.completion", "chat.stream"):
            # served as a single non-streamed completion
            return self._chat_completion(config, api_key, context)
        if operation == "embeddings.create":
            return self._embeddings(config, api_key, context)
        return self._images(config, api_key, context)

    def _post(self, path: str, body: Dict[str, Any], api_key: str, context: ExecutionContext):
        resp = self.http.request(
            "POST",
            f"{self.base_url}{path}",
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json_body=body,
            timeout=self.effective_timeout(context, self.timeout),
        )
        err = error_for_status(resp)
        if err is not None:
            raise err
        if not isinstance(resp.json, dict):
            raise AdapterError("INVALID_RESPONSE", "OpenAI returned a non-JSON response")
        return resp.json

    def _build_messages(self, cfg: Dict[str, Any]) -> List[Dict[str, Any]]:
        messages = cfg.get("messages")
        if isinstance(messages, str) and messages.strip():
            try:
                messages = json.loads(messages)
            except ValueError as e:
                raise AdapterError("VALIDATION_ERROR", "messages must be a JSON array") from e
        if isinstance(messages, list) and messages:
            return messages

        prompt = str(cfg.get("prompt") or "").strip()
        if not prompt:
            raise AdapterError("VALIDATION_ERROR", "OpenAI node requires a prompt")
        built = []
        system_prompt = str(cfg.get("systemPrompt") or "").strip()
        if system_prompt:
            built.append({"role": "system", "content": system_prompt})
        built.append({"role": "user", "content": prompt})
        return built

    def _chat_completion(
        self, cfg: Dict[str, Any], api_key: str, context: ExecutionContext
    ) -> Dict[str, Any]:
        model = cfg.get("model") or DEFAULT_CHAT_MODEL
        body: Dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(cfg),
            "max_tokens": coerce_int(cfg.get("maxTokens"), 1000, "maxTokens"),
            "temperature": coerce_float(cfg.get("temperature"), 0.7, "temperature"),
        }
        optional = {
            "top_p": coerce_float(cfg.get("topP"), None, "topP"),
            "frequency_penalty": coerce_float(cfg.get("frequencyPenalty"), None, "frequencyPenalty"),
            "presence_penalty": coerce_float(cfg.get("presencePenalty"), None, "presencePenalty"),
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        stop = as_list(cfg.get("stop"))
        if stop:
            body["stop"] = stop
        if cfg.get("responseFormat") in ("json_object", "json"):
            body["response_format"] = {"type": "json_object"}

        logger.info(f"🤖 OpenAI chat completion with model {model}")
        data = self._post("/chat/completions", body, api_key, context)

        choices = data.get("choices") or []
        if not choices:
            raise AdapterError("INVALID_RESPONSE", "OpenAI response contained no choices")
        choice = choices[0] or {}
        message = choice.get("message") or {}
        content = message.get("content") or ""
        usage = data.get("usage") or {}
        logger.info(f"✅ OpenAI response generated: {len(content)} characters")
        return {
            "content": content,
            "role": message.get("role", "assistant"),
            "finishReason": choice.get("finish_reason"),
            "model": data.get("model", model),
            "usage": {
                "promptTokens": usage.get("prompt_tokens", 0),
                "completionTokens": usage.get("completion_tokens", 0),
                "totalTokens": usage.get("total_tokens", 0),
            },
        }

    def _embeddings(
        self, cfg: Dict[str, Any], api_key: str, context: ExecutionContext
    ) -> Dict[str, Any]:
        model = cfg.get("model") or DEFAULT_EMBEDDING_MODEL
        body: Dict[str, Any] = {"model": model, "input": cfg.get("input")}
        dimensions = coerce_int(cfg.get("dimensions"), None, "dimensions")
        if dimensions:
            body["dimensions"] = dimensions
        data = self._post("/embeddings", body, api_key, context)
        embeddings = [item.get("embedding") for item in data.get("data") or []]
        return {
            "embeddings": embeddings,
            "embedding": embeddings[0] if embeddings else None,
            "model": data.get("model", model),
            "usage": data.get("usage") or {},
        }

    def _images(self, cfg: Dict[str, Any], api_key: str, context: ExecutionContext) -> Dict[str, Any]:
        model = cfg.get("model") or DEFAULT_IMAGE_MODEL
        body: Dict[str, Any] = {
            "model": model,
            "prompt": cfg.get("prompt"),
            "n": coerce_int(cfg.get("n"), 1, "n"),
            "size": cfg.get("size") or "1024x1024",
        }
        for key in ("quality", "style"):
            if cfg.get(key):
                body[key] = cfg[key]
        data = self._post("/images/generations", body, api_key, context)
        images = [
            {"url": item.get("url"), "revisedPrompt": item.get("revised_prompt")}
            for item in data.get("data") or []
        ]
        return {"images": images, "url": images[0]["url"] if images else None, "model": model}


__all__ = ["OpenAIAdapter"]
