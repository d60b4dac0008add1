"""Node type resolver.

Maps the UI-facing node ``type`` (plus an optional ``operation`` and, for
flow nodes, ``data.mode``) to a provider id and canonical operation id.
An unknown combination resolves to ``None``; the scheduler reports it as a
failed node instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

PROVIDER_WEBHOOK = "webhook"
PROVIDER_OPENAI = "openai"
PROVIDER_GOOGLE = "google"
PROVIDER_EMAIL = "email"
PROVIDER_TRANSFORM = "transform"
PROVIDER_FLOW = "flow"

LOCAL_PROVIDERS = frozenset({PROVIDER_WEBHOOK, PROVIDER_TRANSFORM, PROVIDER_FLOW})

PROVIDER_OPERATIONS: Dict[str, Tuple[str, ...]] = {
    PROVIDER_WEBHOOK: ("webhook.trigger", "webhook.request"),
    PROVIDER_OPENAI: ("chat.completion", "chat.stream", "embeddings.create", "images.generate"),
    PROVIDER_GOOGLE: (
        "gmail.send",
        "gmail.read",
        "gmail.list",
        "sheets.appendRow",
        "sheets.updateRow",
        "sheets.findRow",
        "sheets.getRows",
        "sheets.deleteRow",
    ),
    PROVIDER_EMAIL: ("email.send", "email.sendTemplate"),
    PROVIDER_TRANSFORM: (
        "json.parse",
        "json.stringify",
        "text.template",
        "array.filter",
        "array.map",
    ),
    PROVIDER_FLOW: (
        "flow.iterate",
        "flow.endIterate",
        "flow.aggregate",
        "flow.route",
        "flow.filter",
    ),
}

FLOW_MODE_OPERATIONS = {
    "iterator": "flow.iterate",
    "endIterator": "flow.endIterate",
    "aggregator": "flow.aggregate",
    "router": "flow.route",
    "filter": "flow.filter",
}

# Operation ids saved by the editor that differ from the canonical ones
OPERATION_ALIASES: Dict[str, str] = {
    "transform.jsonParse": "json.parse",
    "transform.jsonStringify": "json.stringify",
    "transform.textTemplate": "text.template",
    "transform.arrayFilter": "array.filter",
    "transform.arrayMap": "array.map",
    "gmail.search": "gmail.list",
}

# Config keys that flow operations resolve themselves against the context
RAW_FIELDS: Dict[str, Tuple[str, ...]] = {
    "flow.iterate": ("arrayPath",),
    "flow.filter": ("filterField",),
    "flow.route": ("conditions",),
    "flow.aggregate": ("targetField", "groupByField"),
    "text.template": ("template",),
    "email.sendTemplate": ("template",),
}

# Config keys that must be present and non-empty before an operation runs
REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "webhook.request": ("url",),
    "gmail.send": ("to",),
    "gmail.read": ("messageId",),
    "sheets.appendRow": ("spreadsheetId",),
    "sheets.updateRow": ("spreadsheetId",),
    "sheets.findRow": ("spreadsheetId", "column", "value"),
    "sheets.getRows": ("spreadsheetId",),
    "sheets.deleteRow": ("spreadsheetId",),
    "email.send": ("to",),
    "email.sendTemplate": ("to", "template"),
    "flow.iterate": ("arrayPath",),
    "flow.filter": ("filterField",),
    "images.generate": ("prompt",),
    "embeddings.create": ("input",),
}


@dataclass(frozen=True)
class NodeResolution:
    provider: str
    operation: str
    raw_fields: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def requires_credentials(self) -> bool:
        return self.provider not in LOCAL_PROVIDERS

    def missing_fields(self, config: Mapping[str, Any]) -> Tuple[str, ...]:
        missing = []
        for key in REQUIRED_FIELDS.get(self.operation, ()):
            value = config.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(key)
        return tuple(missing)


_NODE_TYPE_REGISTRY: Dict[str, Tuple[str, str]] = {
    # Triggers
    "trigger": (PROVIDER_WEBHOOK, "webhook.trigger"),
    "webhook": (PROVIDER_WEBHOOK, "webhook.trigger"),
    # HTTP
    "httpRequest": (PROVIDER_WEBHOOK, "webhook.request"),
    # OpenAI
    "openai": (PROVIDER_OPENAI, "chat.completion"),
    "openaiChat": (PROVIDER_OPENAI, "chat.completion"),
    "openaiImage": (PROVIDER_OPENAI, "images.generate"),
    "openaiEmbedding": (PROVIDER_OPENAI, "embeddings.create"),
    # Google
    "gmail": (PROVIDER_GOOGLE, "gmail.send"),
    "gmailSend": (PROVIDER_GOOGLE, "gmail.send"),
    "gmailRead": (PROVIDER_GOOGLE, "gmail.read"),
    "gmailList": (PROVIDER_GOOGLE, "gmail.list"),
    "sheets": (PROVIDER_GOOGLE, "sheets.appendRow"),
    "googleSheets": (PROVIDER_GOOGLE, "sheets.appendRow"),
    "sheetsAppend": (PROVIDER_GOOGLE, "sheets.appendRow"),
    "sheetsUpdate": (PROVIDER_GOOGLE, "sheets.updateRow"),
    "sheetsFind": (PROVIDER_GOOGLE, "sheets.findRow"),
    "sheetsGet": (PROVIDER_GOOGLE, "sheets.getRows"),
    "sheetsDelete": (PROVIDER_GOOGLE, "sheets.deleteRow"),
    # Email (Resend)
    "email": (PROVIDER_EMAIL, "email.send"),
    "emailSend": (PROVIDER_EMAIL, "email.send"),
    "emailTemplate": (PROVIDER_EMAIL, "email.sendTemplate"),
    # Transform
    "transform": (PROVIDER_TRANSFORM, "text.template"),
    "jsonParse": (PROVIDER_TRANSFORM, "json.parse"),
    "jsonStringify": (PROVIDER_TRANSFORM, "json.stringify"),
    "template": (PROVIDER_TRANSFORM, "text.template"),
    "filter": (PROVIDER_TRANSFORM, "array.filter"),
    "map": (PROVIDER_TRANSFORM, "array.map"),
    # Flow control
    "flow": (PROVIDER_FLOW, "flow.iterate"),
    "flowIterator": (PROVIDER_FLOW, "flow.iterate"),
    "flowEndIterator": (PROVIDER_FLOW, "flow.endIterate"),
    "flowAggregator": (PROVIDER_FLOW, "flow.aggregate"),
    "flowRouter": (PROVIDER_FLOW, "flow.route"),
    "flowFilter": (PROVIDER_FLOW, "flow.filter"),
}


def register_node_type(node_type: str, provider: str, operation: str) -> None:
    if operation not in PROVIDER_OPERATIONS.get(provider, ()):
        raise ValueError(f"Provider {provider} does not support operation {operation}")
    _NODE_TYPE_REGISTRY[node_type] = (provider, operation)


def known_node_types() -> Tuple[str, ...]:
    return tuple(_NODE_TYPE_REGISTRY)


def _qualify(provider: str, operation: str) -> Optional[str]:
    supported = PROVIDER_OPERATIONS.get(provider, ())
    operation = OPERATION_ALIASES.get(operation, operation)
    if operation in supported:
        return operation
    for candidate in supported:
        if candidate.split(".", 1)[-1] == operation:
            return candidate
    return None


def resolve(
    node_type: str,
    operation: Optional[str] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> Optional[NodeResolution]:
    mapping = _NODE_TYPE_REGISTRY.get(node_type)
    if mapping is None:
        return None
    provider, canonical = mapping

    if provider == PROVIDER_FLOW and data and data.get("mode"):
        canonical = FLOW_MODE_OPERATIONS.get(str(data["mode"]))
        if canonical is None:
            return None
    elif operation:
        canonical = _qualify(provider, operation)
        if canonical is None:
            return None

    return NodeResolution(
        provider=provider,
        operation=canonical,
        raw_fields=RAW_FIELDS.get(canonical, ()),
    )


__all__ = [
    "PROVIDER_WEBHOOK",
    "PROVIDER_OPENAI",
    "PROVIDER_GOOGLE",
    "PROVIDER_EMAIL",
    "PROVIDER_TRANSFORM",
    "PROVIDER_FLOW",
    "LOCAL_PROVIDERS",
    "PROVIDER_OPERATIONS",
    "FLOW_MODE_OPERATIONS",
    "OPERATION_ALIASES",
    "NodeResolution",
    "register_node_type",
    "known_node_types",
    "resolve",
]
