from .base import HTTPProviderAdapter, ProviderAdapter
from .email import EmailAdapter
from .factory import build_default_adapters
from .flow import FlowAdapter
from .google import GoogleAdapter
from .openai import OpenAIAdapter
from .transform import TransformAdapter
from .webhook import WebhookAdapter

__all__ = [
    "ProviderAdapter",
    "HTTPProviderAdapter",
    "EmailAdapter",
    "FlowAdapter",
    "GoogleAdapter",
    "OpenAIAdapter",
    "TransformAdapter",
    "WebhookAdapter",
    "build_default_adapters",
]
