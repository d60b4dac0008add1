"""Base adapter type for automation_engine providers."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.models import CredentialBundle, OperationMetadata, OperationResult, utc_now_iso

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """One implementation per provider.

    ``execute`` is the only public entry point and never raises: missing or
    expired credentials, unsupported operations, upstream failures and
    unexpected exceptions all come back as a failed OperationResult.
    """

    provider_id: str = ""
    supported_operations: Tuple[str, ...] = ()
    requires_credentials: bool = True

    def execute(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> OperationResult:
        started_at = utc_now_iso()
        t0 = time.monotonic()

        def _meta(**extra) -> OperationMetadata:
            return OperationMetadata(
                started_at=started_at,
                finished_at=utc_now_iso(),
                duration_ms=int((time.monotonic() - t0) * 1000),
                extra=extra,
            )

        if operation not in self.supported_operations:
            return OperationResult.fail(
                f"Unsupported operation for provider {self.provider_id}: {operation}",
                code="UNSUPPORTED_OPERATION",
                provider=self.provider_id,
                operation=operation,
                metadata=_meta(),
            )

        if self.requires_credentials:
            if credential is None:
                return OperationResult.fail(
                    f"No credentials found for provider: {self.provider_id}",
                    code="MISSING_CREDENTIALS",
                    provider=self.provider_id,
                    operation=operation,
                    metadata=_meta(),
                )
            if credential.is_expired():
                return OperationResult.fail(
                    f"Credentials for provider {self.provider_id} have expired",
                    code="EXPIRED_CREDENTIALS",
                    provider=self.provider_id,
                    operation=operation,
                    metadata=_meta(),
                )

        try:
            outcome = self.handle_operation(operation, config, credential, context)
        except AdapterError as e:
            logger.warning(f"❌ {self.provider_id}:{operation} failed [{e.code}]: {e.message}")
            return OperationResult.fail(
                e.message,
                code=e.code,
                provider=self.provider_id,
                operation=operation,
                retryable=e.retryable,
                details=e.details,
                metadata=_meta(),
            )
        except Exception as e:
            logger.exception(f"💥 {self.provider_id}:{operation} raised unexpectedly")
            return OperationResult.fail(
                str(e) or e.__class__.__name__,
                code="INTERNAL_ERROR",
                provider=self.provider_id,
                operation=operation,
                metadata=_meta(),
            )

        if isinstance(outcome, OperationResult):
            return outcome.model_copy(update={"metadata": _meta(**outcome.metadata.extra)})
        return OperationResult.ok(outcome, metadata=_meta())

    @abstractmethod
    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        """Run ``operation`` and return its output (or a full OperationResult).

        Raise AdapterError for expected failures.
        """
        raise NotImplementedError

    @staticmethod
    def effective_timeout(context: ExecutionContext, configured: float) -> float:
        remaining = context.remaining_seconds()
        if remaining is None:
            return configured
        return max(0.001, min(configured, remaining))


class HTTPProviderAdapter(ProviderAdapter):
    """Adapter backed by an injected HTTPClient."""

    def __init__(self, http_client, timeout: float = 30.0):
        self.http = http_client
        self.timeout = timeout


# Interpolated config values arrive as strings; coerce them at the edge.


def coerce_int(value: Any, default: Optional[int] = None, name: str = "value") -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError) as e:
        raise AdapterError("VALIDATION_ERROR", f"{name} must be a number") from e


def coerce_float(
    value: Any, default: Optional[float] = None, name: str = "value"
) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise AdapterError("VALIDATION_ERROR", f"{name} must be a number") from e


def coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def load_json_value(value: Any) -> Any:
    """Interpolated structures arrive as canonical JSON strings; decode them."""
    if isinstance(value, str):
        text = value.strip()
        if text[:1] in ("[", "{"):
            try:
                return json.loads(text)
            except ValueError:
                return value
    return value


def as_list(value: Any) -> list:
    """Accept a list, a JSON array string, a comma separated string, or a single value."""
    if value is None or value == "":
        return []
    if isinstance(value, str) and value.lstrip().startswith("["):
        value = load_json_value(value)
    if isinstance(value, (list, tuple)):
        return [v for v in value if v not in (None, "")]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


__all__ = [
    "ProviderAdapter",
    "HTTPProviderAdapter",
    "coerce_int",
    "coerce_float",
    "coerce_bool",
    "as_list",
    "load_json_value",
]
