"""Transform provider: pure data reshaping, no I/O.

Inputs are never mutated; every operation builds a fresh value.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional

from automation_engine.core.conditions import evaluate_condition
from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.core.expr import get_path
from automation_engine.core.interpolation import render_with_variables
from automation_engine.models import CredentialBundle

from .base import ProviderAdapter, as_list, coerce_bool, load_json_value


def _require_array(value: Any) -> List[Any]:
    value = load_json_value(value)
    if not isinstance(value, list):
        raise AdapterError("VALIDATION_ERROR", "Array is required")
    return value


class TransformAdapter(ProviderAdapter):
    provider_id = "transform"
    supported_operations = (
        "json.parse",
        "json.stringify",
        "text.template",
        "array.filter",
        "array.map",
    )
    requires_credentials = False

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        cfg = copy.deepcopy(config)
        if operation == "json.parse":
            return self._json_parse(cfg)
        if operation == "json.stringify":
            return self._json_stringify(cfg)
        if operation == "text.template":
            return self._text_template(cfg, context)
        if operation == "array.filter":
            return self._array_filter(cfg)
        return self._array_map(cfg)

    def _json_parse(self, cfg: Dict[str, Any]) -> Any:
        data = cfg.get("data")
        if data is None or data == "":
            raise AdapterError("VALIDATION_ERROR", "Data is required for JSON parse")
        if isinstance(data, str):
            try:
                parsed = json.loads(data)
            except ValueError as e:
                raise AdapterError("PARSE_ERROR", f"Failed to parse JSON: {e}") from e
        else:
            parsed = data
        path = cfg.get("path")
        return get_path(parsed, str(path)) if path else parsed

    def _json_stringify(self, cfg: Dict[str, Any]) -> str:
        data = load_json_value(cfg.get("data"))
        if coerce_bool(cfg.get("pretty")):
            return json.dumps(data, indent=2, ensure_ascii=False, default=str)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=str)

    def _text_template(self, cfg: Dict[str, Any], context: ExecutionContext) -> str:
        template = cfg.get("template")
        if not template:
            raise AdapterError("VALIDATION_ERROR", "Template is required")
        variables = load_json_value(cfg.get("variables"))
        scope = dict(variables) if isinstance(variables, dict) else {}
        return render_with_variables(str(template), scope, context)

    def _array_filter(self, cfg: Dict[str, Any]) -> List[Any]:
        items = _require_array(cfg.get("array"))
        field = str(cfg.get("field") or "")
        operator = cfg.get("operator") or "equals"
        value = cfg.get("value")
        return [
            copy.deepcopy(item)
            for item in items
            if evaluate_condition(get_path(item, field) if field else item, operator, value)
        ]

    def _array_map(self, cfg: Dict[str, Any]) -> List[Any]:
        items = _require_array(cfg.get("array"))
        fields = as_list(load_json_value(cfg.get("fields")))
        rename = load_json_value(cfg.get("transform"))
        if fields:
            return [{str(f): copy.deepcopy(get_path(item, str(f))) for f in fields} for item in items]
        if isinstance(rename, dict) and rename:
            return [
                {str(new): copy.deepcopy(get_path(item, str(old))) for old, new in rename.items()}
                for item in items
            ]
        field = cfg.get("field")
        if field:
            return [copy.deepcopy(get_path(item, str(field))) for item in items]
        return copy.deepcopy(items)


__all__ = ["TransformAdapter", "load_json_value"]
