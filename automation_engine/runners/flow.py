"""Flow node adapter: ITERATE, END_ITERATE, AGGREGATE, ROUTE, FILTER.

These operations only compute decisions and values. Looping and branch
pruning are carried out by the scheduler, which reads the iterator's items,
the active LoopFrame and ``OperationResult.branches``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from automation_engine.core.conditions import evaluate_condition
from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.core.expr import get_path
from automation_engine.core.interpolation import (
    TEMPLATE_RE,
    interpolate,
    interpolate_string,
    resolve_reference,
    to_display_string,
)
from automation_engine.models import CredentialBundle, OperationResult

from .base import ProviderAdapter, coerce_bool, coerce_int, load_json_value

AGGREGATION_MODES = ("array", "first", "last", "concat", "sum", "count")


def resolve_field(field: Any, context: ExecutionContext) -> Any:
    """Resolve a field reference.

    ``{{ ref }}`` resolves against the run context with its raw type; a
    string with embedded placeholders is rendered; a bare path is looked up
    in the previous node's output; non-strings are taken as-is.
    """
    if not isinstance(field, str):
        return field
    text = field.strip()
    match = TEMPLATE_RE.fullmatch(text)
    if match:
        return resolve_reference(match.group(1), context)
    if "{{" in text:
        return load_json_value(interpolate_string(text, context))
    if not text:
        return context.previous_output
    return get_path(context.previous_output, text)


class FlowAdapter(ProviderAdapter):
    provider_id = "flow"
    supported_operations = (
        "flow.iterate",
        "flow.endIterate",
        "flow.aggregate",
        "flow.route",
        "flow.filter",
    )
    requires_credentials = False

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        if operation == "flow.iterate":
            return self._iterate(config, context)
        if operation == "flow.endIterate":
            return self._end_iterate(config, context)
        if operation == "flow.aggregate":
            return self._aggregate(config, context)
        if operation == "flow.route":
            return self._route(config, context)
        return self._filter(config, context)

    def _iterate(self, cfg: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        array_path = cfg.get("arrayPath")
        if array_path is None or array_path == "":
            raise AdapterError("VALIDATION_ERROR", "Array path is required for iterator")
        items = resolve_field(array_path, context)
        if not isinstance(items, list):
            raise AdapterError(
                "VALIDATION_ERROR",
                f'Expected array at path "{array_path}", got {type(items).__name__}',
            )
        return {
            "items": items,
            "totalItems": len(items),
            "itemVariable": cfg.get("itemVariable") or "item",
            "indexVariable": cfg.get("indexVariable") or "index",
        }

    def _end_iterate(self, cfg: Dict[str, Any], context: ExecutionContext) -> Any:
        frame = context.current_frame
        if frame is None or not coerce_bool(cfg.get("collectResults"), True):
            return context.previous_output
        return list(frame.aggregated_results)

    def _aggregate(self, cfg: Dict[str, Any], context: ExecutionContext) -> Any:
        mode = cfg.get("aggregationMode") or "array"
        if mode not in AGGREGATION_MODES:
            raise AdapterError("VALIDATION_ERROR", f"Unsupported aggregation mode: {mode}")

        frame = context.current_frame
        if frame is not None:
            items = list(frame.aggregated_results)
        else:
            previous = load_json_value(context.previous_output)
            items = list(previous) if isinstance(previous, list) else [previous]

        target_field = cfg.get("targetField")
        if target_field:
            items = [get_path(item, str(target_field)) for item in items]
        max_items = coerce_int(cfg.get("maxItems"), None, "maxItems")
        if max_items:
            items = items[:max_items]

        group_by = cfg.get("groupByField")
        if group_by:
            groups: Dict[str, List[Any]] = {}
            for item in items:
                key = to_display_string(get_path(item, str(group_by))) or "undefined"
                groups.setdefault(key, []).append(item)
            return {key: aggregate_items(group, mode) for key, group in groups.items()}
        return aggregate_items(items, mode)

    def _route(self, cfg: Dict[str, Any], context: ExecutionContext) -> OperationResult:
        conditions = load_json_value(cfg.get("conditions")) or []
        if not isinstance(conditions, list):
            raise AdapterError("VALIDATION_ERROR", "Router conditions must be a list")

        matched: List[str] = []
        for condition in conditions:
            if not isinstance(condition, dict):
                continue
            field_value = resolve_field(condition.get("field", ""), context)
            compare = interpolate(condition.get("value"), context)
            target = condition.get("targetPath") or condition.get("id")
            if target and evaluate_condition(field_value, condition.get("operator", "equals"), compare):
                if target not in matched:
                    matched.append(str(target))
        if not matched:
            matched.append(str(cfg.get("defaultPath") or "default"))
        return OperationResult.ok(context.previous_output, branches=matched)

    def _filter(self, cfg: Dict[str, Any], context: ExecutionContext) -> OperationResult:
        field = cfg.get("filterField")
        operator = cfg.get("filterOperator") or "equals"
        compare = cfg.get("filterValue")
        field_value = resolve_field(field, context)

        if evaluate_condition(field_value, operator, compare):
            if coerce_bool(cfg.get("passThrough"), True):
                return OperationResult.ok(context.previous_output)
            return OperationResult.ok({"filtered": True, "originalValue": field_value})

        reason = f"Condition not met: {field} {operator} {to_display_string(compare)}".rstrip()
        return OperationResult.ok({"filtered": False, "reason": reason}, branches=[])


def aggregate_items(items: List[Any], mode: str) -> Any:
    if mode == "first":
        return items[0] if items else None
    if mode == "last":
        return items[-1] if items else None
    if mode == "concat":
        return "".join(to_display_string(item) for item in items)
    if mode == "sum":
        total = 0.0
        for item in items:
            try:
                total += float(item or 0)
            except (TypeError, ValueError):
                raise AdapterError("VALIDATION_ERROR", f"Cannot sum non-numeric value: {item!r}")
        return int(total) if total.is_integer() else total
    if mode == "count":
        return len(items)
    return items


__all__ = ["FlowAdapter", "aggregate_items", "resolve_field", "AGGREGATION_MODES"]
