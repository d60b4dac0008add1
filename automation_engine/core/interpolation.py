"""Variable interpolation for node configuration.

Supports ``{{ path }}`` substitution against the run context:

- ``trigger.*``             trigger input
- ``previous`` / ``previous.output`` / ``previous.<field>``
                            output of the node executed just before
- ``nodes.<id>.*``          any recorded node output (a leading ``output``
                            segment is ignored)
- ``flow.*``                current iteration frame (item, index, totalItems)
- ``vars.*``                run variables

Resolution never raises: unknown roots and missing paths render as "".
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Tuple

from automation_engine.core.context import ExecutionContext
from automation_engine.core.expr import get_path, get_path_parts

TEMPLATE_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
CONTEXT_ROOTS = frozenset({"trigger", "previous", "nodes", "flow", "vars"})


def canonical_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def to_display_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return canonical_json(value)


def split_reference(expr: str) -> Tuple[str, List[str]]:
    parts = [p for p in expr.strip().split(".") if p != ""]
    if not parts:
        return "", []
    return parts[0], parts[1:]


def resolve_reference(expr: str, context: ExecutionContext) -> Any:
    """Resolve a single reference (without braces) to its raw value, or None."""
    root, path = split_reference(expr)
    if root == "trigger":
        return get_path_parts(context.trigger_input, path)
    if root == "previous":
        if path and path[0] == "output":
            path = path[1:]
        return get_path_parts(context.previous_output, path)
    if root == "nodes":
        if not path:
            return None
        node_id, rest = path[0], path[1:]
        if not context.has_output(node_id):
            return None
        if rest and rest[0] == "output":
            rest = rest[1:]
        return get_path_parts(context.get_output(node_id), rest)
    if root == "flow":
        state = context.flow_state()
        if state is None:
            return None
        return get_path_parts(state, path)
    if root == "vars":
        return get_path_parts(context.variables, path)
    return None


def interpolate_string(template: str, context: ExecutionContext) -> str:
    if "{{" not in template:
        return template
    return TEMPLATE_RE.sub(
        lambda m: to_display_string(resolve_reference(m.group(1), context)), template
    )


def render_with_variables(
    template: str, variables: Dict[str, Any], context: ExecutionContext
) -> str:
    """Render ``template`` where bare ``{{key}}`` names come from ``variables``.

    References that start with a context root (trigger, previous, nodes,
    flow, vars) resolve against the run context as usual.
    """
    if not isinstance(template, str) or "{{" not in template:
        return template

    def _sub(match) -> str:
        ref = match.group(1)
        root, _ = split_reference(ref)
        if root in CONTEXT_ROOTS:
            return to_display_string(resolve_reference(ref, context))
        return to_display_string(get_path(variables or {}, ref))

    return TEMPLATE_RE.sub(_sub, template)


def _single_reference(value: str):
    match = TEMPLATE_RE.fullmatch(value.strip())
    return match.group(1) if match else None


def interpolate(value: Any, context: ExecutionContext, preserve_types: bool = False) -> Any:
    """Recursively interpolate every string inside ``value``.

    Non-string scalars pass through untouched. With ``preserve_types`` a
    string that is exactly one placeholder yields the raw resolved value
    instead of its string form.
    """
    if isinstance(value, str):
        if preserve_types:
            ref = _single_reference(value)
            if ref is not None:
                return resolve_reference(ref, context)
        return interpolate_string(value, context)
    if isinstance(value, dict):
        return {k: interpolate(v, context, preserve_types) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [interpolate(v, context, preserve_types) for v in value]
    return value


def has_placeholders(value: Any) -> bool:
    return isinstance(value, str) and TEMPLATE_RE.search(value) is not None


def extract_references(value: str) -> List[str]:
    if not isinstance(value, str):
        return []
    return [m.group(1).strip() for m in TEMPLATE_RE.finditer(value)]


def find_unresolved(config: Dict[str, Any], context: ExecutionContext) -> List[str]:
    """List ``key: reference`` pairs whose reference resolves to nothing."""
    missing: List[str] = []

    def _check(value: Any, where: str) -> None:
        if isinstance(value, str):
            for ref in extract_references(value):
                if split_reference(ref)[0] not in CONTEXT_ROOTS:
                    continue
                if resolve_reference(ref, context) is None:
                    missing.append(f"{where}: {ref}")
        elif isinstance(value, dict):
            for k, v in value.items():
                _check(v, f"{where}.{k}")
        elif isinstance(value, (list, tuple)):
            for i, v in enumerate(value):
                _check(v, f"{where}[{i}]")

    for key, value in (config or {}).items():
        _check(value, key)
    return missing


__all__ = [
    "TEMPLATE_RE",
    "CONTEXT_ROOTS",
    "canonical_json",
    "to_display_string",
    "split_reference",
    "resolve_reference",
    "interpolate_string",
    "render_with_variables",
    "interpolate",
    "has_placeholders",
    "extract_references",
    "find_unresolved",
]
