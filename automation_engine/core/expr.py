"""Dot-path lookup helper shared by interpolation, transform and flow adapters."""

from __future__ import annotations

import re
from typing import Any, List

_INDEX_RE = re.compile(r"^(.*?)\[(\d+)\]$")


def _get_key(cur: Any, part: str) -> Any:
    if isinstance(cur, dict):
        if part in cur:
            return cur[part]
        lowered = {str(k).lower(): k for k in cur.keys()}
        key = lowered.get(part.lower())
        if key is None:
            return None
        return cur[key]
    if isinstance(cur, (list, tuple)):
        if part.isdigit():
            idx = int(part)
            if 0 <= idx < len(cur):
                return cur[idx]
        return None
    return None


def get_path_parts(data: Any, parts: List[str]) -> Any:
    """Resolve ``parts`` against ``data``.

    Supports ``field[0]`` indexing and ``field[]`` expansion, which maps the
    rest of the path over every element of the list and drops misses.
    Returns None when any segment is missing.
    """
    cur = data
    for pos, part in enumerate(parts):
        if cur is None:
            return None
        if part.endswith("[]"):
            field = part[:-2]
            seq = _get_key(cur, field) if field else cur
            if not isinstance(seq, (list, tuple)):
                return None
            rest = parts[pos + 1 :]
            if not rest:
                return list(seq)
            values = [get_path_parts(item, rest) for item in seq]
            return [v for v in values if v is not None]
        match = _INDEX_RE.match(part)
        if match:
            field, idx = match.group(1), int(match.group(2))
            seq = _get_key(cur, field) if field else cur
            if not isinstance(seq, (list, tuple)) or idx >= len(seq):
                return None
            cur = seq[idx]
            continue
        cur = _get_key(cur, part)
    return cur


def get_path(data: Any, path: str) -> Any:
    if not path:
        return data
    return get_path_parts(data, [p for p in path.strip().split(".") if p != ""])


__all__ = ["get_path", "get_path_parts"]
