"""Structural diff between two document snapshots.

The result is a flat ``{path: FieldChange}`` map. Objects are walked key by
key; arrays are compared wholesale and reported at the array's own path;
a kind mismatch is reported where it happens. No reported path is an
ancestor of another, so applying each change with ``set_value`` in any
order rebuilds the new snapshot.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .paths import MISSING, join_path


@dataclass(frozen=True)
class FieldChange:
    old: Any = MISSING
    new: Any = MISSING

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.old is not MISSING:
            payload["old"] = self.old
        if self.new is not MISSING:
            payload["new"] = self.new
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> FieldChange:
        return cls(old=payload.get("old", MISSING), new=payload.get("new", MISSING))


def value_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _serialize(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _compare(old: Any, new: Any, path: str, out: dict[str, FieldChange]) -> None:
    kind = value_kind(old)
    if kind != value_kind(new):
        out[path] = FieldChange(old=old, new=new)
        return

    if kind == "array":
        if _serialize(old) != _serialize(new):
            out[path] = FieldChange(old=old, new=new)
        return

    if kind == "object":
        keys = list(old)
        keys.extend(key for key in new if key not in old)
        for key in keys:
            child_path = join_path(path, str(key))
            if key not in old:
                out[child_path] = FieldChange(new=new[key])
            elif key not in new:
                out[child_path] = FieldChange(old=old[key])
            else:
                _compare(old[key], new[key], child_path, out)
        return

    if old != new:
        out[path] = FieldChange(old=old, new=new)


def diff_documents(old: dict[str, Any], new: dict[str, Any]) -> dict[str, FieldChange]:
    changes: dict[str, FieldChange] = {}
    _compare(old, new, "", changes)
    return changes


def changes_to_json(changes: dict[str, FieldChange]) -> dict[str, dict[str, Any]]:
    return {path: change.to_dict() for path, change in changes.items()}


def changes_from_json(payload: dict[str, dict[str, Any]]) -> dict[str, FieldChange]:
    return {path: FieldChange.from_dict(change) for path, change in payload.items()}
