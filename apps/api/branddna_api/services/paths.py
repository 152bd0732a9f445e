"""Dot-separated field paths into the nested profile document.

Paths look like ``identity.official_name`` or ``products.0.name``; numeric
segments index into lists. Reads never fail on missing intermediates and
return ``MISSING``. Writes create intermediate dicts and overwrite any
intermediate scalar they meet with a fresh dict.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidFieldPathError


class _Missing:
    """Marker for "no value at this path" (distinct from a stored ``None``)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Missing:
        return self

    def __deepcopy__(self, memo: dict) -> _Missing:
        return self


MISSING: Any = _Missing()


@dataclass(frozen=True)
class FieldPath:
    segments: tuple[str, ...]

    @classmethod
    def parse(cls, path: str | FieldPath) -> FieldPath:
        if isinstance(path, FieldPath):
            return path
        if not isinstance(path, str) or not path:
            raise InvalidFieldPathError("field path must be a non-empty dot-separated string")
        segments = tuple(path.split("."))
        if any(seg == "" for seg in segments):
            raise InvalidFieldPathError(f"field path {path!r} contains an empty segment")
        return cls(segments=segments)

    def __str__(self) -> str:
        return ".".join(self.segments)

    @property
    def parent(self) -> tuple[str, ...]:
        return self.segments[:-1]

    @property
    def leaf(self) -> str:
        return self.segments[-1]


def join_path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _index(segment: str) -> int | None:
    return int(segment) if segment.isdigit() else None


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment, MISSING)
    if isinstance(container, list):
        idx = _index(segment)
        if idx is None or idx >= len(container):
            return MISSING
        return container[idx]
    return MISSING


def get_value(doc: Any, path: str | FieldPath) -> Any:
    current = doc
    for segment in FieldPath.parse(path).segments:
        current = _child(current, segment)
        if current is MISSING:
            return MISSING
    return current


def _assign(container: dict | list, segment: str, value: Any, path: FieldPath) -> None:
    if isinstance(container, dict):
        container[segment] = value
        return
    idx = _index(segment)
    if idx is None or idx > len(container):
        raise InvalidFieldPathError(f"index {segment!r} is out of range in {path}")
    if idx == len(container):
        container.append(value)
    else:
        container[idx] = value


def _is_container_for(value: Any, segment: str) -> bool:
    if isinstance(value, dict):
        return True
    return isinstance(value, list) and _index(segment) is not None


def set_value(doc: dict[str, Any], path: str | FieldPath, value: Any) -> None:
    """Write ``value`` at ``path`` in place, repairing intermediates as needed."""
    field_path = FieldPath.parse(path)
    segments = field_path.segments
    current: dict | list = doc
    for depth, segment in enumerate(segments[:-1]):
        next_segment = segments[depth + 1]
        child = _child(current, segment)
        if not _is_container_for(child, next_segment):
            child = {}
            _assign(current, segment, child, field_path)
        current = child
    _assign(current, field_path.leaf, value, field_path)


def unset_value(doc: dict[str, Any], path: str | FieldPath) -> Any:
    """Remove the value at ``path``; returns what was removed or ``MISSING``."""
    field_path = FieldPath.parse(path)
    parent: Any = doc
    for segment in field_path.parent:
        parent = _child(parent, segment)
        if parent is MISSING:
            return MISSING
    if isinstance(parent, dict):
        return parent.pop(field_path.leaf, MISSING)
    if isinstance(parent, list):
        idx = _index(field_path.leaf)
        if idx is not None and idx < len(parent):
            return parent.pop(idx)
    return MISSING


def is_filled(value: Any) -> bool:
    """Lists and dicts count when non-empty; other values unless ``None`` or ``""``."""
    if value is MISSING or value is None:
        return False
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return value != ""


def iter_leaf_paths(doc: Any, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield ``(path, value)`` for each leaf; lists are leaves, dicts are walked."""
    if isinstance(doc, dict):
        for key, value in doc.items():
            child_path = join_path(prefix, str(key))
            if isinstance(value, dict) and value:
                yield from iter_leaf_paths(value, child_path)
            else:
                yield child_path, value
    elif prefix:
        yield prefix, doc
