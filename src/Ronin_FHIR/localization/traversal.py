"""Generic fold over FHIR JSON trees.

Resources are arbitrarily nested mappings and lists. Rather than writing a
walker per resource type, callers supply a visitor that may replace any
mapping; :func:`transform_tree` applies it at every depth and rebuilds only the
containers whose contents actually changed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

Path = tuple[str | int, ...]
MappingVisitor = Callable[[Mapping[str, Any], Path], Mapping[str, Any]]


def transform_tree(
    node: Any,
    visit: MappingVisitor,
    path: Path = (),
    *,
    skip_keys: frozenset[str] = frozenset(),
) -> Any:
    """Apply ``visit`` to every mapping below ``node`` (pre-order).

    ``visit`` returns the mapping unchanged (the same object) or a replacement.
    Children of the returned mapping are visited afterwards. Keys in
    ``skip_keys`` are copied through without descending into them.

    Unchanged subtrees are returned by identity so callers can share them.
    """
    if isinstance(node, Mapping):
        current = visit(node, path)
        changed = current is not node
        rebuilt: dict[str, Any] = {}
        for key, value in current.items():
            if key in skip_keys:
                rebuilt[key] = value
                continue
            new_value = transform_tree(value, visit, (*path, key), skip_keys=skip_keys)
            changed = changed or new_value is not value
            rebuilt[key] = new_value
        return rebuilt if changed else node
    if isinstance(node, list):
        items = [
            transform_tree(item, visit, (*path, index), skip_keys=skip_keys)
            for index, item in enumerate(node)
        ]
        if any(new is not old for new, old in zip(items, node)):
            return items
        return node
    return node


def iter_mappings(node: Any, path: Path = ()) -> Iterator[tuple[Path, Mapping[str, Any]]]:
    """Yield ``(path, mapping)`` for every mapping below ``node``."""
    stack: list[tuple[Path, Any]] = [(path, node)]
    while stack:
        current_path, current = stack.pop()
        if isinstance(current, Mapping):
            yield current_path, current
            stack.extend(
                ((*current_path, key), value) for key, value in reversed(list(current.items()))
            )
        elif isinstance(current, list):
            stack.extend(
                ((*current_path, index), value)
                for index, value in reversed(list(enumerate(current)))
            )


__all__ = ["MappingVisitor", "Path", "iter_mappings", "transform_tree"]
