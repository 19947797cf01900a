"""Evaluate and inject simple slash-delimited paths on raw data documents."""
import logging
from typing import Any, Dict, List, Sequence

from .exceptions import InjectionConflictError
from .expression import WILDCARD, has_wildcard, parse_path

_LOGGER = logging.getLogger(__name__)


def _is_index(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return key >= 0
    return isinstance(key, str) and key.isdigit()


def _is_container(v: Any) -> bool:
    return isinstance(v, (dict, list))


def _child(node: Any, key: Any) -> Any:
    if isinstance(node, dict):
        if key in node:
            return node[key]
        # Wildcard substitution produces int keys; raw documents use strings.
        return node.get(str(key))
    if isinstance(node, list) and _is_index(key):
        idx = int(key)
        if idx < len(node):
            return node[idx]
    return None


def _resolve(node: Any, segments: Sequence[Any]) -> List[Any]:
    if not segments:
        if node is None:
            return []
        return list(node) if isinstance(node, list) else [node]

    head, rest = segments[0], segments[1:]
    if head is WILDCARD:
        if node is None:
            items = []
        elif isinstance(node, list):
            items = node
        else:
            items = [node]
        values = []
        for item in items:
            found = _resolve(item, rest)
            # One value per delta: keep positions aligned across properties.
            values.append(found[0] if found else None)
        return values

    return _resolve(_child(node, head), rest)


def evaluate(raw_data: Any, expression: str) -> List[Any]:
    """Return the raw values addressed by ``expression``, one per field delta.

    A missing location yields an empty list. Within a wildcard, items lacking
    the remaining path yield ``None`` so deltas keep their positions.
    """
    return _resolve(raw_data, parse_path(expression))


def _new_container(next_key: Any):
    return [] if _is_index(next_key) else {}


def _put(container: Any, key: Any, value: Any, path: Sequence[Any]) -> None:
    if isinstance(container, list):
        if not _is_index(key):
            raise InjectionConflictError(path, f"'{key}' is not a list index")
        idx = int(key)
        if idx >= len(container):
            container.extend([None] * (idx + 1 - len(container)))
        container[idx] = value
        return
    if isinstance(key, int):
        raise InjectionConflictError(path, "a list item is written into a mapping")
    container[key] = value


def set_value(raw_data: Any, path: Sequence[Any], value: Any) -> Any:
    """Write ``value`` at ``path``, creating containers on the way.

    Returns the (possibly newly created) document.
    """
    if raw_data is None:
        raw_data = _new_container(path[0])
    if not _is_container(raw_data):
        raise InjectionConflictError(path[:1], "raw data root is a scalar")

    container = raw_data
    for i, key in enumerate(path[:-1]):
        child = _child(container, key)
        if child is None:
            child = _new_container(path[i + 1])
            _put(container, key, child, path[: i + 1])
        elif not _is_container(child):
            raise InjectionConflictError(path[: i + 1], "a scalar value is already stored here")
        container = child

    last = path[-1]
    existing = _child(container, last)
    if existing is not None and _is_container(existing) != _is_container(value):
        kind = "a list or mapping" if _is_container(existing) else "a scalar value"
        raise InjectionConflictError(path, f"{kind} is already stored here")
    _put(container, last, value, path)
    return raw_data


def inject(raw_data: Any, expression: str, values_by_delta: Dict[int, Any]) -> Any:
    """Write the values of one field property into ``raw_data``.

    Without a wildcard, a single delta is written as a scalar and several
    deltas as a list. With a wildcard, each delta is written at the list
    position given by its index.
    """
    segments = parse_path(expression)
    if not values_by_delta:
        return raw_data

    deltas = sorted(values_by_delta)
    if not has_wildcard(segments):
        if len(deltas) == 1:
            value = values_by_delta[deltas[0]]
        else:
            value = [values_by_delta[d] for d in deltas]
        return set_value(raw_data, list(segments), value)

    for delta in deltas:
        path = [delta if s is WILDCARD else s for s in segments]
        raw_data = set_value(raw_data, path, values_by_delta[delta])
    _LOGGER.debug("Injected %d deltas at %s", len(deltas), expression)
    return raw_data
