"""Evaluate and inject JSONPath mapping expressions.

Multi-valued fields are mapped with expressions that match several values,
usually through a ``[*]`` list selector. On injection, such a selector is
replaced by the delta index so that each value lands at its list position.
Only one list selector can carry deltas; expressions with nested ``[*]``
selectors can be read but not written.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, List

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as jsonpath_parse

from .exceptions import InjectionConflictError, MappingExpressionError

_LOGGER = logging.getLogger(__name__)

LIST_SELECTOR = "[*]"


@lru_cache(maxsize=1024)
def compile_expression(expression: str):
    if not isinstance(expression, str) or not expression.strip():
        raise MappingExpressionError(str(expression), "expression is empty")
    try:
        return jsonpath_parse(expression)
    except JSONPathError as e:
        raise MappingExpressionError(expression, str(e)) from e


def evaluate(raw_data: Any, expression: str) -> List[Any]:
    """Return the values matched by ``expression``, one per field delta."""
    if raw_data is None:
        return []
    return [match.value for match in compile_expression(expression).find(raw_data)]


def _write(raw_data: Any, expression: str, value: Any) -> Any:
    try:
        return compile_expression(expression).update_or_create(raw_data, value)
    except (TypeError, AttributeError, IndexError, KeyError) as e:
        raise InjectionConflictError(expression.split("."), str(e)) from e


def inject(raw_data: Any, expression: str, values_by_delta: Dict[int, Any]) -> Any:
    """Write the values of one field property into ``raw_data``.

    The document is threaded through: the returned value must replace the
    one passed in, since the JSONPath engine may rebuild containers.
    """
    compile_expression(expression)
    if not values_by_delta:
        return raw_data
    if raw_data is None:
        raw_data = {}

    if expression.count(LIST_SELECTOR) > 1:
        raise InjectionConflictError(expression.split("."), "only one [*] selector can be written")

    deltas = sorted(values_by_delta)
    if LIST_SELECTOR in expression:
        for delta in deltas:
            concrete = expression.replace(LIST_SELECTOR, f"[{delta}]", 1)
            raw_data = _write(raw_data, concrete, values_by_delta[delta])
        _LOGGER.debug("Injected %d deltas at %s", len(deltas), expression)
        return raw_data

    if len(deltas) == 1:
        return _write(raw_data, expression, values_by_delta[deltas[0]])
    return _write(raw_data, expression, [values_by_delta[d] for d in deltas])
