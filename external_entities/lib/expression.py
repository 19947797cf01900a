"""Grammar of simple path mapping expressions.

    expression := segment ('/' segment)*
    segment    := '*' | literal-key

A segment made only of ``*`` marks the list holding the values of a
multivalued field. Constant expressions are recognised by the field mapper
and never reach this parser.
"""
from functools import lru_cache
from typing import Tuple, Union

from textx import metamodel_from_str
from textx.exceptions import TextXError

from .exceptions import MappingExpressionError

PATH_GRAMMAR = r"""
PathExpression:
    segments+=Segment['/']
;

Segment:
    Wildcard | Key
;

Wildcard:
    token=/\*(?=\/|$)/
;

Key:
    token=/[^\/]+/
;
"""


class _Wildcard(object):
    def __repr__(self):
        return "WILDCARD"


WILDCARD = _Wildcard()

Segment = Union[str, _Wildcard]

_metamodel = None


def get_metamodel():
    global _metamodel
    if _metamodel is None:
        # Keys may contain blanks, so whitespace must not be skipped.
        _metamodel = metamodel_from_str(PATH_GRAMMAR, skipws=False)
    return _metamodel


@lru_cache(maxsize=1024)
def parse_path(expression: str) -> Tuple[Segment, ...]:
    """Parse a path expression into its segments.

    Literal keys are returned as strings, wildcard segments as ``WILDCARD``.
    """
    if not isinstance(expression, str) or expression == "":
        raise MappingExpressionError(str(expression), "expression is empty")
    try:
        model = get_metamodel().model_from_str(expression)
    except TextXError as e:
        raise MappingExpressionError(expression, str(e)) from e

    segments = []
    for seg in model.segments:
        cname = seg.__class__.__name__
        if cname == "Wildcard":
            segments.append(WILDCARD)
        else:
            segments.append(seg.token)
    return tuple(segments)


def has_wildcard(segments) -> bool:
    return any(s is WILDCARD for s in segments)
