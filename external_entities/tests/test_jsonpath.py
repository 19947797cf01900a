import pytest

from external_entities.lib.exceptions import InjectionConflictError, MappingExpressionError
from external_entities.lib.jsonpath import compile_expression, evaluate, inject


def test_evaluate_matches():
    obj = {"a": {"b": [10, {"c": 42}]}, "refs": ["x", "y"]}
    assert evaluate(obj, "$.a.b[0]") == [10]
    assert evaluate(obj, "$.a.b[1].c") == [42]
    assert evaluate(obj, "$.refs[*]") == ["x", "y"]
    assert evaluate(obj, "$.x.y") == []


def test_evaluate_filter_expression():
    obj = {"people": [{"name": "Ann", "age": 31}, {"name": "Bob", "age": 12}]}
    assert evaluate(obj, "$.people[?age > 18].name") == ["Ann"]


def test_compile_rejects_malformed():
    with pytest.raises(MappingExpressionError):
        compile_expression("$.a[")
    with pytest.raises(MappingExpressionError):
        compile_expression("")


def test_inject_scalar_fields_share_document():
    doc = inject({}, "$.title", {0: "T"})
    doc = inject(doc, "$.meta.lang", {0: "en"})
    assert doc == {"title": "T", "meta": {"lang": "en"}}


def test_inject_several_deltas_without_list_selector():
    doc = inject({}, "$.tags", {0: "x", 1: "y"})
    assert doc == {"tags": ["x", "y"]}


def test_inject_list_selector_writes_each_delta():
    doc = inject({"refs": ["old-a", "old-b"]}, "$.refs[*]", {0: "a", 1: "b"})
    assert doc == {"refs": ["a", "b"]}
    assert evaluate(doc, "$.refs[*]") == ["a", "b"]


def test_inject_nothing_leaves_document():
    assert inject({"a": 1}, "$.b", {}) == {"a": 1}


def test_nested_list_selectors_are_read_only():
    doc = {"a": [{"b": [1, 2]}, {"b": [3]}]}
    assert evaluate(doc, "$.a[*].b[*]") == [1, 2, 3]
    with pytest.raises(InjectionConflictError):
        inject(doc, "$.a[*].b[*]", {0: 9})
    assert doc == {"a": [{"b": [1, 2]}, {"b": [3]}]}
