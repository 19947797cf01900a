"""Concrete field mappers and the registry resolving them by id."""
from typing import Any, Dict, Optional, Type

from . import jsonpath, simple_path
from .exceptions import UnknownFieldMapperError
from .expression import parse_path
from .field_mapper import ExpressionFieldMapper
from .types import EntitySchemaProvider, PropertyTypeCatalog


class SimpleFieldMapper(ExpressionFieldMapper):
    """Maps fields with simple slash-delimited paths through the raw data.

    - A mapping starting with ``+`` maps a constant: everything after the
      prefix is the value.
    - A path segment made only of ``*`` marks the list holding the values of
      a multivalued field, e.g. ``refs/*`` or ``authors/*/name``.
    """

    plugin_id = "simple"
    label = "Simple"
    description = "Maps entity fields to raw data using simple path expressions."
    required_field_mappings = ("id", "title")

    def evaluate_expression(self, raw_data, expression):
        return simple_path.evaluate(raw_data, expression)

    def inject_expression(self, raw_data, expression, values_by_delta):
        return simple_path.inject(raw_data, expression, values_by_delta)

    def validate_expression(self, expression):
        parse_path(expression)


class JsonPathFieldMapper(ExpressionFieldMapper):
    """Maps fields with JSONPath expressions.

    Multivalued fields use expressions matching a list of values. Constants
    are mapped by prefixing the expression with ``+``.
    """

    plugin_id = "jsonpath"
    label = "JSONPath"
    description = "Maps fields based on JSONPath expressions."

    def evaluate_expression(self, raw_data, expression):
        return jsonpath.evaluate(raw_data, expression)

    def inject_expression(self, raw_data, expression, values_by_delta):
        return jsonpath.inject(raw_data, expression, values_by_delta)

    def validate_expression(self, expression):
        jsonpath.compile_expression(expression)


FIELD_MAPPERS: Dict[str, Type[ExpressionFieldMapper]] = {
    SimpleFieldMapper.plugin_id: SimpleFieldMapper,
    JsonPathFieldMapper.plugin_id: JsonPathFieldMapper,
}


def register_field_mapper(cls: Type[ExpressionFieldMapper]) -> Type[ExpressionFieldMapper]:
    FIELD_MAPPERS[cls.plugin_id] = cls
    return cls


def get_field_mapper_class(plugin_id: str) -> Type[ExpressionFieldMapper]:
    try:
        return FIELD_MAPPERS[plugin_id]
    except KeyError:
        raise UnknownFieldMapperError(
            f"Unknown field mapper '{plugin_id}'",
            {"field_mapper_id": f"expected one of {', '.join(sorted(FIELD_MAPPERS))}"},
        ) from None


def create_field_mapper(
    plugin_id: str,
    configuration: Optional[Dict[str, Any]],
    entity_type: str,
    schema_provider: EntitySchemaProvider,
    type_catalog: Optional[PropertyTypeCatalog] = None,
    validate: bool = True,
) -> ExpressionFieldMapper:
    """Instantiate the field mapper registered under ``plugin_id``.

    With ``validate`` the configuration is checked before it is accepted.
    """
    mapper = get_field_mapper_class(plugin_id)(None, entity_type, schema_provider, type_catalog)
    if validate:
        mapper.set_configuration(configuration or {})
    else:
        mapper.configuration.update(configuration or {})
    return mapper
