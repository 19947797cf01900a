"""External entity type configuration.

An entity type is described by a JSON document such as::

    {
        "id": "movie",
        "label": "Movie",
        "read_only": false,
        "field_mapper_id": "simple",
        "field_mapper_config": {
            "field_mappings": {
                "id": {"value": "uuid"},
                "title": {"value": "title"},
                "genre": {"target_id": "genres/*"}
            }
        },
        "fields": {
            "genre": {"type": "entity_reference", "cardinality": -1}
        }
    }

The ``id``, ``uuid``, ``title`` and ``annotation`` base fields always exist;
entries in ``fields`` add fields or replace base ones.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import voluptuous as vol

from .exceptions import ConfigurationError
from .mappers import FIELD_MAPPERS, create_field_mapper
from .types import (
    CARDINALITY_UNLIMITED,
    FIELD_TYPES,
    FieldDefinition,
    PropertyDefinition,
    PropertyTypeCatalog,
    StaticSchemaProvider,
    base_field_definitions,
)

_LOGGER = logging.getLogger(__name__)

PROPERTY_MAPPINGS_SCHEMA = vol.Schema({str: vol.Any(None, str)})

FIELD_MAPPINGS_SCHEMA = vol.Schema({str: vol.Any(None, PROPERTY_MAPPINGS_SCHEMA)})

FIELD_MAPPER_CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("field_mappings", default={}): FIELD_MAPPINGS_SCHEMA,
        vol.Optional("constant_prefix"): vol.All(str, vol.Length(min=1)),
    },
    extra=vol.ALLOW_EXTRA,
)


def _has_layout(field: Dict[str, Any]) -> Dict[str, Any]:
    if "type" not in field and "properties" not in field:
        raise vol.Invalid("a field needs either a 'type' or 'properties'")
    return field


FIELD_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Exclusive("type", "layout"): vol.In(sorted(FIELD_TYPES)),
            vol.Exclusive("properties", "layout"): vol.Schema({str: str}),
            vol.Optional("main_property"): str,
            vol.Optional("cardinality", default=1): vol.All(
                int, vol.Any(CARDINALITY_UNLIMITED, vol.Range(min=1))
            ),
            vol.Optional("required", default=False): bool,
            vol.Optional("computed", default=False): bool,
            vol.Optional("label"): str,
            vol.Optional("settings", default={}): dict,
        }
    ),
    _has_layout,
)

ENTITY_TYPE_SCHEMA = vol.Schema(
    {
        vol.Required("id"): vol.All(str, vol.Match(r"^[a-z0-9_]+$")),
        vol.Optional("label"): str,
        vol.Optional("label_plural"): str,
        vol.Optional("read_only", default=True): bool,
        vol.Optional("field_mapper_id", default="simple"): vol.In(sorted(FIELD_MAPPERS)),
        vol.Optional("field_mapper_config", default={}): FIELD_MAPPER_CONFIG_SCHEMA,
        vol.Optional("fields", default={}): vol.Schema({str: FIELD_SCHEMA}),
    }
)


def _invalid_to_errors(exc: vol.MultipleInvalid) -> Dict[str, str]:
    errors = {}
    for err in exc.errors:
        key = ".".join(str(p) for p in err.path) or "config"
        errors[key] = err.msg
    return errors


def build_field_definition(name: str, field: Dict[str, Any]) -> FieldDefinition:
    options = {
        "cardinality": field["cardinality"],
        "required": field["required"],
        "computed": field["computed"],
        "label": field.get("label"),
        "settings": field["settings"],
    }
    if "type" in field:
        definition = FieldDefinition.from_field_type(name, field["type"], **options)
        if "main_property" in field:
            definition.main_property = field["main_property"]
        return definition

    properties = [PropertyDefinition(p, data_type) for p, data_type in field["properties"].items()]
    main_property = field.get("main_property") or next(iter(field["properties"]), "value")
    return FieldDefinition(name, properties, main_property=main_property, **options)


class ExternalEntityType(object):
    """A configured external entity type."""

    def __init__(self, config: Dict[str, Any], type_catalog: Optional[PropertyTypeCatalog] = None):
        try:
            config = ENTITY_TYPE_SCHEMA(config)
        except vol.MultipleInvalid as e:
            raise ConfigurationError("Invalid external entity type", _invalid_to_errors(e)) from e

        self.id = config["id"]
        self.label = config.get("label", self.id)
        self.label_plural = config.get("label_plural", f"{self.label}s")
        self.read_only = config["read_only"]
        self.field_mapper_id = config["field_mapper_id"]
        self.field_mapper_config = config["field_mapper_config"]
        self.type_catalog = type_catalog or PropertyTypeCatalog()

        fields = {f.name: f for f in base_field_definitions()}
        for name, field in config["fields"].items():
            fields[name] = build_field_definition(name, field)
        self.schema_provider = StaticSchemaProvider({self.id: fields.values()})
        self._field_mapper = None

    def is_read_only(self) -> bool:
        return self.read_only

    def get_field_definitions(self) -> Dict[str, FieldDefinition]:
        return self.schema_provider.get_field_definitions(self.id)

    def get_field_mapper(self):
        if self._field_mapper is None:
            self._field_mapper = create_field_mapper(
                self.field_mapper_id,
                self.field_mapper_config,
                self.id,
                self.schema_provider,
                self.type_catalog,
            )
            _LOGGER.debug("Created %s field mapper for %s", self.field_mapper_id, self.id)
        return self._field_mapper


def load_entity_type(path: Union[str, Path], type_catalog: Optional[PropertyTypeCatalog] = None) -> ExternalEntityType:
    """Load an entity type from a JSON file and validate its field mappings."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
    entity_type = ExternalEntityType(data, type_catalog)
    entity_type.get_field_mapper()
    return entity_type
