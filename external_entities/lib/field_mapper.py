"""Field mappers translate raw data documents to entity values and back.

Entity values have the shape::

    {
        "field1": [
            {"property1": ..., "property2": ...},   # delta 0
            {"property1": ..., "property2": ...},   # delta 1
        ],
        "field2": [...],
    }
"""
import logging
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError, MappingExpressionError
from .property_value import PropertyValueProcessor
from .types import (
    ANNOTATION_FIELD,
    EntitySchemaProvider,
    FieldDefinition,
    PropertyDefinition,
    PropertyTypeCatalog,
)

_LOGGER = logging.getLogger(__name__)

TARGET_ID = "target_id"


class FieldMapperBase(object):
    """Base class for field mappers.

    A field mapper is configured for one entity type; the schema provider
    tells it which fields the type has, the type catalog how their property
    values are typed.
    """

    plugin_id: Optional[str] = None
    label = ""
    description = ""

    def __init__(
        self,
        configuration: Optional[Dict[str, Any]],
        entity_type: str,
        schema_provider: EntitySchemaProvider,
        type_catalog: Optional[PropertyTypeCatalog] = None,
    ):
        self.entity_type = entity_type
        self.schema_provider = schema_provider
        self.type_catalog = type_catalog or PropertyTypeCatalog()
        self.configuration: Dict[str, Any] = dict(self.default_configuration())
        self.configuration.update(configuration or {})

    def default_configuration(self) -> Dict[str, Any]:
        return {}

    def get_configuration(self) -> Dict[str, Any]:
        return self.configuration

    def get_label(self) -> str:
        return self.label

    def get_description(self) -> str:
        return self.description

    def get_mappable_fields(self) -> Dict[str, FieldDefinition]:
        """Field definitions that can be mapped, keyed by field name.

        Computed fields and the annotation reference are never mapped.
        """
        fields = self.schema_provider.get_field_definitions(self.entity_type)
        return {
            name: field
            for name, field in fields.items()
            if name != ANNOTATION_FIELD and not field.computed
        }

    def get_mappable_field_properties(self, field_definition: FieldDefinition) -> Dict[str, PropertyDefinition]:
        """Writable primitive and reference properties of a field."""
        properties = {}
        for name, prop in field_definition.properties.items():
            if prop.read_only:
                continue
            if prop.data_type not in self.type_catalog:
                continue
            if self.type_catalog.get(prop.data_type).mappable:
                properties[name] = prop
        return properties

    def extract_id_from_raw_data(self, raw_data: Dict[str, Any]):
        raise NotImplementedError

    def extract_entity_values_from_raw_data(self, raw_data: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
        raise NotImplementedError

    def create_raw_data_from_entity_values(self, entity_values: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
        raise NotImplementedError


class ExpressionFieldMapper(FieldMapperBase):
    """Field mapper driven by one mapping expression per field property.

    Subclasses provide the expression dialect through ``evaluate_expression``,
    ``inject_expression`` and ``validate_expression``.
    """

    constant_prefix: Optional[str] = "+"
    required_field_mappings = ("id", "uuid", "title")

    def __init__(self, configuration, entity_type, schema_provider, type_catalog=None):
        super().__init__(configuration, entity_type, schema_provider, type_catalog)
        self.value_processor = PropertyValueProcessor(self.type_catalog)

    def default_configuration(self) -> Dict[str, Any]:
        return {"field_mappings": {}}

    # --- Dialect ---

    def evaluate_expression(self, raw_data: Any, expression: str) -> List[Any]:
        raise NotImplementedError

    def inject_expression(self, raw_data: Any, expression: str, values_by_delta: Dict[int, Any]) -> Any:
        raise NotImplementedError

    def validate_expression(self, expression: str) -> None:
        raise NotImplementedError

    # --- Mapping configuration ---

    def get_field_mappings(self) -> Dict[str, Dict[str, str]]:
        return self.configuration.get("field_mappings") or {}

    def get_field_mapping(self, field_name: str, property_name: Optional[str] = None):
        field_mappings = self.get_field_mappings()
        if not field_mappings.get(field_name):
            return None
        if not property_name:
            return field_mappings[field_name]
        return field_mappings[field_name].get(property_name)

    def get_field_property_mapping(self, field_name: str, property_name: str) -> Optional[str]:
        return self.get_field_mapping(field_name, property_name)

    def get_constant_mapping_prefix(self) -> Optional[str]:
        return self.configuration.get("constant_prefix", self.constant_prefix)

    def get_required_field_mappings(self) -> List[str]:
        required = list(self.required_field_mappings)
        for name, field in self.get_mappable_fields().items():
            if field.required and name not in required:
                required.append(name)
        return required

    def is_constant_value_mapping(self, mapping) -> bool:
        prefix = self.get_constant_mapping_prefix()
        return bool(prefix) and isinstance(mapping, str) and mapping.startswith(prefix)

    def get_mapped_constant_value(self, mapping) -> Optional[str]:
        if not self.is_constant_value_mapping(mapping):
            return None
        return mapping[len(self.get_constant_mapping_prefix()):]

    def validate_field_mappings(self, field_mappings: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        """Check a field mapping table and return it without empty mappings.

        Raises ConfigurationError listing every problem, keyed by field name.
        """
        filtered = {}
        for field_name, property_mappings in (field_mappings or {}).items():
            kept = {p: m for p, m in (property_mappings or {}).items() if m}
            if kept:
                filtered[field_name] = kept

        errors: Dict[str, str] = {}
        mappable_fields = self.get_mappable_fields()
        for field_name in self.get_required_field_mappings():
            if field_name not in mappable_fields:
                continue
            field = mappable_fields[field_name]
            mapping = filtered.get(field_name, {}).get(field.main_property)
            if not mapping:
                errors[field_name] = f"The {field.label} field must be mapped."
            elif self.is_constant_value_mapping(mapping):
                errors[field_name] = f"The {field.label} field cannot be mapped to a constant value."

        for field_name, property_mappings in filtered.items():
            if field_name in errors:
                continue
            for property_name, mapping in property_mappings.items():
                if self.is_constant_value_mapping(mapping):
                    continue
                try:
                    self.validate_expression(mapping)
                except MappingExpressionError as e:
                    errors[field_name] = f"Invalid mapping for {property_name}: {e.reason}"
                    break

        if errors:
            raise ConfigurationError("Invalid field mappings", errors)
        return filtered

    def validate_configuration(self, configuration: Dict[str, Any]) -> Dict[str, Any]:
        configuration = dict(configuration)
        configuration["field_mappings"] = self.validate_field_mappings(configuration.get("field_mappings", {}))
        return configuration

    def set_configuration(self, configuration: Dict[str, Any]) -> None:
        """Validate and store a new configuration; invalid ones are refused."""
        previous = self.configuration
        self.configuration = dict(self.default_configuration())
        self.configuration.update(configuration or {})
        try:
            self.configuration = self.validate_configuration(self.configuration)
        except ConfigurationError:
            self.configuration = previous
            raise

    # --- Raw data -> entity values ---

    def extract_id_from_raw_data(self, raw_data: Dict[str, Any]):
        id_field = self.get_mappable_fields().get("id")
        id_property = id_field.main_property if id_field else "value"
        mapping = self.get_field_property_mapping("id", id_property)
        if not mapping or self.is_constant_value_mapping(mapping):
            # Should not happen with a validated configuration, but old
            # configurations may lack it.
            return None
        ids = self.evaluate_expression(raw_data, mapping)
        return ids[0] if ids else None

    def extract_entity_values_from_raw_data(self, raw_data: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
        entity_values = {}
        context: Dict[str, Any] = {}
        for field_name, field_definition in self.get_mappable_fields().items():
            field_values = self.extract_field_values_from_raw_data(field_definition, raw_data, context)
            if field_values:
                entity_values[field_name] = field_values
        return entity_values

    def extract_field_values_from_raw_data(
        self, field_definition: FieldDefinition, raw_data: Dict[str, Any], context: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        property_mappings = self.get_field_mapping(field_definition.name)
        if not property_mappings:
            return []
        mappable_properties = self.get_mappable_field_properties(field_definition)

        properties_values: Dict[str, List[Any]] = {}
        constants: Dict[str, str] = {}
        for property_name, mapping in property_mappings.items():
            if property_name not in mappable_properties:
                _LOGGER.debug("Ignoring mapping of unmappable property %s.%s", field_definition.name, property_name)
                continue
            if self.is_constant_value_mapping(mapping):
                constants[property_name] = self.get_mapped_constant_value(mapping)
                continue
            properties_values[property_name] = self.extract_field_property_values_from_raw_data(
                field_definition, property_name, raw_data, context
            )

        # Merge per-property lists into per-delta property maps.
        size = max((len(v) for v in properties_values.values()), default=0)
        field_values: List[Dict[str, Any]] = [{} for _ in range(size)]
        for property_name, property_values in properties_values.items():
            for delta, value in enumerate(property_values):
                if value is None:
                    continue
                # Do not create references to nothing.
                if property_name == TARGET_ID and (value == "" or value == 0):
                    continue
                field_values[delta][property_name] = value
        field_values = [v for v in field_values if v]

        # The number of deltas is known now, so constants can be added.
        if constants:
            if not field_values:
                field_values = [{}]
            for field_value in field_values:
                field_value.update(constants)

        return [
            {
                name: self.process_property_value(field_definition, name, value)
                for name, value in field_value.items()
            }
            for field_value in field_values
        ]

    def extract_field_property_values_from_raw_data(
        self, field_definition: FieldDefinition, property_name: str, raw_data: Dict[str, Any], context: Dict[str, Any]
    ) -> List[Any]:
        mapping = self.get_field_property_mapping(field_definition.name, property_name)
        if not mapping:
            return []
        return self.evaluate_expression(raw_data, mapping)

    def process_property_value(self, field_definition: FieldDefinition, property_name: str, value: Any) -> Any:
        return self.value_processor.process(field_definition, property_name, value)

    # --- Entity values -> raw data ---

    def create_raw_data_from_entity_values(self, entity_values: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
        raw_data: Dict[str, Any] = {}
        mappable_fields = self.get_mappable_fields()
        context: Dict[str, Any] = {}
        for field_name, field_values in entity_values.items():
            if field_name not in mappable_fields:
                _LOGGER.debug("Field %s is not mappable, not writing it to raw data", field_name)
                continue
            raw_data = self.add_field_values_to_raw_data(
                mappable_fields[field_name], field_values or [], raw_data, context
            )
        return raw_data

    def add_field_values_to_raw_data(
        self,
        field_definition: FieldDefinition,
        field_values: List[Dict[str, Any]],
        raw_data: Dict[str, Any],
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Write one field's values into ``raw_data`` and return the document."""
        property_mappings = self.get_field_mapping(field_definition.name)
        if not property_mappings:
            return raw_data

        # [delta][property] -> [property][delta]
        property_values: Dict[str, Dict[int, Any]] = {}
        for delta, field_value in enumerate(field_values):
            for property_name, value in (field_value or {}).items():
                property_values.setdefault(property_name, {})[delta] = value

        for property_name, mapping in property_mappings.items():
            # Constants belong to the source, they are not written back.
            if self.is_constant_value_mapping(mapping):
                continue
            values_by_delta = property_values.get(property_name)
            if not values_by_delta:
                continue
            raw_data = self.inject_expression(raw_data, mapping, values_by_delta)
        return raw_data
