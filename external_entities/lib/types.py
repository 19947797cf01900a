"""Entity schema model: data types, property and field definitions.

The mapping engine never asks a host framework for field information.
Everything it needs is described here and handed to the field mapper
explicitly through an ``EntitySchemaProvider`` and a ``PropertyTypeCatalog``.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional

from .exceptions import ConfigurationError, UnknownDataTypeError

PRIMITIVE = "primitive"
DATETIME = "datetime"
TIMESTAMP = "timestamp"
REFERENCE = "reference"
COMPLEX = "complex"

CARDINALITY_UNLIMITED = -1

ANNOTATION_FIELD = "annotation"

DATETIME_TYPE_DATE = "date"
DATETIME_TYPE_DATETIME = "datetime"

DATE_STORAGE_FORMAT = "%Y-%m-%d"
DATETIME_STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off", "")


def _cast_string(v: Any) -> str:
    if isinstance(v, bool):
        return "1" if v else "0"
    if isinstance(v, (str, int, float)):
        return str(v)
    raise TypeError(f"cannot cast {type(v).__name__} to string")


def _cast_int(v: Any) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        s = v.strip()
        try:
            return int(s)
        except ValueError:
            return int(float(s))
    raise TypeError(f"cannot cast {type(v).__name__} to integer")


def _cast_float(v: Any) -> float:
    if isinstance(v, (bool, int, float)):
        return float(v)
    if isinstance(v, str):
        return float(v.strip())
    raise TypeError(f"cannot cast {type(v).__name__} to float")


def _cast_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in _TRUE_STRINGS:
            return True
        if s in _FALSE_STRINGS:
            return False
        raise ValueError(f"'{v}' is not a boolean value")
    raise TypeError(f"cannot cast {type(v).__name__} to boolean")


class DataType(object):
    """A property data type.

    ``kind`` tells the property value processor how to treat values of this
    type; ``cast`` converts a raw value to the canonical representation.
    """

    def __init__(self, name: str, kind: str, cast: Optional[Callable[[Any], Any]] = None):
        self.name = name
        self.kind = kind
        self.cast = cast

    @property
    def mappable(self) -> bool:
        return self.kind != COMPLEX

    def __repr__(self):
        return f"DataType({self.name!r}, {self.kind!r})"


DEFAULT_DATA_TYPES = (
    DataType("string", PRIMITIVE, _cast_string),
    DataType("email", PRIMITIVE, _cast_string),
    DataType("uri", PRIMITIVE, _cast_string),
    DataType("integer", PRIMITIVE, _cast_int),
    DataType("float", PRIMITIVE, _cast_float),
    DataType("boolean", PRIMITIVE, _cast_bool),
    DataType("timestamp", TIMESTAMP, _cast_int),
    DataType("datetime_iso8601", DATETIME, _cast_string),
    DataType("entity_reference", REFERENCE),
    DataType("language_reference", REFERENCE),
    DataType("map", COMPLEX),
)


class PropertyTypeCatalog(object):
    """Registry of the data types property definitions may refer to."""

    def __init__(self, data_types: Optional[Iterable[DataType]] = None):
        self._types: Dict[str, DataType] = {}
        for dt in DEFAULT_DATA_TYPES if data_types is None else data_types:
            self.register(dt)

    def register(self, data_type: DataType) -> None:
        self._types[data_type.name] = data_type

    def get(self, name: str) -> DataType:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownDataTypeError(f"Unknown data type '{name}'") from None

    def __contains__(self, name) -> bool:
        return name in self._types


class PropertyDefinition(object):
    def __init__(
        self,
        name: str,
        data_type: str = "string",
        label: Optional[str] = None,
        read_only: bool = False,
        computed: bool = False,
    ):
        self.name = name
        self.data_type = data_type
        self.label = label or name
        # Computed properties are always read-only.
        self.read_only = read_only or computed
        self.computed = computed

    def __repr__(self):
        return f"PropertyDefinition({self.name!r}, {self.data_type!r})"


# Property layouts of the field types external entities commonly carry.
# Each entry lists (name, data type, computed) and names the main property.
FIELD_TYPES: Dict[str, Dict[str, Any]] = {
    "string": {"main": "value", "properties": [("value", "string", False)]},
    "uuid": {"main": "value", "properties": [("value", "string", False)]},
    "email": {"main": "value", "properties": [("value", "email", False)]},
    "integer": {"main": "value", "properties": [("value", "integer", False)]},
    "float": {"main": "value", "properties": [("value", "float", False)]},
    "decimal": {"main": "value", "properties": [("value", "string", False)]},
    "boolean": {"main": "value", "properties": [("value", "boolean", False)]},
    "timestamp": {"main": "value", "properties": [("value", "timestamp", False)]},
    "language": {
        "main": "value",
        "properties": [("value", "string", False), ("language", "language_reference", True)],
    },
    "text": {
        "main": "value",
        "properties": [
            ("value", "string", False),
            ("format", "string", False),
            ("processed", "string", True),
        ],
    },
    "text_long": {
        "main": "value",
        "properties": [
            ("value", "string", False),
            ("format", "string", False),
            ("processed", "string", True),
        ],
    },
    "text_with_summary": {
        "main": "value",
        "properties": [
            ("value", "string", False),
            ("summary", "string", False),
            ("format", "string", False),
            ("processed", "string", True),
            ("summary_processed", "string", True),
        ],
    },
    "link": {
        "main": "uri",
        "properties": [
            ("uri", "uri", False),
            ("title", "string", False),
            ("options", "map", False),
        ],
    },
    "datetime": {
        "main": "value",
        "properties": [("value", "datetime_iso8601", False), ("date", "any", True)],
    },
    "entity_reference": {
        "main": "target_id",
        "properties": [("target_id", "entity_reference", False), ("entity", "entity", True)],
    },
}


class FieldDefinition(object):
    def __init__(
        self,
        name: str,
        properties: Iterable[PropertyDefinition],
        main_property: str = "value",
        cardinality: int = 1,
        required: bool = False,
        computed: bool = False,
        label: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        field_type: Optional[str] = None,
    ):
        self.name = name
        self.properties: Dict[str, PropertyDefinition] = {p.name: p for p in properties}
        self.main_property = main_property
        self.cardinality = cardinality
        self.required = required
        self.computed = computed
        self.label = label or name
        self.settings = dict(settings or {})
        self.field_type = field_type

    @classmethod
    def from_field_type(cls, name: str, field_type: str, **kwargs) -> "FieldDefinition":
        """Build a field definition from one of the ``FIELD_TYPES`` presets."""
        if field_type not in FIELD_TYPES:
            raise ConfigurationError(
                f"Unknown field type '{field_type}'", {name: f"unknown field type '{field_type}'"}
            )
        preset = FIELD_TYPES[field_type]
        properties = [
            PropertyDefinition(p_name, data_type, computed=computed)
            for p_name, data_type, computed in preset["properties"]
        ]
        return cls(name, properties, main_property=preset["main"], field_type=field_type, **kwargs)

    @property
    def multiple(self) -> bool:
        return self.cardinality != 1

    def get_property_definition(self, property_name: str) -> Optional[PropertyDefinition]:
        return self.properties.get(property_name)

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def __repr__(self):
        return f"FieldDefinition({self.name!r}, {list(self.properties)!r})"


def base_field_definitions() -> List[FieldDefinition]:
    """Fields every external entity type carries."""
    return [
        FieldDefinition.from_field_type("id", "string", label="ID"),
        FieldDefinition.from_field_type("uuid", "uuid", label="UUID"),
        FieldDefinition.from_field_type("title", "string", label="Title"),
        FieldDefinition.from_field_type(
            ANNOTATION_FIELD, "entity_reference", label="Annotation", settings={"target_type": "node"}
        ),
    ]


class EntitySchemaProvider(object):
    """Provides the field definitions of an entity type."""

    def get_field_definitions(self, entity_type: str) -> Dict[str, FieldDefinition]:
        raise NotImplementedError


class StaticSchemaProvider(EntitySchemaProvider):
    def __init__(self, definitions: Optional[Dict[str, Iterable[FieldDefinition]]] = None):
        self._definitions: Dict[str, Dict[str, FieldDefinition]] = {}
        for entity_type, fields in (definitions or {}).items():
            self.set_field_definitions(entity_type, fields)

    def set_field_definitions(self, entity_type: str, fields: Iterable[FieldDefinition]) -> None:
        self._definitions[entity_type] = {f.name: f for f in fields}

    def get_field_definitions(self, entity_type: str) -> Dict[str, FieldDefinition]:
        return dict(self._definitions.get(entity_type, {}))
