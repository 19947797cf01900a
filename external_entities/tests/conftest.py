import pytest

from external_entities.lib.config import ExternalEntityType
from external_entities.lib.mappers import JsonPathFieldMapper, SimpleFieldMapper
from external_entities.lib.storage import StorageClient
from external_entities.lib.types import (
    CARDINALITY_UNLIMITED,
    FieldDefinition,
    PropertyDefinition,
    StaticSchemaProvider,
    base_field_definitions,
)

ENTITY_TYPE = "simple_external_entity"

RAW_RECORDS = {
    "2596b1ba-43bb-4440-9f0c-f1974f733336": {
        "uuid": "2596b1ba-43bb-4440-9f0c-f1974f733336",
        "title": "Simple title 1",
        "short_text": "Just a short string",
        "rich_text": "<h2>Some HTML tags</h2>",
        "rich_text_2": "<h2>Other HTML tags</h2>",
        "status": True,
        "refs": [
            "2596b1ba-43bb-4440-9f0c-f1974f733310",
            "2596b1ba-43bb-4440-9f0c-f1974f733311",
        ],
    },
    "2596b1ba-43bb-4440-9f0c-f1974f733337": {
        "uuid": "2596b1ba-43bb-4440-9f0c-f1974f733337",
        "title": "Simple title 2",
        "short_text": "Just another short string",
        "status": False,
    },
}

SIMPLE_MAPPINGS = {
    "id": {"value": "uuid"},
    "uuid": {"value": "uuid"},
    "title": {"value": "title"},
    "plain_text": {"value": "short_text"},
    "fixed_string": {"value": "+A fixed string"},
    "a_rich_text": {"value": "rich_text", "format": "+full_html"},
    "a_plain_text": {"value": "rich_text_2", "format": "+plain_text"},
    "a_boolean": {"value": "status"},
    "ref": {"target_id": "refs/*"},
}


def build_fields():
    return base_field_definitions() + [
        FieldDefinition.from_field_type("plain_text", "string"),
        FieldDefinition.from_field_type("fixed_string", "string"),
        FieldDefinition.from_field_type("a_rich_text", "text_long"),
        FieldDefinition.from_field_type("a_plain_text", "text"),
        FieldDefinition.from_field_type("a_boolean", "boolean"),
        FieldDefinition.from_field_type("a_number", "integer"),
        FieldDefinition.from_field_type("ref", "entity_reference", cardinality=CARDINALITY_UNLIMITED),
        FieldDefinition.from_field_type("tags", "string", cardinality=CARDINALITY_UNLIMITED),
        FieldDefinition.from_field_type("released", "datetime", settings={"datetime_type": "date"}),
        FieldDefinition.from_field_type("updated", "datetime", settings={"datetime_type": "datetime"}),
        FieldDefinition.from_field_type("changed", "timestamp"),
        FieldDefinition.from_field_type("website", "link"),
        FieldDefinition(
            "author",
            [PropertyDefinition("name", "string"), PropertyDefinition("email", "email")],
            main_property="name",
            cardinality=CARDINALITY_UNLIMITED,
        ),
        FieldDefinition.from_field_type("search_rank", "float", computed=True),
    ]


class FakeStorageClient(StorageClient):
    def __init__(self, records=None, id_key="uuid"):
        self.records = dict(records or {})
        self.id_key = id_key
        self.saved = []
        self.deleted = []
        self.requested = []

    def load_multiple(self, ids=None):
        self.requested.append(ids)
        if ids is None:
            return dict(self.records)
        return {i: self.records[i] for i in ids if i in self.records}

    def save(self, raw_data):
        self.saved.append(raw_data)
        id = raw_data.get(self.id_key) or f"new-{len(self.saved)}"
        self.records[id] = raw_data
        return id

    def delete(self, id):
        self.deleted.append(id)
        self.records.pop(id, None)

    def query(self, parameters=None, sorts=None, start=None, length=None):
        records = list(self.records.values())
        for key, value in (parameters or {}).items():
            records = [r for r in records if r.get(key) == value]
        start = start or 0
        return records[start : start + length if length else None]

    def count_query(self, parameters=None):
        return len(self.query(parameters))


@pytest.fixture
def raw_records():
    return {k: dict(v) for k, v in RAW_RECORDS.items()}


@pytest.fixture
def schema_provider():
    return StaticSchemaProvider({ENTITY_TYPE: build_fields()})


@pytest.fixture
def simple_mapper_builder(schema_provider):
    def _build(field_mappings=None, **config):
        config["field_mappings"] = SIMPLE_MAPPINGS if field_mappings is None else field_mappings
        return SimpleFieldMapper(config, ENTITY_TYPE, schema_provider)
    return _build


@pytest.fixture
def simple_mapper(simple_mapper_builder):
    return simple_mapper_builder()


@pytest.fixture
def jsonpath_mapper_builder(schema_provider):
    def _build(field_mappings, **config):
        config["field_mappings"] = field_mappings
        return JsonPathFieldMapper(config, ENTITY_TYPE, schema_provider)
    return _build


@pytest.fixture
def entity_type_config():
    return {
        "id": "movie",
        "label": "Movie",
        "read_only": False,
        "field_mapper_id": "simple",
        "field_mapper_config": {
            "field_mappings": {
                "id": {"value": "uuid"},
                "uuid": {"value": "uuid"},
                "title": {"value": "title"},
                "genre": {"target_id": "genres/*"},
                "year": {"value": "year"},
            }
        },
        "fields": {
            "genre": {"type": "entity_reference", "cardinality": -1},
            "year": {"type": "integer"},
        },
    }


@pytest.fixture
def entity_type(entity_type_config):
    return ExternalEntityType(entity_type_config)


@pytest.fixture
def storage_client_builder():
    def _build(records=None, **kwargs):
        return FakeStorageClient(records, **kwargs)
    return _build
