import pytest

from external_entities.lib.config import ExternalEntityType
from external_entities.lib.exceptions import ReadOnlyEntityTypeError
from external_entities.lib.storage import ExternalEntityStorage

MOVIES = {
    "m1": {"uuid": "m1", "title": "Alien", "genres": ["horror", "sf"], "year": 1979},
    "m2": {"uuid": "m2", "title": "Heat", "genres": ["crime"], "year": 1995},
    "m3": {},
}


@pytest.fixture
def storage(entity_type, storage_client_builder):
    return ExternalEntityStorage(entity_type, storage_client_builder(MOVIES))


def test_load_multiple(storage):
    entities = storage.load_multiple(["m1", "m2", "missing"])
    assert sorted(entities) == ["m1", "m2"]
    assert entities["m1"]["title"] == [{"value": "Alien"}]
    assert entities["m1"]["genre"] == [{"target_id": "horror"}, {"target_id": "sf"}]


def test_load_all_skips_empty_records(storage):
    assert sorted(storage.load_multiple()) == ["m1", "m2"]


def test_load_single(storage):
    assert storage.load("m2")["year"] == [{"value": 1995}]
    assert storage.load("missing") is None


def test_load_empty_id_list_does_not_hit_client(storage):
    assert storage.load_multiple([]) == {}
    assert storage.storage_client.requested == []


def test_integer_ids_are_cleaned(storage_client_builder):
    entity_type = ExternalEntityType(
        {
            "id": "counter",
            "fields": {"id": {"type": "integer"}},
            "field_mapper_config": {"field_mappings": {"id": {"value": "id"}, "title": {"value": "name"}}},
        }
    )
    client = storage_client_builder({1: {"id": 1, "name": "one"}, 2: {"id": 2, "name": "two"}}, id_key="id")
    storage = ExternalEntityStorage(entity_type, client)
    assert storage.clean_ids(["1", 2.0, "2.5", "abc", None]) == [1, 2]
    assert sorted(storage.load_multiple(["1", "x"])) == [1]
    assert storage.load_multiple(["x", "y"]) == {}
    assert client.requested == [[1]]


def test_map_raw_data_listener(storage):
    def add_source(raw_data, entity_values):
        entity_values["plain_source"] = [{"value": raw_data["uuid"]}]
        return entity_values

    storage.add_map_raw_data_listener(add_source)
    assert storage.load("m1")["plain_source"] == [{"value": "m1"}]


def test_query(storage):
    entities = storage.query({"year": 1995})
    assert list(entities) == ["m2"]
    assert storage.count({"year": 1979}) == 1


def test_query_skips_records_without_id(entity_type, storage_client_builder, caplog):
    storage = ExternalEntityStorage(entity_type, storage_client_builder({"x": {"title": "No id"}}))
    assert storage.query() == {}
    assert "without id" in caplog.text


def test_query_paging(storage):
    assert len(storage.query(start=1, length=1)) == 1


def test_save_writes_raw_data(storage):
    new_id = storage.save(
        {
            "id": [{"value": "m9"}],
            "uuid": [{"value": "m9"}],
            "title": [{"value": "Brazil"}],
            "genre": [{"target_id": "satire"}],
            "year": [{"value": 1985}],
        }
    )
    assert new_id == "m9"
    assert storage.storage_client.saved == [
        {"uuid": "m9", "title": "Brazil", "genres": ["satire"], "year": 1985}
    ]
    assert storage.load("m9")["genre"] == [{"target_id": "satire"}]


def test_delete(storage):
    storage.delete("m1")
    assert storage.storage_client.deleted == ["m1"]
    assert storage.load("m1") is None


def test_read_only_type_refuses_writes(entity_type_config, storage_client_builder):
    entity_type_config["read_only"] = True
    client = storage_client_builder(MOVIES)
    storage = ExternalEntityStorage(ExternalEntityType(entity_type_config), client)
    with pytest.raises(ReadOnlyEntityTypeError):
        storage.save({"title": [{"value": "x"}]})
    with pytest.raises(ReadOnlyEntityTypeError):
        storage.delete("m1")
    assert client.saved == []
    assert client.deleted == []
