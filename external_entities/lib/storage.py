"""Storage of external entities: raw data from a storage client, mapped to entity values.

The storage client talks to the remote source; this module only moves raw
data documents through the entity type's field mapper.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import ExternalEntityType
from .exceptions import ReadOnlyEntityTypeError

_LOGGER = logging.getLogger(__name__)

RawData = Dict[str, Any]
EntityValues = Dict[str, List[Dict[str, Any]]]

# (raw_data, entity_values) -> entity_values
MapRawDataListener = Callable[[RawData, EntityValues], EntityValues]


class StorageClient(object):
    """Contract of the clients exchanging raw data with a remote source."""

    def load_multiple(self, ids: Optional[List[Any]] = None) -> Dict[Any, RawData]:
        raise NotImplementedError

    def load(self, id) -> Optional[RawData]:
        return self.load_multiple([id]).get(id)

    def save(self, raw_data: RawData) -> Any:
        raise NotImplementedError

    def delete(self, id) -> None:
        raise NotImplementedError

    def query(self, parameters=None, sorts=None, start: Optional[int] = None, length: Optional[int] = None) -> List[RawData]:
        raise NotImplementedError

    def count_query(self, parameters=None) -> int:
        raise NotImplementedError


class ExternalEntityStorage(object):
    def __init__(self, entity_type: ExternalEntityType, storage_client: StorageClient):
        self.entity_type = entity_type
        self.storage_client = storage_client
        self._listeners: List[MapRawDataListener] = []

    @property
    def field_mapper(self):
        return self.entity_type.get_field_mapper()

    def add_map_raw_data_listener(self, listener: MapRawDataListener) -> None:
        """Register a callback that may alter entity values after mapping."""
        self._listeners.append(listener)

    def clean_ids(self, ids: Iterable[Any]) -> List[Any]:
        """Drop ids that cannot exist when the id field is an integer."""
        ids = list(ids)
        id_field = self.entity_type.get_field_definitions().get("id")
        if id_field is not None and id_field.field_type == "integer":
            cleaned = []
            for i in ids:
                try:
                    number = float(i)
                    whole = number == int(number)
                except (TypeError, ValueError, OverflowError):
                    continue
                if whole:
                    cleaned.append(int(number))
            return cleaned
        return ids

    def map_from_raw_storage_data(self, data: Dict[Any, RawData]) -> Dict[Any, EntityValues]:
        entities = {}
        for id, raw_data in data.items():
            if not raw_data:
                continue
            entity_values = self.field_mapper.extract_entity_values_from_raw_data(raw_data)
            if not entity_values:
                continue
            for listener in self._listeners:
                entity_values = listener(raw_data, entity_values)
            entities[id] = entity_values
        return entities

    def load_multiple(self, ids: Optional[Iterable[Any]] = None) -> Dict[Any, EntityValues]:
        """Load and map records. ``None`` loads every record of the source."""
        if ids is not None:
            ids = self.clean_ids(ids)
            # An empty id list must not turn into "load everything".
            if not ids:
                return {}
        data = self.storage_client.load_multiple(ids)
        return self.map_from_raw_storage_data(data or {})

    def load(self, id) -> Optional[EntityValues]:
        return self.load_multiple([id]).get(id)

    def query(self, parameters=None, sorts=None, start=None, length=None) -> Dict[Any, EntityValues]:
        """Run a query on the source and map the results, keyed by their id."""
        data = {}
        for raw_data in self.storage_client.query(parameters, sorts, start, length):
            id = self.field_mapper.extract_id_from_raw_data(raw_data)
            if id is None:
                _LOGGER.warning("Skipping %s record without id", self.entity_type.id)
                continue
            data[id] = raw_data
        return self.map_from_raw_storage_data(data)

    def count(self, parameters=None) -> int:
        return self.storage_client.count_query(parameters)

    def save(self, entity_values: EntityValues) -> Any:
        if self.entity_type.is_read_only():
            raise ReadOnlyEntityTypeError(f"Can not save read-only external entities of type {self.entity_type.id}.")
        raw_data = self.field_mapper.create_raw_data_from_entity_values(entity_values)
        return self.storage_client.save(raw_data)

    def delete(self, id) -> None:
        if self.entity_type.is_read_only():
            raise ReadOnlyEntityTypeError(f"Can not delete read-only external entities of type {self.entity_type.id}.")
        self.storage_client.delete(id)
