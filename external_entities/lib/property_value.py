"""Normalize raw property values to the representation a data type expects."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from .types import (
    DATE_STORAGE_FORMAT,
    DATETIME,
    DATETIME_STORAGE_FORMAT,
    DATETIME_TYPE_DATE,
    REFERENCE,
    TIMESTAMP,
    FieldDefinition,
    PropertyTypeCatalog,
)

_LOGGER = logging.getLogger(__name__)


def _is_numeric(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, (int, float)):
        return True
    if isinstance(v, str):
        try:
            float(v)
        except ValueError:
            return False
        return True
    return False


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """Turn an epoch number or a date/time string into a UTC datetime.

    Naive strings are read as UTC wall clock time. Returns None when the
    value cannot be understood.
    """
    if value is None:
        return None
    if _is_numeric(value):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class PropertyValueProcessor(object):
    """Converts extracted raw values to canonical property values.

    Used on extraction only; values written back to raw data are already in
    canonical form.
    """

    def __init__(self, catalog: Optional[PropertyTypeCatalog] = None):
        self.catalog = catalog or PropertyTypeCatalog()

    def process(self, field_definition: FieldDefinition, property_name: str, value: Any) -> Any:
        property_definition = field_definition.get_property_definition(property_name)
        if property_definition is None or value is None:
            return value
        data_type = self.catalog.get(property_definition.data_type)

        if data_type.kind == REFERENCE:
            return value

        if data_type.kind in (DATETIME, TIMESTAMP):
            moment = to_utc_datetime(value)
            if moment is None:
                _LOGGER.warning(
                    "Could not read '%s' as a date for %s.%s, keeping raw value",
                    value,
                    field_definition.name,
                    property_name,
                )
                return value
            if data_type.kind == TIMESTAMP:
                return int(moment.timestamp())
            if field_definition.get_setting("datetime_type") == DATETIME_TYPE_DATE:
                return moment.strftime(DATE_STORAGE_FORMAT)
            return moment.strftime(DATETIME_STORAGE_FORMAT)

        if data_type.cast is None:
            return value
        try:
            return data_type.cast(value)
        except (TypeError, ValueError, OverflowError) as e:
            _LOGGER.warning(
                "Could not cast %r to %s for %s.%s (%s), keeping raw value",
                value,
                data_type.name,
                field_definition.name,
                property_name,
                e,
            )
            return value
