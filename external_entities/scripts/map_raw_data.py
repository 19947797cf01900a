"""Map a file of raw data records through an external entity type.

    xntt-map movie.json records.json
    xntt-map movie.json entities.json --reverse -o raw.json

Records may be given as a list, as an object keyed by id, or as a single
record. A record that fails to map is reported and skipped.
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Tuple

from rich import pretty, print
from rich.logging import RichHandler

from external_entities.lib.config import ExternalEntityType, load_entity_type
from external_entities.lib.exceptions import ConfigurationError, ExternalEntitiesError

_LOGGER = logging.getLogger(__name__)


def _as_records(data: Any) -> List[Tuple[Any, Any]]:
    if isinstance(data, list):
        return list(enumerate(data))
    if isinstance(data, dict) and data and all(isinstance(v, dict) for v in data.values()):
        return list(data.items())
    return [(0, data)]


def map_records(entity_type: ExternalEntityType, data: Any, reverse: bool = False) -> Tuple[Dict[Any, Any], int]:
    """Map every record, returning the results keyed by record and the failure count."""
    mapper = entity_type.get_field_mapper()
    results = {}
    failed = 0
    for key, record in _as_records(data):
        if not isinstance(record, dict):
            failed += 1
            _LOGGER.error("Record %s failed: expected an object, got %s", key, type(record).__name__)
            continue
        try:
            if reverse:
                results[key] = mapper.create_raw_data_from_entity_values(record)
            else:
                record_id = mapper.extract_id_from_raw_data(record)
                results[key if record_id is None else record_id] = mapper.extract_entity_values_from_raw_data(record)
        except (ExternalEntitiesError, TypeError, ValueError, AttributeError) as e:
            failed += 1
            _LOGGER.error("Record %s failed: %s", key, e)
    return results, failed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xntt-map", description=__doc__.splitlines()[0])
    parser.add_argument("entity_type", help="entity type configuration (JSON)")
    parser.add_argument("records", help="raw data records, or entity values with --reverse (JSON)")
    parser.add_argument("--reverse", action="store_true", help="create raw data from entity values")
    parser.add_argument("-o", "--output", help="write the results to this JSON file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    pretty.install()

    try:
        entity_type = load_entity_type(args.entity_type)
    except ConfigurationError as e:
        print(f"[bold red][ERROR] {e}[/bold red]")
        return 2

    with open(args.records, "r", encoding="utf-8") as f:
        data = json.load(f)

    results, failed = map_records(entity_type, data, reverse=args.reverse)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2, default=str)
    else:
        for key, values in results.items():
            print(f"[bold blue][*] {entity_type.label} <{key}>[/bold blue]")
            print(values)

    print(
        f"[bold yellow][*] {entity_type.label_plural}: "
        f"{len(results)} mapped, {failed} failed[/bold yellow]"
    )
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
