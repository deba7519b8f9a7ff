"""
Seed loading for the Sanctions Law Reference Service

A seed is a JSON document with eight record collections plus
``schema_version`` and ``generated_on``. It is validated in full before any
write, then inserted table by table (parents first) inside a single
transaction: either every row lands or none does.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import Boolean, func, insert, select
from sqlalchemy.orm import Session

from record_utils import encode_json_array, encode_json_object
from sanctions_law.connection import DatabaseSessionProvider
from sanctions_law.models import Provision, SEED_TABLES

logger = logging.getLogger(__name__)

REQUIRED_COLLECTIONS = [name for name, _ in SEED_TABLES]
REQUIRED_METADATA = ('schema_version', 'generated_on')

JSON_ARRAY_COLUMNS = frozenset({'topics', 'legal_basis', 'keywords'})
JSON_OBJECT_COLUMNS = frozenset({'metadata'})

DEFAULT_SEED_FILE = Path(__file__).parent / "data" / "default_seed.json"


class SeedValidationError(ValueError):
    """Raised when a seed document is malformed; nothing has been written."""
    pass


def default_seed_path() -> Path:
    """Path of the dataset shipped with the package."""
    return DEFAULT_SEED_FILE


def load_seed_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and validate a seed document.

    Args:
        path: JSON file to read

    Returns:
        The decoded, validated seed

    Raises:
        FileNotFoundError: If the file does not exist
        SeedValidationError: If the JSON is invalid or incomplete
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            seed = json.load(f)
        except json.JSONDecodeError as e:
            raise SeedValidationError(f"Seed file is not valid JSON: {e}")
    validate_seed(seed)
    return seed


def validate_seed(seed: Any) -> None:
    """
    Check a seed document before it is written.

    Verifies that all eight collections are lists, that the version metadata
    strings are present, and that every regime's delisting procedure exists
    in the same seed (that link has no database-level foreign key).

    Raises:
        SeedValidationError: On the first problem found
    """
    if not isinstance(seed, Mapping):
        raise SeedValidationError("Seed must be a JSON object")

    for key in REQUIRED_COLLECTIONS:
        if not isinstance(seed.get(key), list):
            raise SeedValidationError(f"Seed is missing required array: {key}")

    for key in REQUIRED_METADATA:
        value = seed.get(key)
        if not isinstance(value, str) or not value.strip():
            raise SeedValidationError("Seed must include schema_version and generated_on strings")

    procedure_ids = {
        record.get('id') for record in seed['delisting_procedures']
        if isinstance(record, Mapping)
    }
    for regime in seed['sanctions_regimes']:
        if not isinstance(regime, Mapping):
            raise SeedValidationError("sanctions_regimes entries must be objects")
        procedure_id = regime.get('delisting_procedure_id')
        if procedure_id and procedure_id not in procedure_ids:
            raise SeedValidationError(
                f"Regime {regime.get('id')} references unknown delisting procedure {procedure_id}"
            )


def _prepare_row(model, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Map one seed record onto the model's attributes, encoding JSON columns."""
    if not isinstance(record, Mapping):
        raise SeedValidationError(f"{model.__tablename__} entries must be objects")

    row = {}
    for attr in model.__mapper__.column_attrs:
        column = attr.columns[0]
        if model is Provision and attr.key == 'id':
            continue
        value = record.get(column.name)
        if column.name in JSON_ARRAY_COLUMNS:
            value = encode_json_array(value)
        elif column.name in JSON_OBJECT_COLUMNS:
            value = encode_json_object(value)
        elif isinstance(column.type, Boolean):
            value = bool(value)
        row[attr.key] = value
    return row


def seed_database(provider: DatabaseSessionProvider, seed: Mapping[str, Any]) -> Dict[str, int]:
    """
    Insert a validated seed into an empty schema.

    Args:
        provider: Provider bound to a writable database
        seed: Seed document (validated again here)

    Returns:
        Rows inserted per collection

    Raises:
        SeedValidationError: Before any write, if the seed is malformed
        SQLAlchemyError: If an insert fails; the whole load is rolled back
    """
    validate_seed(seed)
    prepared = {
        name: [_prepare_row(model, record) for record in seed[name]]
        for name, model in SEED_TABLES
    }

    with provider.session_scope() as session:
        for name, model in SEED_TABLES:
            rows = prepared[name]
            if rows:
                session.execute(insert(model), rows)
            logger.debug("Inserted %d %s rows", len(rows), name)

    summary = summarize_seed(seed)
    logger.info("Seed loaded: %s", summary)
    return summary


def summarize_seed(seed: Mapping[str, Any]) -> Dict[str, int]:
    """Count records per collection in a seed document."""
    return {name: len(seed.get(name) or []) for name, _ in SEED_TABLES}


def count_records(session: Session) -> Dict[str, int]:
    """Count stored rows per table, keyed like the seed collections."""
    return {
        name: session.execute(select(func.count()).select_from(model)).scalar_one()
        for name, model in SEED_TABLES
    }


def resolve_seed(path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """
    Load the seed at ``path``, falling back to the packaged dataset.

    Only a missing file triggers the fallback; a present but broken file
    raises.
    """
    if path is not None and Path(path).exists():
        logger.info("Loading seed from %s", path)
        return load_seed_file(path)
    if path is not None:
        logger.warning("Seed file %s not found, using packaged default seed", path)
    return load_seed_file(default_seed_path())
