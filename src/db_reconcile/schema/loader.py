"""Load a desired table definition from a YAML or JSON document.

Two document shapes are accepted.  A bare table:

    name: users
    primaryKey: [id]
    columns:
      - name: id
        type: integer

or the Kubernetes-style ``Table`` resource:

    apiVersion: schemas.schemahero.io/v1alpha4
    kind: Table
    spec:
      name: users
      schema:
        postgres:
          primaryKey: [id]
          columns: [...]
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from db_reconcile.schema.models import TableSpec


def _unwrap_resource(data: dict[str, Any]) -> dict[str, Any]:
    spec = data.get("spec")
    if not isinstance(spec, dict):
        return data

    schema = spec.get("schema") or {}
    table = dict(schema.get("postgres") or {}) if isinstance(schema, dict) else {}
    table.setdefault("name", spec.get("name"))
    return table


def parse_table_spec(data: Any, source: str = "<document>") -> TableSpec:
    """Validate an already-parsed document into a ``TableSpec``.

    Raises:
        ValueError: If the document is not a mapping or fails validation.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Table spec in {source} must be a mapping")
    try:
        return TableSpec.model_validate(_unwrap_resource(data))
    except ValidationError as e:
        raise ValueError(f"Invalid table spec in {source}: {e}") from e


def load_table_spec(path: str | Path) -> TableSpec:
    """Load and validate a table spec file.

    Args:
        path: YAML or JSON file (JSON is read as YAML).

    Returns:
        Validated ``TableSpec``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be parsed or fails validation.
    """
    spec_path = Path(path)
    if not spec_path.exists():
        raise FileNotFoundError(f"Table spec not found: {spec_path}")

    try:
        data = yaml.safe_load(spec_path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse {spec_path.name}: {e}") from e

    return parse_table_spec(data, spec_path.name)
