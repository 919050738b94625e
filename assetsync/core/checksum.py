"""Content fingerprints used for sync integrity checks."""

import hashlib
import json
from typing import Any, Dict


def canonical_json(value: Any) -> str:
    """Serialize ``value`` with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def compute_checksum(value: Any) -> str:
    """Return the lowercase SHA-256 hex digest of ``value``'s canonical JSON form."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def entity_checksum(entity_type: str, entity_id: str, payload: Dict[str, Any]) -> str:
    return compute_checksum(
        {"entityType": entity_type, "entityId": entity_id, "payload": payload or {}}
    )
