import json
from typing import Any


def canonical_json(obj: Any) -> bytes:
    """Sorted-key, whitespace-free UTF-8 JSON used for hashing."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")
