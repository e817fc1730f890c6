"""Decoding of the JSON payloads stored in Text columns."""

import json


def load_json(value, default):
    """Decode stored JSON text; NULL or undecodable text yields default."""
    if value is None:
        return default
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (ValueError, TypeError, RecursionError):
        return default
