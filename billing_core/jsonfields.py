# billing_core/jsonfields.py
"""Helpers for the JSON objects kept in text columns."""
import json
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def parse_json_object(raw, label='value'):
    """Decode a serialized object, returning ``{}`` when it is not one."""
    if raw is None or raw == '':
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Unparsable %s, using defaults: %s", label, e)
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def dump_json_object(value):
    """Serialize a mapping for storage; strings are kept as given."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(dict(value))
