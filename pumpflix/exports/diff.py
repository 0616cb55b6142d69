"""Shallow structural diff of export definitions."""

import json
from typing import Any, Dict, List


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def compare_schemas(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, List[Any]]:
    """Compare the top-level keys of two definitions.

    ``added`` holds keys only present in ``new``, ``removed`` keys only present
    in ``old`` and ``modified`` the shared keys whose values differ, as
    ``{field, old_value, new_value}`` entries. Nested values are compared as a
    whole.
    """
    old = old or {}
    new = new or {}

    added = [key for key in new if key not in old]
    removed = [key for key in old if key not in new]
    modified = [
        {"field": key, "old_value": old[key], "new_value": new[key]}
        for key in old
        if key in new and _canonical(old[key]) != _canonical(new[key])
    ]

    return {"added": added, "removed": removed, "modified": modified}
