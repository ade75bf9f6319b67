import copy
from typing import Any, Dict


def deep_merge(parent: Dict, child: Dict) -> Dict:
    """
    Recursively merges a child dictionary into a parent dictionary.
        - Dictionaries are merged recursively.
        - A child value of None leaves the parent value untouched, at any depth.
        - All other types from the child overwrite the parent.
    """
    merged: Dict[str, Any] = copy.deepcopy(parent)
    for key, child_value in child.items():
        if child_value is None:
            continue
        parent_value = merged.get(key)
        if isinstance(child_value, dict):
            base = parent_value if isinstance(parent_value, dict) else {}
            merged[key] = deep_merge(base, child_value)
        else:
            merged[key] = child_value
    return merged
