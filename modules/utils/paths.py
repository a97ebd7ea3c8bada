"""
Dot-path access and non-mutating merge helpers for nested documents.

Paths address dict keys by name and list items by integer index:
'lighting.conditions', 'objects.0.orientation'.
"""

import copy


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict.

    Nested dicts merge key by key; every other value (lists included)
    replaces the base value whole. Neither argument is modified.
    """
    merged = {}
    for key, value in base.items():
        merged[key] = copy.deepcopy(value)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def split_path(path: str) -> list:
    return [int(s) if s.isdigit() else s for s in path.split(".")]


def get_at_path(document, path: str, default=None):
    """Get nested value using dot notation, or default when absent."""
    value = document
    for key in split_path(path):
        if isinstance(value, dict) and key in value:
            value = value[key]
        elif isinstance(value, list) and isinstance(key, int) and key < len(value):
            value = value[key]
        else:
            return default
    return value


def set_at_path(document, path: str, value):
    """Return a copy of document with value set at path.

    Only the containers along the path are copied; untouched branches are
    shared with the original, which is never modified. Raises KeyError or
    IndexError when an intermediate container is missing.
    """
    keys = split_path(path)
    return _set(document, keys, copy.deepcopy(value), path)


def _set(node, keys, value, path):
    key = keys[0]
    if isinstance(node, dict):
        clone = dict(node)
        if len(keys) == 1:
            clone[key] = value
            return clone
        if key not in node:
            raise KeyError(f"Path '{path}' has no container at '{key}'")
        clone[key] = _set(node[key], keys[1:], value, path)
        return clone

    if isinstance(node, list):
        if not isinstance(key, int) or key >= len(node):
            raise IndexError(f"Path '{path}' index {key!r} out of range")
        clone = list(node)
        clone[key] = value if len(keys) == 1 else _set(node[key], keys[1:], value, path)
        return clone

    raise KeyError(f"Path '{path}' descends into a non-container at '{key}'")
