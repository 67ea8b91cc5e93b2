"""
TubeShield Sanitizer — Strips advertising properties from decoded player and
browse payloads in place. Containers are never copied, so callers holding a
reference to any branch keep seeing the same object.
"""

from .signatures import AD_PROPERTIES, WRAPPED_DESCRIPTOR_KEY

DEFAULT_MAX_DEPTH = 15


def strip_ad_properties(node, signatures=AD_PROPERTIES) -> int:
    """Delete signature keys from a single mapping. Returns how many were removed."""
    if not isinstance(node, dict):
        return 0
    removed = 0
    for key in signatures:
        if key in node:
            del node[key]
            removed += 1
    return removed


def _strip_wrapped(node, depth: int, max_depth: int, signatures) -> int:
    """Clean a `playerResponse` child one level down, when it is within the ceiling."""
    if depth + 1 >= max_depth or not isinstance(node, dict):
        return 0
    return strip_ad_properties(node.get(WRAPPED_DESCRIPTOR_KEY), signatures)


def sanitize_count(node, depth: int = 0, max_depth: int = DEFAULT_MAX_DEPTH,
                   signatures=AD_PROPERTIES) -> int:
    """Same walk as `sanitize`, returning how many properties were removed."""
    if depth >= max_depth:
        return 0

    removed = 0
    if isinstance(node, list):
        for item in node:
            removed += _strip_wrapped(item, depth + 1, max_depth, signatures)
            removed += sanitize_count(item, depth + 1, max_depth, signatures)
        return removed

    if not isinstance(node, dict):
        return 0

    removed += strip_ad_properties(node, signatures)
    removed += _strip_wrapped(node, depth, max_depth, signatures)

    for value in list(node.values()):
        if isinstance(value, (dict, list)):
            removed += sanitize_count(value, depth + 1, max_depth, signatures)
    return removed


def sanitize(node, depth: int = 0, max_depth: int = DEFAULT_MAX_DEPTH,
             signatures=AD_PROPERTIES) -> None:
    """
    Recursively remove ad properties from `node`.

    Mappings lose every key listed in `signatures`; lists are walked element by
    element. Anything at or beyond `max_depth` is left as it is, which also stops
    runaway recursion on self-referencing structures. Scalars and None are no-ops.
    """
    sanitize_count(node, depth, max_depth, signatures)
