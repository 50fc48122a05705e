"""Structural checks for parsed pricing-tier output.

Pure functions only: nothing here logs, raises on bad input, or touches
external state.
"""


def unwrap_tiers(parsed):
    """Return the tier sequence from a bare list or a ``{"tiers": [...]}`` wrapper.

    Returns None when *parsed* is neither shape.
    """
    if isinstance(parsed, dict):
        parsed = parsed.get("tiers")
    if isinstance(parsed, list):
        return parsed
    return None


def _is_str_mapping(value):
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


def is_valid_tier(tier):
    """True if *tier* has string name/price and a str->str features mapping."""
    return (
        isinstance(tier, dict)
        and isinstance(tier.get("name"), str)
        and isinstance(tier.get("price"), str)
        and _is_str_mapping(tier.get("features"))
    )


def has_shared_feature_keys(tiers):
    """True if every tier exposes exactly the same set of feature names."""
    key_sets = [frozenset(t["features"]) for t in tiers]
    return all(ks == key_sets[0] for ks in key_sets[1:])


def is_valid(parsed, require_shared_keys=False):
    """Check that *parsed* conforms to the tiered pricing shape.

    Args:
        parsed: Any value produced by JSON parsing.
        require_shared_keys: Also require identical feature-key sets
            across tiers.

    Returns:
        bool
    """
    tiers = unwrap_tiers(parsed)
    if not tiers:
        return False
    if not all(is_valid_tier(t) for t in tiers):
        return False
    if require_shared_keys and not has_shared_feature_keys(tiers):
        return False
    return True
