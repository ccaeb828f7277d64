"""
Independent check that a found private key really controls the address.
"""

from evm_vanity.core import address_from_private_key
from evm_vanity.matcher import PatternSpec


def verify_match(private_key: bytes, expected_address: str, pattern: PatternSpec = None) -> dict:
    """Re-derive the address from private_key and compare.

    Returns dict with:
        address_match, pattern_match, derived_address, error
    """
    result = {
        "address_match": False,
        "pattern_match": None,
        "derived_address": None,
        "error": None,
    }

    try:
        derived = address_from_private_key(private_key)
    except ValueError as e:
        result["error"] = str(e)
        return result

    result["derived_address"] = derived
    result["address_match"] = derived == expected_address
    if pattern is not None:
        result["pattern_match"] = pattern.matches(derived)
    return result
