# src/id_generator.py
"""
Typed Public ID Generator
Generates IDs in format: PREFIX-TIMESTAMP-RANDOM
Example: USR-1699564234-A7K9M2
"""

import secrets
import string
import time


# Prefix mapping for all resource types
PREFIX_MAP = {
    "user": "USR",
    "builder": "BLD",
    "admin": "ADM",
    "property": "PRP",
}

_RANDOM_ALPHABET = string.ascii_uppercase + string.digits


def generate_public_id(prefix: str) -> str:
    """
    Generate a typed public ID with format: PREFIX-TIMESTAMP-RANDOM

    Args:
        prefix: 3-letter type prefix (e.g., "USR", "BLD") or resource type name (e.g., "user")

    Returns:
        str: Public ID, e.g. "USR-1699564234-A7K9M2"

    The timestamp keeps IDs roughly sortable; the random part prevents
    enumeration.
    """
    if prefix in PREFIX_MAP:
        prefix = PREFIX_MAP[prefix]

    timestamp = int(time.time())
    random_part = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"{prefix}-{timestamp}-{random_part}"


def parse_public_id(public_id: str) -> dict:
    """
    Parse a public ID into its components.

    >>> parse_public_id("USR-1699564234-A7K9M2")["resource_type"]
    'user'
    """
    parts = (public_id or "").split("-")
    if len(parts) != 3:
        raise ValueError(f"Invalid public ID format: {public_id}")

    prefix, timestamp_str, random_part = parts
    try:
        timestamp = int(timestamp_str)
    except ValueError as e:
        raise ValueError(f"Failed to parse public ID '{public_id}': {e}")

    resource_type = next((rtype for rtype, rpref in PREFIX_MAP.items() if rpref == prefix), None)
    return {
        "prefix": prefix,
        "timestamp": timestamp,
        "random": random_part,
        "resource_type": resource_type,
    }


def validate_public_id(public_id: str, expected_prefix: str = None) -> bool:
    """
    Validate a public ID format and optionally check the prefix.

    >>> validate_public_id("USR-1699564234-A7K9M2", "USR")
    True
    >>> validate_public_id("BLD-1699564234-A7K9M2", "USR")
    False
    """
    try:
        parsed = parse_public_id(public_id)
    except ValueError:
        return False

    if expected_prefix in PREFIX_MAP:
        expected_prefix = PREFIX_MAP[expected_prefix]
    if expected_prefix and parsed["prefix"] != expected_prefix:
        return False

    return (
        parsed["prefix"].isupper()
        and parsed["random"].isalnum()
        and len(parsed["random"]) == 6
    )


__all__ = [
    "PREFIX_MAP",
    "generate_public_id",
    "parse_public_id",
    "validate_public_id",
]
