"""
Hashing Utilities — SHA-256 digests used to keep references out of the audit trail.
"""
import hashlib
import json


def generate_hash(data: dict) -> str:
    """Generate a SHA-256 hash of a dictionary (deterministic, sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()
