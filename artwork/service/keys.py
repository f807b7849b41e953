"""
Cache key derivation.
"""
import hashlib


def derive_key(identifier):
    """MD5 hex digest of the UTF-8 bytes of a single identifier."""
    return hashlib.md5(identifier.encode('utf-8')).hexdigest()


def derive_composite_key(identifiers):
    """
    Derive a key for a set of identifiers.

    The identifiers are sorted and concatenated without a separator before
    hashing, so the key does not depend on the order they were given in.
    """
    return derive_key(''.join(sorted(identifiers)))
