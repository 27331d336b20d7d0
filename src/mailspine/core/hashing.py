"""
Content checksums for migration integrity.

A migration's checksum is taken from its exact body at execution time and
stored in ``schema_migrations``. Recomputing it later tells an operator
whether a file was edited after it was applied.

Examples:
    >>> compute_checksum("CREATE TABLE t (id INTEGER);") == compute_checksum(
    ...     "CREATE TABLE t (id INTEGER);"
    ... )
    True
    >>> len(compute_checksum(""))
    64

Tags:
    hashing, checksum, integrity, migrations, mailspine
"""

import hashlib


def compute_checksum(content: str) -> str:
    """SHA-256 hex digest (64 chars) of the UTF-8 encoded content.

    No normalisation is applied: any byte change, whitespace included,
    changes the checksum.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


__all__ = ["compute_checksum"]
