"""
Mapping of Karakeep bookmark IDs onto Qdrant point IDs.

Qdrant only accepts unsigned integers or UUIDs as point IDs, so every bookmark
ID is hashed into a UUID-shaped string. The mapping is pure: re-syncing a
bookmark always targets the same point and overwrites it.
"""

import hashlib
import uuid


def to_vector_id(bookmark_id: str) -> str:
    """
    Convert a bookmark ID to its Qdrant point ID.

    Args:
        bookmark_id: Karakeep bookmark ID

    Returns:
        MD5 digest of the ID formatted as a lowercase 8-4-4-4-12 UUID string
    """
    digest = hashlib.md5(bookmark_id.encode("utf-8"), usedforsecurity=False).hexdigest()
    return str(uuid.UUID(hex=digest))
