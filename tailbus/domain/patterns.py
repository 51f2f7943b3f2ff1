"""Naming patterns for mapping collections onto JetStream streams."""

import re

_COLLECTION_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


class StreamPatterns:
    """Centralized stream and subject naming for bounded collections."""

    @staticmethod
    def stream(prefix: str, collection: str) -> str:
        """Generate the stream name backing a collection."""
        return f"{prefix}_{collection}"

    @staticmethod
    def subject(prefix: str, collection: str) -> str:
        """Generate the subject records of a collection are published on."""
        return f"{prefix}.{collection}"

    @staticmethod
    def is_valid_collection_name(name: str) -> bool:
        """Validate collection name format.

        Stream names may not contain whitespace, dots, ``*``, ``>`` or path
        separators, so collections are restricted to the same alphabet.
        """
        return bool(_COLLECTION_NAME.match(name))
