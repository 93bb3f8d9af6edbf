"""
Manifest Store module for buildcache.

JSON file storage for the per-file fingerprint manifest, with legacy
format migration.
"""

from .schema import (
    ManifestShapeError,
    document_version,
    migrate_legacy,
    parse_document,
)
from .store import ManifestStore

__all__ = [
    # Main classes
    "ManifestStore",
    "ManifestShapeError",
    # Schema
    "document_version",
    "migrate_legacy",
    "parse_document",
]
