"""
Manifest document schema parsing and migrations.
"""

import logging
from typing import Any

from buildcache.core.models import (
    CURRENT_FORMAT_VERSION,
    LEGACY_FORMAT_VERSION,
    FileState,
    Manifest,
    ManifestMetadata,
    now_ms,
)
from buildcache.core.tracker import stat_file

logger = logging.getLogger(__name__)


class ManifestShapeError(ValueError):
    """Raised when a manifest document does not have a recognizable shape."""
    pass


def document_version(document: dict[str, Any]) -> str | None:
    """Read the schema version, accepting the older `version` key."""
    version = document.get("formatVersion", document.get("version"))
    return version if isinstance(version, str) else None


def _document_entries(document: dict[str, Any]) -> dict[str, Any]:
    entries = document.get("entries", document.get("files", {}))
    if not isinstance(entries, dict):
        raise ManifestShapeError(f"entries must be an object, got {type(entries).__name__}")
    return entries


def parse_metadata(raw: Any, tool_version: str) -> ManifestMetadata:
    """Parse provenance metadata, tolerating missing or odd values."""
    if not isinstance(raw, dict):
        return ManifestMetadata(tool_version=tool_version)

    def _int_or_now(*keys: str) -> int:
        for key in keys:
            value = raw.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return int(value)
        return now_ms()

    version = raw.get("toolVersion", raw.get("nodeVersion"))
    return ManifestMetadata(
        created_at=_int_or_now("createdAt", "created"),
        last_modified_at=_int_or_now("lastModifiedAt", "lastModified"),
        tool_version=version if isinstance(version, str) else tool_version,
    )


def parse_entry(path: Any, raw: Any) -> FileState | None:
    """Parse one current-schema entry. Returns None for malformed entries."""
    if not isinstance(path, str) or not isinstance(raw, dict):
        return None
    fingerprint = raw.get("hash")
    size = raw.get("size")
    mtime = raw.get("mtime")
    if not isinstance(fingerprint, str) or not fingerprint:
        return None
    if not isinstance(size, int) or isinstance(size, bool):
        return None
    if not isinstance(mtime, (int, float)) or isinstance(mtime, bool):
        return None
    return FileState(path=path, hash=fingerprint, size=size, mtime=float(mtime))


def parse_current(document: dict[str, Any], tool_version: str) -> Manifest:
    """
    Build a Manifest from a current-schema document.

    Malformed entries are skipped individually rather than failing the load.

    Raises:
        ManifestShapeError: If entries is not an object
    """
    manifest = Manifest(metadata=parse_metadata(document.get("metadata"), tool_version))
    skipped = 0
    for path, raw in _document_entries(document).items():
        state = parse_entry(path, raw)
        if state is None:
            skipped += 1
            continue
        manifest.entries[path] = state
    if skipped:
        logger.warning(f"Skipped {skipped} malformed manifest entries")
        manifest.dirty = True
    return manifest


def migrate_legacy(document: dict[str, Any], tool_version: str) -> Manifest:
    """
    Migrate a 1.0.0 document (flat path -> hash map) to the current schema.

    Size and mtime are backfilled by stat'ing each path; paths that no
    longer resolve are dropped. Stored hashes are kept as-is and will be
    replaced on the next content-changing check.

    Raises:
        ManifestShapeError: If entries is not an object
    """
    logger.info("Migrating legacy cache manifest")
    manifest = Manifest(metadata=parse_metadata(document.get("metadata"), tool_version))
    dropped = 0
    for path, fingerprint in _document_entries(document).items():
        if not isinstance(path, str) or not isinstance(fingerprint, str) or not fingerprint:
            dropped += 1
            continue
        try:
            size, mtime = stat_file(path)
        except (OSError, ValueError):
            dropped += 1
            continue
        manifest.entries[path] = FileState(path=path, hash=fingerprint, size=size, mtime=mtime)

    # Force the next save to write the current schema
    manifest.dirty = True
    logger.info(
        f"Migrated {len(manifest.entries)} entries from format {LEGACY_FORMAT_VERSION}"
        f" ({dropped} dropped)"
    )
    return manifest


def parse_document(document: Any, tool_version: str) -> Manifest:
    """
    Turn a decoded JSON document into a Manifest, migrating older schemas.

    Unknown versions are read as the current schema on a best-effort basis.

    Raises:
        ManifestShapeError: If the document is not a recognizable manifest
    """
    if not isinstance(document, dict):
        raise ManifestShapeError(f"manifest must be an object, got {type(document).__name__}")

    version = document_version(document)
    if version == LEGACY_FORMAT_VERSION:
        return migrate_legacy(document, tool_version)

    if version is None:
        raise ManifestShapeError("manifest has no format version")

    manifest = parse_current(document, tool_version)
    if version != CURRENT_FORMAT_VERSION:
        logger.warning(
            f"Unknown manifest format {version}, reading as {CURRENT_FORMAT_VERSION}"
        )
    return manifest
