"""
JSON file store for the build cache manifest.

A missing, unreadable or corrupt manifest is never fatal: load falls back to
a fresh empty manifest and the build runs with a cold cache. Write failures
are logged and the build continues.
"""

import json
import logging
import os
from pathlib import Path

from buildcache.core.models import Manifest, ManifestMetadata, now_ms

from .schema import migrate_legacy, parse_document

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Loads, migrates and saves manifests.

    Both operations block until the file I/O is complete, so callers can
    rely on load finishing before the first check and save finishing
    before the build phase ends.
    """

    def __init__(self, tool_version: str = ""):
        """
        Initialize the store.

        Args:
            tool_version: Version string stamped into new manifests
        """
        self._tool_version = tool_version

    def new_manifest(self) -> Manifest:
        """Create a fresh empty manifest stamped with this tool's version."""
        return Manifest(metadata=ManifestMetadata(tool_version=self._tool_version))

    def load(self, path: Path | str) -> Manifest:
        """
        Load a manifest from disk.

        Args:
            path: Manifest file path

        Returns:
            Loaded (and possibly migrated) manifest, or a fresh one if the
            file is missing or cannot be used
        """
        path = Path(path)
        if not path.exists():
            logger.info(f"No cache manifest at {path}, starting fresh")
            return self.new_manifest()

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
            manifest = parse_document(document, self._tool_version)
        except (OSError, ValueError, RecursionError) as e:
            # JSON, encoding and shape errors are all ValueErrors
            logger.warning(f"Failed to load cache manifest {path}, starting fresh: {e}")
            return self.new_manifest()

        logger.info(f"Loaded cache manifest with {len(manifest)} entries from {path}")
        return manifest

    def migrate(self, document: dict) -> Manifest:
        """
        Upgrade a decoded 1.0.0 document (flat path -> hash map) to the current schema.

        Raises:
            ManifestShapeError: If the document has no usable entries object
        """
        return migrate_legacy(document, self._tool_version)

    def save(self, path: Path | str, manifest: Manifest, force: bool = False) -> bool:
        """
        Persist a manifest if it changed.

        The document is written to a temporary sibling and moved into place,
        so an interrupted write leaves either the old file or the new one.

        Args:
            path: Manifest file path
            manifest: Manifest to write
            force: Write even if the manifest is not dirty

        Returns:
            True if the file was written
        """
        if not manifest.dirty and not force:
            logger.debug("Cache manifest unchanged, skipping save")
            return False

        path = Path(path)
        tmp_path = path.with_name(f"{path.name}.tmp")
        previous_modified = manifest.metadata.last_modified_at
        manifest.metadata.last_modified_at = now_ms()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(manifest.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            manifest.metadata.last_modified_at = previous_modified
            logger.error(f"Failed to save cache manifest {path}: {e}")
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            return False

        manifest.dirty = False
        logger.info(f"Cache manifest updated with {len(manifest)} entries")
        return True

    def delete(self, path: Path | str) -> bool:
        """Remove the manifest file. Returns True if a file was removed."""
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed cache manifest {path}")
        return True
