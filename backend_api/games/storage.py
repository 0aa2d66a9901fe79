"""
Media storage adapter for game images.

Thin wrapper over Django's default_storage so services only deal with storage
paths (strings) and a single error type.
"""
from __future__ import annotations

import logging
import os
import posixpath
import uuid

from django.core.files.storage import default_storage

from .exceptions import MediaStorageError

logger = logging.getLogger(__name__)


def _safe_name(filename: str) -> str:
    ext = os.path.splitext(os.path.basename(filename or ""))[1]
    return f"{uuid.uuid4().hex}{ext.lower()}"


# PUBLIC_INTERFACE
def upload(path_prefix: str, file) -> str:
    """Save an uploaded file under path_prefix and return its storage path."""
    target = posixpath.join(path_prefix, _safe_name(getattr(file, "name", "")))
    try:
        saved = default_storage.save(target, file)
    except OSError as e:
        logger.exception("Upload to %s failed", path_prefix)
        raise MediaStorageError(f"Failed to upload file: {e}")
    logger.debug("Uploaded %s", saved)
    return saved


# PUBLIC_INTERFACE
def delete_file(path: str) -> None:
    """Delete a single stored file; missing files are ignored."""
    if not path:
        return
    try:
        if default_storage.exists(path):
            default_storage.delete(path)
    except OSError as e:
        logger.exception("Delete of %s failed", path)
        raise MediaStorageError(f"Failed to delete file: {e}")


def _remove_tree(path_prefix: str) -> None:
    directories, files = default_storage.listdir(path_prefix)
    for name in files:
        default_storage.delete(posixpath.join(path_prefix, name))
    for name in directories:
        _remove_tree(posixpath.join(path_prefix, name))
    # FileSystemStorage leaves empty directories behind.
    try:
        os.rmdir(default_storage.path(path_prefix))
    except (NotImplementedError, FileNotFoundError):
        pass


# PUBLIC_INTERFACE
def remove_folder(path_prefix: str) -> None:
    """Remove every file stored under path_prefix. A missing folder is a no-op."""
    try:
        if not default_storage.exists(path_prefix):
            return
        _remove_tree(path_prefix)
    except (OSError, NotImplementedError) as e:
        logger.exception("Removing folder %s failed", path_prefix)
        raise MediaStorageError(f"Failed to remove media folder: {e}")
    logger.info("Removed media folder %s", path_prefix)
