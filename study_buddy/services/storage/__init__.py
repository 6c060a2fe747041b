"""
Storage module - remote stores and folder resolution.
"""

from study_buddy.services.storage.base import (
    BaseFolderStore,
    BaseIndexStore,
    BaseObjectStore,
)
from study_buddy.services.storage.drive import GoogleDriveFolderStore
from study_buddy.services.storage.firebase import FirebaseObjectStore, FirestoreIndexStore
from study_buddy.services.storage.folders import FolderResolver

__all__ = [
    "BaseFolderStore",
    "BaseIndexStore",
    "BaseObjectStore",
    "FirebaseObjectStore",
    "FirestoreIndexStore",
    "FolderResolver",
    "GoogleDriveFolderStore",
]
