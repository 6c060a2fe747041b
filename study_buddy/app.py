"""
Application factory.

``create_controller()`` wires settings, logging, the Firebase and Google
Drive adapters and the upload orchestrator into a ``SessionController``
the host app can drive. ``create_study_aids()`` builds the service that
requests transcripts and study aids for uploaded lectures.
"""

from collections.abc import Callable
from datetime import datetime

import httpx

from study_buddy.core.config import Settings, get_settings
from study_buddy.core.log import setup_logging
from study_buddy.core.models import SessionSnapshot
from study_buddy.services.capture.base import BaseCaptureDevice
from study_buddy.services.controller import SessionController
from study_buddy.services.identity import BaseIdentityProvider
from study_buddy.services.storage import (
    FirebaseObjectStore,
    FirestoreIndexStore,
    GoogleDriveFolderStore,
)
from study_buddy.services.study_aids import StudyAidService
from study_buddy.services.upload import UploadOrchestrator


def create_firebase_client(id_token: str, settings: Settings | None = None) -> httpx.AsyncClient:
    """HTTP client authorized with the user's Firebase ID token."""
    settings = settings or get_settings()
    return httpx.AsyncClient(
        headers={"Authorization": f"Bearer {id_token}"},
        timeout=settings.network_timeout,
    )


def create_controller(
    device: BaseCaptureDevice,
    identity: BaseIdentityProvider,
    firebase_client: httpx.AsyncClient,
    settings: Settings | None = None,
    on_change: Callable[[SessionSnapshot], None] | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> SessionController:
    """Build a fully configured ``SessionController``.

    Args:
        device: Platform capture device.
        identity: Signed-in user and drive authorization.
        firebase_client: Client for Firebase Storage and Firestore
            (see ``create_firebase_client``).
        settings: Overrides ``get_settings()``.
        on_change: Presentation-layer change listener.
        clock: Wall-clock source for session timing and upload stamps.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    orchestrator = UploadOrchestrator(
        identity=identity,
        object_store=FirebaseObjectStore(
            firebase_client,
            bucket=settings.firebase_storage_bucket,
            base_url=settings.firebase_storage_url,
        ),
        index_store=FirestoreIndexStore(
            firebase_client,
            project_id=settings.firebase_project_id,
            base_url=settings.firestore_url,
        ),
        folder_store_factory=lambda client: GoogleDriveFolderStore(
            client,
            api_url=settings.drive_api_url,
            upload_url=settings.drive_upload_url,
        ),
        settings=settings,
    )
    return SessionController(
        device, orchestrator, settings=settings, clock=clock, on_change=on_change
    )


def create_study_aids(
    identity: BaseIdentityProvider,
    firebase_client: httpx.AsyncClient,
    settings: Settings | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> StudyAidService:
    """Build a ``StudyAidService`` writing to the Firestore index."""
    settings = settings or get_settings()
    index_store = FirestoreIndexStore(
        firebase_client,
        project_id=settings.firebase_project_id,
        base_url=settings.firestore_url,
    )
    return StudyAidService(identity, index_store, settings=settings, clock=clock)
