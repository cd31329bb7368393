"""
Firebase Admin SDK initialisation shared by the identity and storage backends.
"""

import firebase_admin
from firebase_admin import credentials
from aashiyana.config import Settings
import logging

logger = logging.getLogger(__name__)

APP_NAME = "aashiyana"


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """
    Return the process-wide Firebase app, initialising it on first use.
    Without a credentials file the SDK falls back to application default
    credentials (e.g. the Cloud Run service account).
    """
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    cred = (
        credentials.Certificate(settings.firebase_credentials_path)
        if settings.firebase_credentials_path
        else credentials.ApplicationDefault()
    )
    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket

    app = firebase_admin.initialize_app(cred, options=options, name=APP_NAME)
    logger.info(f"Initialised Firebase app for project {settings.firebase_project_id or '<default>'}")
    return app
