"""Firebase Admin SDK initialisation."""

import logging

import firebase_admin
from firebase_admin import credentials

from powernaija.core.config import Settings

logger = logging.getLogger(__name__)

APP_NAME = "powernaija"


def init_firebase(settings: Settings) -> firebase_admin.App | None:
    """Initialise (or reuse) the Firebase app, or return None when unconfigured."""
    if not settings.firebase_enabled:
        logger.info("Firebase credentials not configured; identity tokens and push disabled")
        return None

    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    cert = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            # Keys pasted into .env files carry literal "\n" sequences
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )
    app = firebase_admin.initialize_app(cert, name=APP_NAME)
    logger.info("Firebase Admin initialized for project %s", settings.FIREBASE_PROJECT_ID)
    return app
