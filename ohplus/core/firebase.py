import json
import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger("ohplus.firebase")


def _service_account():
    raw = os.getenv("FIREBASE_CREDENTIALS_JSON")
    if raw:
        return credentials.Certificate(json.loads(raw))
    path = os.getenv("FIREBASE_CREDENTIALS_PATH")
    if path:
        return credentials.Certificate(path)
    logger.info("no service account configured, using application default credentials")
    return credentials.ApplicationDefault()


def _options() -> dict | None:
    options = {}
    if os.getenv("FIREBASE_PROJECT_ID"):
        options["projectId"] = os.getenv("FIREBASE_PROJECT_ID")
    if os.getenv("GCS_BUCKET"):
        options["storageBucket"] = os.getenv("GCS_BUCKET")
    return options or None


@lru_cache
def get_firebase_app():
    try:
        return firebase_admin.get_app()
    except ValueError:
        return firebase_admin.initialize_app(_service_account(), _options())


@lru_cache
def get_firestore_client():
    # FIRESTORE_EMULATOR_HOST is picked up by the client library itself.
    app = get_firebase_app()
    database_id = os.getenv("FIRESTORE_DATABASE_ID")
    if database_id:
        return firestore.client(app=app, database_id=database_id)
    return firestore.client(app=app)
