"""Firestore-backed document store used in production deployments."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .models import ReconciliationDocument, Session, Student

logger = logging.getLogger(__name__)

APP_NAME = "absence-notifier"
SESSIONS_COLLECTION = "attendance_sessions"
STUDENTS_COLLECTION = "students"
NOTIFICATIONS_COLLECTION = "attendance_notifications"


class FirestoreStore:
    """Adapter exposing the document store operations over a Firestore client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get_sessions_by_date(self, day: str) -> List[Session]:
        query = self._client.collection(SESSIONS_COLLECTION).where("date", "==", day)
        return [Session.from_document(snapshot.to_dict()) for snapshot in query.stream()]

    def get_sessions_by_section(self, section: str) -> List[Session]:
        query = self._client.collection(SESSIONS_COLLECTION).where("section", "==", section)
        return [Session.from_document(snapshot.to_dict()) for snapshot in query.stream()]

    def get_students_by_section(self, section: str) -> List[Student]:
        query = self._client.collection(STUDENTS_COLLECTION).where("section", "==", section)
        return [Student.from_document(snapshot.to_dict()) for snapshot in query.stream()]

    def get_reconciliation(self, day: str) -> Optional[ReconciliationDocument]:
        snapshot = self._client.collection(NOTIFICATIONS_COLLECTION).document(day).get()
        if not snapshot.exists:
            return None
        return ReconciliationDocument.from_document(snapshot.to_dict())

    def put_reconciliation(self, document: ReconciliationDocument) -> None:
        # set() without merge replaces the whole document
        self._client.collection(NOTIFICATIONS_COLLECTION).document(document.date).set(
            document.to_document()
        )


def build_firestore_store(credentials_value: str) -> FirestoreStore:
    """Initialise a named Firebase app from a key file path or inline JSON."""

    if credentials_value.lstrip().startswith("{"):
        cred = credentials.Certificate(json.loads(credentials_value))
    else:
        cred = credentials.Certificate(credentials_value)
    try:
        app = firebase_admin.get_app(APP_NAME)
    except ValueError:
        app = firebase_admin.initialize_app(cred, name=APP_NAME)
        logger.info("Firebase initialized for project %s", app.project_id)
    return FirestoreStore(firestore.client(app))


__all__ = ["FirestoreStore", "build_firestore_store"]
