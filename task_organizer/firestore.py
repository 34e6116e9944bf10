"""Shared Firestore client helper."""
from __future__ import annotations

from typing import Optional

_firestore_client = None


def get_firestore_client(project_id: Optional[str] = None):
    """Return a cached Firestore client instance."""

    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    import firebase_admin
    from firebase_admin import firestore

    if not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        firebase_admin.initialize_app(options=options)
    _firestore_client = firestore.client()
    return _firestore_client


def reset_firestore_client() -> None:
    """Forget the cached client (used by tests and app shutdown)."""

    global _firestore_client
    _firestore_client = None
