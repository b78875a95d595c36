# app/repositories/local_storage_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.local_storage import LocalStorageEntry


class LocalStorageRepository:
    """
    Data access layer for the session key-value store.

    - getItem / setItem / removeItem semantics.
    - No FastAPI, no cart logic.
    """

    def _get_entry(
        self, session: Session, namespace: str, key: str
    ) -> LocalStorageEntry | None:
        stmt = select(LocalStorageEntry).where(
            LocalStorageEntry.namespace == namespace,
            LocalStorageEntry.key == key,
        )
        return session.exec(stmt).first()

    def get_item(self, session: Session, namespace: str, key: str) -> str | None:
        entry = self._get_entry(session, namespace, key)
        return entry.value if entry else None

    def set_item(self, session: Session, namespace: str, key: str, value: str) -> None:
        entry = self._get_entry(session, namespace, key)
        if entry is None:
            entry = LocalStorageEntry(namespace=namespace, key=key, value=value)
        else:
            entry.value = value
            entry.updated_at = datetime.now(timezone.utc)
        session.add(entry)
        session.commit()

    def remove_item(self, session: Session, namespace: str, key: str) -> None:
        entry = self._get_entry(session, namespace, key)
        if entry is not None:
            session.delete(entry)
            session.commit()

