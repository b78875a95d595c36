# app/models/local_storage.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, UniqueConstraint


class LocalStorageEntry(SQLModel, table=True):
    """
    Key-value entry scoped to one browser session.

    Plays the part of the browser's localStorage for guest carts:
    one row per (namespace, key), value is a JSON string.
    """

    __tablename__ = "local_storage"
    __table_args__ = (UniqueConstraint("namespace", "key"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    namespace: str = Field(
        index=True,
        description="Session id (value of the session cookie)",
    )

    key: str = Field(
        max_length=100,
        description="Entry name, e.g. 'cart'",
    )

    value: str = Field(
        description="Serialized JSON payload",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
