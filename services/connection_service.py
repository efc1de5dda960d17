# services/connection_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from config.settings import get_settings
from database import get_db
from models.connection import UserConnection
from utils.crypto import decrypt_credentials, encrypt_credentials, load_key

logger = logging.getLogger(__name__)


class ConnectionStore:
    """Encrypted per-user broker credentials, one row per (user, provider)."""

    def __init__(self, db: Session, key: Optional[bytes] = None):
        self.db = db
        self._key = key

    @property
    def key(self) -> bytes:
        if self._key is None:
            self._key = load_key(get_settings().credentials_encryption_key)
        return self._key

    def _row(self, user_id: str, provider: str) -> Optional[UserConnection]:
        return self.db.execute(
            select(UserConnection).where(
                UserConnection.user_id == user_id,
                UserConnection.provider == provider,
            )
        ).scalar_one_or_none()

    def list_providers(self, user_id: str) -> List[str]:
        return list(
            self.db.execute(
                select(UserConnection.provider)
                .where(UserConnection.user_id == user_id)
                .order_by(UserConnection.created_at)
            ).scalars().all()
        )

    def get_connection(self, user_id: str, provider: str) -> Optional[UserConnection]:
        return self._row(user_id, provider)

    def get_credentials(self, user_id: str, provider: str) -> Optional[Dict[str, Any]]:
        row = self._row(user_id, provider)
        if row is None:
            return None
        return decrypt_credentials(row.credentials, self.key)

    def save_credentials(self, user_id: str, provider: str, credentials: Dict[str, Any]) -> UserConnection:
        sealed = encrypt_credentials(credentials, self.key)
        row = self._row(user_id, provider)
        if row is None:
            row = UserConnection(user_id=user_id, provider=provider, credentials=sealed)
            self.db.add(row)
        else:
            row.credentials = sealed
        self.db.commit()
        self.db.refresh(row)
        logger.info("connection_saved provider=%s", provider)
        return row

    def delete(self, user_id: str, provider: str) -> bool:
        row = self._row(user_id, provider)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        logger.info("connection_deleted provider=%s", provider)
        return True


def get_connection_store(db: Session = Depends(get_db)) -> ConnectionStore:
    return ConnectionStore(db)
