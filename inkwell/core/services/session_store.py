"""
Server-side session records.

A session is stored under ``session:{user_id}:{session_id}`` and is valid
while the record exists and ``expires_at`` lies in the future. The signed
cookie only carries the ``(user_id, session_id)`` pair, so revoking a
session here logs that device out on its next request.
"""

import asyncio
import math
import time
import uuid
from typing import Any

from pydantic import ValidationError

from inkwell.core.config import session_logger, settings
from inkwell.core.exceptions.types import StoreBackendException
from inkwell.core.schemas.auth import SessionRecord
from inkwell.core.services.kv import KVStore
from inkwell.core.utils import Clock, now_ms


__all__ = ["SessionStore"]


class SessionStore:
    """
    Creates, reads, lists and revokes user sessions.

    Args:
        kv: Backing key-value store.
        max_age: Session lifetime in seconds.
        clock: Time source returning epoch seconds.
    """

    PREFIX = "session"
    _IMMUTABLE_FIELDS = frozenset({"user_id", "session_id"})

    def __init__(
        self,
        kv: KVStore,
        max_age: int = settings.SESSION_MAX_AGE,
        clock: Clock = time.time,
    ):
        self.kv = kv
        self.max_age = max_age
        self.clock = clock

    def _key(self, user_id: str, session_id: str) -> str:
        return f"{self.PREFIX}:{user_id}:{session_id}"

    def _user_prefix(self, user_id: str) -> str:
        return f"{self.PREFIX}:{user_id}:"

    async def _load(self, key: str) -> SessionRecord | None:
        data = await self.kv.get_json(key)
        if data is None:
            return None
        try:
            return SessionRecord.model_validate(data)
        except ValidationError as e:
            session_logger.error(f"Malformed session record at {key}: {e}")
            raise StoreBackendException(f"Corrupt value stored under {key}") from e

    def _is_live(self, record: SessionRecord) -> bool:
        return now_ms(self.clock) < record.expires_at

    async def create(
        self,
        user_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
        country: str | None = None,
    ) -> str:
        """
        Persist a new session for ``user_id``.

        Returns:
            str: The new session id (a random UUID4).
        """
        session_id = str(uuid.uuid4())
        now = now_ms(self.clock)
        record = SessionRecord(
            user_id=user_id,
            session_id=session_id,
            user_agent=user_agent,
            ip_address=ip_address,
            country=country,
            created_at=now,
            expires_at=now + self.max_age * 1000,
        )
        await self.kv.put(
            self._key(user_id, session_id),
            record.to_json(),
            expiration_ttl=self.max_age,
        )
        session_logger.info(f"Session created: user={user_id} session={session_id}")
        return session_id

    async def get(self, user_id: str, session_id: str) -> SessionRecord | None:
        """Return the live session, or None if it is missing or expired."""
        record = await self._load(self._key(user_id, session_id))
        if record is None or not self._is_live(record):
            return None
        return record

    async def update(self, user_id: str, session_id: str, **fields: Any) -> bool:
        """
        Merge ``fields`` into an existing session.

        ``user_id`` and ``session_id`` are never changed. The store TTL is
        recomputed from ``expires_at``.

        Returns:
            bool: False if the session does not exist.
        """
        key = self._key(user_id, session_id)
        record = await self._load(key)
        if record is None:
            return False

        changes = {k: v for k, v in fields.items() if k not in self._IMMUTABLE_FIELDS}
        updated = SessionRecord.model_validate(
            {**record.model_dump(), **changes}
        )

        ttl = math.ceil((updated.expires_at - now_ms(self.clock)) / 1000)
        await self.kv.put(key, updated.to_json(), expiration_ttl=max(1, ttl))
        return True

    async def delete(self, user_id: str, session_id: str) -> None:
        await self.kv.delete(self._key(user_id, session_id))
        session_logger.info(f"Session deleted: user={user_id} session={session_id}")

    async def list_by_user(self, user_id: str) -> list[SessionRecord]:
        """Return the user's live sessions, newest first."""
        keys = await self.kv.list(self._user_prefix(user_id))
        records = await asyncio.gather(*(self._load(key) for key in keys))
        sessions = [r for r in records if r is not None and self._is_live(r)]
        return sorted(sessions, key=lambda r: r.created_at, reverse=True)

    async def _delete_keys(self, keys: list[str]) -> None:
        results = await asyncio.gather(
            *(self.kv.delete(key) for key in keys), return_exceptions=True
        )
        errors = [
            (key, result)
            for key, result in zip(keys, results)
            if isinstance(result, BaseException)
        ]
        for key, error in errors:
            session_logger.error(f"Failed to delete session {key}: {error}")

        if errors:
            first = errors[0][1]
            if isinstance(first, StoreBackendException):
                raise first
            raise StoreBackendException(f"Failed to delete session {errors[0][0]}") from first

    async def delete_all_by_user(self, user_id: str) -> None:
        keys = await self.kv.list(self._user_prefix(user_id))
        await self._delete_keys(keys)
        session_logger.info(f"Deleted {len(keys)} sessions for user={user_id}")

    async def delete_others_by_user(self, user_id: str, keep_session_id: str) -> None:
        """Delete every session of ``user_id`` except ``keep_session_id``."""
        keys = await self.kv.list(self._user_prefix(user_id))
        doomed = []
        for key in keys:
            parts = key.split(":")
            session_id = parts[2] if len(parts) > 2 else None
            if session_id and session_id != keep_session_id:
                doomed.append(key)
        await self._delete_keys(doomed)
        session_logger.info(
            f"Deleted {len(doomed)} other sessions for user={user_id}"
        )
