"""
Verification code store.

Each pending verification lives under ``verification:{identifier}:{type}``
and holds the TOTP secret needed to check the code, the number of verify
attempts so far and the time of the last send or verify.

Policy enforced here:

- A new code cannot be sent within ``send_cooldown`` seconds of the last
  send or verify attempt.
- A record accepts at most ``max_attempts`` verify attempts.
- A record lives for one TOTP period from creation. Rewrites keep the
  remaining lifetime.
- A record is deleted as soon as a code verifies.
"""

import math
import time

from pydantic import ValidationError

from inkwell.core.config import settings, verification_logger
from inkwell.core.enums import VerificationType
from inkwell.core.exceptions.types import (
    CodeExpiredException,
    CooldownException,
    StoreBackendException,
)
from inkwell.core.schemas.auth import VerificationRecord
from inkwell.core.services.kv import KVStore
from inkwell.core.services.totp import generate_totp, verify_totp
from inkwell.core.utils import Clock, mask_code, now_ms


__all__ = ["VerificationStore"]


class VerificationStore:
    """
    Generates and checks one-time codes against the key-value store.

    Args:
        kv: Backing key-value store.
        period: Code lifetime in seconds.
        send_cooldown: Minimum seconds between two sends for one identifier.
        max_attempts: Verify attempts allowed per generated code.
        digits: Code length.
        algorithm: HMAC algorithm name ("SHA-1", "SHA-256" or "SHA-512").
        char_set: Alphabet codes are rendered in.
        clock: Time source returning epoch seconds.
    """

    PREFIX = "verification"

    def __init__(
        self,
        kv: KVStore,
        period: int = settings.TOTP_PERIOD,
        send_cooldown: int = settings.TOTP_SEND_COOLDOWN,
        max_attempts: int = settings.TOTP_MAX_ATTEMPTS,
        digits: int = settings.TOTP_DIGITS,
        algorithm: str = settings.TOTP_ALGORITHM,
        char_set: str = settings.TOTP_CHARSET,
        clock: Clock = time.time,
    ):
        self.kv = kv
        self.period = period
        self.send_cooldown = send_cooldown
        self.max_attempts = max_attempts
        self.digits = digits
        self.algorithm = algorithm
        self.char_set = char_set
        self.clock = clock

    def _key(self, type: VerificationType, identifier: str) -> str:
        return f"{self.PREFIX}:{identifier}:{VerificationType(type).value}"

    async def _load(self, key: str) -> VerificationRecord | None:
        data = await self.kv.get_json(key)
        if data is None:
            return None
        try:
            return VerificationRecord.model_validate(data)
        except ValidationError as e:
            verification_logger.error(f"Malformed verification record at {key}: {e}")
            raise StoreBackendException(f"Corrupt value stored under {key}") from e

    async def _check_cooldown(self, key: str, now: int) -> None:
        try:
            existing = await self._load(key)
        except StoreBackendException as e:
            # Availability wins over the cooldown.
            verification_logger.warning(
                f"Cooldown check skipped for {key}, store read failed: {e}"
            )
            return

        if existing is None or existing.last_activity_at is None:
            return

        remaining = self.send_cooldown - (now - existing.last_activity_at) / 1000
        if remaining > 0:
            seconds = math.ceil(remaining)
            verification_logger.info(
                f"Send cooldown active for {key}: {seconds}s remaining"
            )
            raise CooldownException(seconds)

    async def generate(self, type: VerificationType, identifier: str) -> str:
        """
        Create a fresh code for ``identifier``, replacing any pending one.

        Args:
            type: Verification channel.
            identifier: Normalized identifier (lower-cased email).

        Returns:
            str: The generated code.

        Raises:
            CooldownException: If the last send was within the cooldown window.
            StoreBackendException: If the new record cannot be written.
        """
        key = self._key(type, identifier)
        now = now_ms(self.clock)

        await self._check_cooldown(key, now)

        code, config = generate_totp(
            period=self.period,
            digits=self.digits,
            algorithm=self.algorithm,
            char_set=self.char_set,
            clock=self.clock,
        )
        record = VerificationRecord(
            type=type,
            identifier=identifier,
            verification_config=config,
            verify_attempts=0,
            last_activity_at=now,
            created_at=now,
        )
        await self.kv.put(key, record.to_json(), expiration_ttl=self.period)

        verification_logger.info(
            f"Verification code generated for {key}: {mask_code(code)}"
        )
        return code

    def _remaining_ttl(self, record: VerificationRecord, now: int) -> int:
        elapsed = (now - record.created_at) / 1000
        return max(1, math.ceil(self.period - elapsed))

    async def verify(
        self, type: VerificationType, identifier: str, code: str
    ) -> bool:
        """
        Check ``code`` and count the attempt.

        Returns:
            bool: True if the code matched. The record is deleted in that case.

        Raises:
            CodeExpiredException: If no record exists or its attempts are used up.
            StoreBackendException: If the store cannot be read or written.
        """
        key = self._key(type, identifier)
        record = await self._load(key)

        if record is None:
            verification_logger.info(f"Verify attempted without pending code: {key}")
            raise CodeExpiredException()

        if record.verify_attempts >= self.max_attempts:
            verification_logger.warning(f"Verify attempts exhausted for {key}")
            raise CodeExpiredException()

        valid = verify_totp(code, record.verification_config, clock=self.clock)

        now = now_ms(self.clock)
        updated = record.model_copy(
            update={
                "verify_attempts": record.verify_attempts + 1,
                "last_activity_at": now,
            }
        )
        await self.kv.put(
            key, updated.to_json(), expiration_ttl=self._remaining_ttl(record, now)
        )

        if valid:
            await self.delete(type, identifier)
            verification_logger.info(f"Verification succeeded for {key}")
            return True

        verification_logger.info(
            f"Verification failed for {key} "
            f"(attempt {updated.verify_attempts}/{self.max_attempts})"
        )
        return False

    async def exists(self, type: VerificationType, identifier: str) -> bool:
        return await self.kv.get(self._key(type, identifier)) is not None

    async def delete(self, type: VerificationType, identifier: str) -> None:
        await self.kv.delete(self._key(type, identifier))
