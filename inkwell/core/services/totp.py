"""
Time-based one-time codes (RFC 4226 / RFC 6238).

Codes are rendered into an arbitrary alphabet instead of decimal digits, so
a six character code over ``ABCDEFGHJKLMNPQRSTUVWXYZ123456789`` carries far
more entropy than six digits while avoiding look-alike characters.

Example:
    >>> code, config = generate_totp(period=600, digits=6)
    >>> verify_totp(code, config)
    True
"""

import base64
import hashlib
import hmac
import math
import secrets
import time

from inkwell.core.schemas.auth import TOTPConfig
from inkwell.core.utils import Clock


__all__ = [
    "DEFAULT_CHARSET",
    "generate_secret",
    "generate_hotp",
    "generate_totp",
    "verify_totp",
]

DEFAULT_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ123456789"

_ALGORITHMS = {
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-512": "sha512",
}


def _hash_name(algorithm: str) -> str:
    try:
        return _ALGORITHMS[algorithm.upper()]
    except KeyError:
        raise ValueError(f"Unsupported TOTP algorithm: {algorithm}") from None


def _decode_secret(secret: str) -> bytes:
    padding = "=" * (-len(secret) % 8)
    return base64.b32decode(secret.upper() + padding)


def generate_secret(num_bytes: int = 10) -> str:
    """Return a random base32 secret without padding."""
    return base64.b32encode(secrets.token_bytes(num_bytes)).decode("ascii").rstrip("=")


def generate_hotp(
    secret: str,
    counter: int,
    digits: int = 6,
    algorithm: str = "SHA-256",
    char_set: str = DEFAULT_CHARSET,
) -> str:
    """
    Compute the HOTP value for ``counter``.

    The HMAC digest is dynamically truncated to a 31-bit integer which is
    then written out in base ``len(char_set)``, least significant symbol last.
    """
    digest = hmac.new(
        _decode_secret(secret),
        counter.to_bytes(8, "big"),
        _hash_name(algorithm),
    ).digest()

    offset = digest[-1] & 0x0F
    value = int.from_bytes(digest[offset : offset + 4], "big") & 0x7FFFFFFF

    base = len(char_set)
    code = ""
    for _ in range(digits):
        code = char_set[value % base] + code
        value //= base
    return code


def _counter(period: int, clock: Clock) -> int:
    return math.floor(clock() / period)


def generate_totp(
    period: int = 30,
    digits: int = 6,
    algorithm: str = "SHA-256",
    char_set: str = DEFAULT_CHARSET,
    secret: str | None = None,
    clock: Clock = time.time,
) -> tuple[str, TOTPConfig]:
    """
    Generate a code for the current time step.

    Returns:
        tuple: The code and the ``TOTPConfig`` needed to verify it later.
    """
    config = TOTPConfig(
        secret=secret or generate_secret(),
        algorithm=algorithm,
        digits=digits,
        period=period,
        char_set=char_set,
    )
    code = generate_hotp(
        config.secret,
        _counter(period, clock),
        digits=digits,
        algorithm=algorithm,
        char_set=char_set,
    )
    return code, config


def verify_totp(
    code: str,
    config: TOTPConfig,
    window: int = 1,
    clock: Clock = time.time,
) -> bool:
    """
    Check ``code`` against the time steps within ``window`` of now.

    Comparison is case-insensitive and constant-time per candidate.
    """
    candidate = code.strip().upper()
    if len(candidate) != config.digits or not candidate.isascii():
        return False

    counter = _counter(config.period, clock)
    for step in range(-window, window + 1):
        expected = generate_hotp(
            config.secret,
            counter + step,
            digits=config.digits,
            algorithm=config.algorithm,
            char_set=config.char_set,
        )
        if hmac.compare_digest(expected.upper(), candidate):
            return True
    return False
