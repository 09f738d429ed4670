"""
Utility functions for the application.

- Millisecond timestamps from an injectable clock
- Masking of one-time codes for logs
- Human-readable wait times for rate limit messages
- Basic user agent parsing for session listings
"""

import math
import time
from typing import Callable, Mapping

Clock = Callable[[], float]


def now_ms(clock: Clock = time.time) -> int:
    """Return the clock's current time in integer milliseconds."""
    return int(clock() * 1000)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def mask_code(code: str) -> str:
    """
    Mask a one-time code for logging purposes, showing only first and last character.

    Args:
        code: The code to mask.

    Returns:
        A masked version of the code (e.g., "ABC123" -> "A****3").

    Examples:
        >>> mask_code("ABC123")
        'A****3'
        >>> mask_code("12")
        '12'
    """
    if len(code) <= 2:
        return code

    return f"{code[0]}{'*' * (len(code) - 2)}{code[-1]}"


def format_wait_time(seconds: float) -> str:
    """
    Format a wait time into a human-readable string.

    Examples:
        >>> format_wait_time(42)
        '42 seconds'
        >>> format_wait_time(90)
        '2 minutes'
        >>> format_wait_time(3900)
        '1 hours 5 minutes'
    """
    seconds = math.ceil(seconds)
    if seconds < 60:
        return f"{seconds} seconds"

    minutes = math.ceil(seconds / 60)
    if minutes < 60:
        return f"{minutes} minutes"

    hours, remaining_minutes = divmod(minutes, 60)
    formatted = f"{hours} hours"
    if remaining_minutes > 0:
        formatted += f" {remaining_minutes} minutes"
    return formatted


def get_device_info(user_agent: str | None) -> str | None:
    """
    Parse user agent string to extract basic device information.

    Args:
        user_agent: User-Agent header string captured with the session.

    Returns:
        "OS / Browser" when recognised, a truncated user agent otherwise,
        or None if user_agent is empty.

    Examples:
        >>> get_device_info("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0")
        'Windows / Chrome'
    """
    if not user_agent or user_agent == "Unknown":
        return None

    parts = []

    if "Windows" in user_agent:
        parts.append("Windows")
    elif "iPhone" in user_agent or "iPad" in user_agent or "iOS" in user_agent:
        parts.append("iOS")
    elif "Mac OS X" in user_agent or "Macintosh" in user_agent:
        parts.append("macOS")
    elif "Android" in user_agent:
        parts.append("Android")
    elif "Linux" in user_agent:
        parts.append("Linux")

    if "Edg/" in user_agent:
        parts.append("Edge")
    elif "Firefox" in user_agent:
        parts.append("Firefox")
    elif "Chrome" in user_agent:
        parts.append("Chrome")
    elif "Safari" in user_agent:
        parts.append("Safari")

    if parts:
        return " / ".join(parts)

    return user_agent[:100]


def is_mobile_user_agent(user_agent: str | None) -> bool:
    if not user_agent:
        return False
    return any(token in user_agent for token in ("Mobile", "Android", "iPhone"))


def get_client_ip(headers: Mapping[str, str], client_host: str | None = None) -> str:
    """
    Resolve the client address behind Cloudflare or a reverse proxy.

    Checks ``cf-connecting-ip``, then the first ``x-forwarded-for`` entry,
    then the socket peer.
    """
    if ip := headers.get("cf-connecting-ip"):
        return ip
    if forwarded := headers.get("x-forwarded-for"):
        return forwarded.split(",")[0].strip()
    return client_host or "127.0.0.1"
