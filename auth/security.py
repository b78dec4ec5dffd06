"""Security helpers: random tokens, CSRF tokens, and input screening.

None of these touch the network. The CSRF token lives in the short-lived
store alongside the session.
"""

import hmac
import re
import secrets
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from clients.storage import KeyValueStore
from utils.timezone import now_ms

CSRF_TOKEN_KEY = "csrf_token"

DEFAULT_TRUSTED_DOMAINS = (
    "omnimind24.com",
    "base44.io",
    "stripe.com",
    "js.stripe.com",
)

_SPECIAL_CHARS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')
_COMMON_PASSWORD_PATTERNS = (
    re.compile(r"^password", re.IGNORECASE),
    re.compile(r"^123456"),
    re.compile(r"^qwerty", re.IGNORECASE),
    re.compile(r"^admin", re.IGNORECASE),
    re.compile(r"^letmein", re.IGNORECASE),
)
_XSS_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"expression\s*\(", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"<svg.*onload", re.IGNORECASE),
)


def generate_secure_token(length: int = 32) -> str:
    """Hex-encoded token of `length` cryptographically random bytes."""
    return secrets.token_hex(length)


def secure_compare(a, b) -> bool:
    """Constant-time string comparison. False unless both are str."""
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return hmac.compare_digest(a.encode(), b.encode())


class CsrfTokenStore:
    """CSRF token kept in the short-lived store for form submissions."""

    def __init__(
        self,
        store: KeyValueStore,
        token_factory: Callable[[int], str] = generate_secure_token,
    ):
        self._store = store
        self._token_factory = token_factory

    def generate(self) -> str:
        """Mint, store and return a new token."""
        token = self._token_factory(32)
        self._store.set(CSRF_TOKEN_KEY, token)
        return token

    def get(self) -> str:
        """Current token, minting one if none is stored."""
        return self._store.get(CSRF_TOKEN_KEY) or self.generate()

    def validate(self, token: str | None) -> bool:
        stored = self._store.get(CSRF_TOKEN_KEY)
        if not stored or not token:
            return False
        return secure_compare(stored, token)


@dataclass
class PasswordStrength:
    """Password strength verdict with user-facing feedback."""

    is_valid: bool = False
    score: int = 0
    feedback: list[str] = field(default_factory=list)


def validate_password_strength(password) -> PasswordStrength:
    """
    Score a password from 0 to 6.

    One point each for: 8+ chars, 12+ chars, uppercase, lowercase, digit,
    special character. Common prefixes (password, 123456, ...) cost two
    points. Valid at score >= 4.
    """
    result = PasswordStrength()

    if not password or not isinstance(password, str):
        result.feedback.append("Password is required")
        return result

    if len(password) >= 8:
        result.score += 1
    else:
        result.feedback.append("Password must be at least 8 characters")

    if len(password) >= 12:
        result.score += 1

    if re.search(r"[A-Z]", password):
        result.score += 1
    else:
        result.feedback.append("Add uppercase letters")

    if re.search(r"[a-z]", password):
        result.score += 1
    else:
        result.feedback.append("Add lowercase letters")

    if re.search(r"[0-9]", password):
        result.score += 1
    else:
        result.feedback.append("Add numbers")

    if _SPECIAL_CHARS.search(password):
        result.score += 1
    else:
        result.feedback.append("Add special characters")

    if any(pattern.search(password) for pattern in _COMMON_PASSWORD_PATTERNS):
        result.score = max(0, result.score - 2)
        result.feedback.append("Avoid common password patterns")

    result.is_valid = result.score >= 4
    return result


def mask_sensitive_data(data, visible_start: int = 4, visible_end: int = 4) -> str:
    """
    Mask the middle of a secret for display.

    Example: mask_sensitive_data("sk_live_1234567890") -> "sk_l********7890"
    """
    if not data or not isinstance(data, str):
        return ""
    if len(data) <= visible_start + visible_end:
        return "****"

    start = data[:visible_start]
    end = data[len(data) - visible_end:]
    mask_length = min(8, len(data) - visible_start - visible_end)
    return f"{start}{'*' * mask_length}{end}"


def is_trusted_url(url: str, trusted_domains: Iterable[str] = ()) -> bool:
    """True if url's host is a trusted domain or one of its subdomains."""
    all_trusted = (*DEFAULT_TRUSTED_DOMAINS, *trusted_domains)
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except (ValueError, TypeError, AttributeError):
        return False
    if not parts.scheme or not hostname:
        return False
    return any(
        hostname == domain or hostname.endswith(f".{domain}")
        for domain in all_trusted
    )


def detect_xss(value) -> bool:
    """True if value contains a known script-injection pattern."""
    if not value or not isinstance(value, str):
        return False
    return any(pattern.search(value) for pattern in _XSS_PATTERNS)


class ClientRateLimiter:
    """
    In-memory sliding-window limiter for client-side operations.

    Usage:
        limiter = ClientRateLimiter(max_requests=30, window_seconds=60)
        if limiter.is_allowed():
            ...
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], int] = now_ms,
    ):
        self.max_requests = max_requests
        self.window_ms = int(window_seconds * 1000)
        self._clock = clock
        self._requests: list[int] = []

    def _prune(self, now: int) -> None:
        self._requests = [t for t in self._requests if now - t < self.window_ms]

    def is_allowed(self) -> bool:
        """Record a request and return whether it fits in the window."""
        now = self._clock()
        self._prune(now)

        if len(self._requests) >= self.max_requests:
            return False

        self._requests.append(now)
        return True

    def get_remaining(self) -> int:
        self._prune(self._clock())
        return max(0, self.max_requests - len(self._requests))

    def get_reset_time(self) -> int:
        """Milliseconds until the oldest request leaves the window."""
        if not self._requests:
            return 0
        oldest = min(self._requests)
        return max(0, self.window_ms - (self._clock() - oldest))
