"""Client session, login lockout and security event modules."""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    AccountLockedError,
    SessionExpiredError,
)
from auth.types import (
    Session,
    SessionInfo,
    SessionCheck,
    AttemptResult,
    LockoutStatus,
    LoginResult,
    SecurityEventRecord,
    SecurityStatus,
)
from auth.config import AuthConfig, get_valkey_url
from auth.login_attempts import LoginAttemptTracker, hash_identifier
from auth.security_logger import SecurityEventLogger, SecurityEvent, ClientContext
from auth.session import SessionManager, ActivityThrottle
from auth.service import AuthService, format_lockout_time, is_valid_email
from auth.security import (
    CsrfTokenStore,
    ClientRateLimiter,
    PasswordStrength,
    generate_secure_token,
    secure_compare,
    validate_password_strength,
    mask_sensitive_data,
    is_trusted_url,
    detect_xss,
)
