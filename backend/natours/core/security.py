# natours/core/security.py
"""
Security module for authentication and authorization.
Handles password hashing, JWT token creation/validation, password reset
tokens and the password-changed check used by the protect dependency.
"""
import datetime as dt
import hashlib
import secrets

import jwt  # PyJWT
from passlib.context import CryptContext

from natours.config import settings

# Password hashing context
# Argon2 salts every hash and runs with the library's fixed cost parameters
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
JWT_SECRET = settings.jwt_secret  # Secret key for JWT signing (use strong secret in production)
ACCESS_TOKEN_EXPIRE_MINUTES = settings.jwt_expires_in_minutes  # Token expiration time in minutes
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

# passwordChangedAt is written this far in the past so a token issued right after the change stays valid
PASSWORD_CHANGED_SKEW = dt.timedelta(seconds=1)


def utc_now() -> dt.datetime:
    """
    Get current UTC datetime with timezone information.
    """
    return dt.datetime.now(dt.timezone.utc)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, role: str, issued_at: dt.datetime | None = None) -> str:
    """
    Create a JWT access token for user authentication.

    Args:
        user_id: Unique user identifier (UUID string)
        role: User role ("user", "guide", "lead-guide" or "admin")
        issued_at: Override for the iat claim (defaults to now)

    Returns:
        Encoded JWT token string

    Token payload includes:
        - sub: Subject (user ID)
        - role: User role for authorization
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = issued_at or utc_now()
    payload = {
        "sub": user_id,  # Subject (user ID)
        "role": role,    # User role for RBAC
        "iat": now,      # Issued at timestamp
        "exp": now + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),  # Expiration timestamp
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])


def _timestamp(value: dt.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int(value.timestamp())


def password_changed_after(password_changed_at: dt.datetime | None, token_iat: int) -> bool:
    """
    True when the password was changed after the token was issued.

    Both sides are compared in whole seconds, like the iat claim itself.
    A user who never changed their password always returns False.
    """
    if password_changed_at is None:
        return False
    return int(token_iat) < _timestamp(password_changed_at)


def password_changed_timestamp() -> dt.datetime:
    """Value to store in password_changed_at when a password is set."""
    return utc_now() - PASSWORD_CHANGED_SKEW


def sha256_hex(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def create_password_reset_token() -> tuple[str, str, dt.datetime]:
    """
    Generate a password reset token.

    Returns:
        (plain token to email, sha256 hash to store, expiry timestamp)

    Only the hash is ever persisted, so a leaked database row cannot be
    used to reset a password.
    """
    plain = secrets.token_hex(32)
    expires = utc_now() + dt.timedelta(minutes=settings.password_reset_expires_minutes)
    return plain, sha256_hex(plain), expires
