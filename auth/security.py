"""
Security utilities: password hashing and JWT access tokens.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import secrets

from jose import JWTError, jwt
import bcrypt
from fastapi.security import HTTPBearer

from core.logger import logger
import config

# Security schemes; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
BCRYPT_MAX_BYTES = 72


def is_password_hash(stored: Optional[str]) -> bool:
    """True when the stored value is a bcrypt hash rather than a legacy plaintext."""
    return bool(stored) and stored.startswith(BCRYPT_PREFIXES)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash. Passwords over bcrypt's 72 byte limit never match."""
    password_bytes = plain_password.encode('utf-8')
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError as e:
        logger.warning(f"Unreadable password hash: {e}")
        return False


def verify_legacy_password(plain_password: str, stored: str) -> bool:
    """Constant-time comparison for accounts still holding a plaintext password."""
    return secrets.compare_digest(plain_password.encode('utf-8'), stored.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Password validation should be done before calling this function.
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        raise ValueError("Password cannot be longer than 72 bytes")
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


# JWT Token utilities
def create_access_token(
    data: Dict[str, Any],
    secret_key: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode (userId, role, email)
        secret_key: Secret key for signing
        expires_delta: Optional expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": "access"
    })
    return jwt.encode(to_encode, secret_key, algorithm=config.ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Args:
        token: JWT token string
        secret_key: Secret key for verification

    Returns:
        Decoded token data or None if invalid or expired
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token verification error: {e}")
        return None
    if payload.get("type") != "access":
        return None
    return payload


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of an "Authorization: Bearer <token>" header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
