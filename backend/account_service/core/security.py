import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

# CryptContext handles password hashing using bcrypt
# 'deprecated="auto"' lets passlib flag hashes that need an upgrade
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    # OAuth-only accounts store an empty hash, which passlib cannot identify
    if not hashed_password:
        pwd_context.dummy_verify()
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a recognisable hash
        return False


def dummy_verify_password() -> None:
    """Burn the same time as a real verification when there is nothing to verify"""
    pwd_context.dummy_verify()


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    # bcrypt generates a fresh salt per call, so equal passwords hash differently
    return pwd_context.hash(password)


def create_token(
    subject: str,
    secret_key: str,
    algorithm: str,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, Optional[datetime]]:
    """
    Sign a session token for ``subject``.

    Returns the encoded token and its expiry (None when the token does
    not expire). The jti claim keeps tokens unique even when the same
    subject logs in twice within one second.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": subject,
        "jti": uuid.uuid4().hex,
        "iat": now,
    }

    expire = None
    if expires_delta is not None:
        expire = now + expires_delta
        to_encode["exp"] = expire

    encoded_jwt = jwt.encode(to_encode, secret_key, algorithm=algorithm)
    return encoded_jwt, expire


def decode_token(token: str, secret_key: str, algorithm: str) -> Optional[dict]:
    """Decode and verify a session token"""
    try:
        # Signature and, when present, exp are verified by jose
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        # Token is invalid - could be expired, tampered, or wrong secret key
        return None


def authorize(role: Optional[str], required_roles) -> bool:
    """Allow iff the resolved role is one of the endpoint's accepted roles.

    There is no hierarchy: an Admin token does not satisfy a "User" route
    unless that route lists "Admin" too.
    """
    return role is not None and role in set(required_roles)
