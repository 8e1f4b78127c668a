from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from passlib.hash import pbkdf2_sha256 as hasher

from app.core.config import settings

def get_password_hash(password: str) -> str:
    return hasher.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return hasher.verify(plain_password, hashed_password)

def create_access_token(claims: Dict[str, Any], expires_in: Optional[int] = None) -> str:
    """
    Sign a bearer token carrying the given claims.
    """
    expire = datetime.now(timezone.utc) + timedelta(
        seconds=expires_in if expires_in is not None else settings.ACCESS_TOKEN_EXPIRE_SECONDS
    )
    to_encode = {**claims, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Return the token claims, or None when the signature or expiry is invalid.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
