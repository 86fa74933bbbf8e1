# backend/auth.py

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_SECRET, TOKEN_TTL_MINUTES
from logic.errors import AuthError

bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


def create_token(user_id, ttl_minutes: int = TOKEN_TTL_MINUTES) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp())}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> int:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return int(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise AuthError("Invalid token", status_code=403)


def get_current_user_id(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> int:
    if creds is None or not creds.credentials:
        raise AuthError("No token provided", status_code=401)
    return decode_token(creds.credentials)
