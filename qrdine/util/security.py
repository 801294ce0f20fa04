import jwt
from datetime import datetime, timedelta, timezone
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError
from qrdine.config import settings

ph = PasswordHasher()

def hash_pw(p: str) -> str:
    return ph.hash(p)

def verify_pw(hashv: str, p: str) -> bool:
    try:
        ph.verify(hashv, p)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False

def create_token(sub: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": sub, "role": role, "iss": settings.JWT_ISS, "iat": int(now.timestamp())}
    # admin sessions live as long as the browser session; everyone else gets a hard cap
    if role != "admin":
        payload["exp"] = int((now + timedelta(hours=settings.SESSION_HOURS)).timestamp())
    return jwt.encode(payload, settings.APP_SECRET, algorithm="HS256")

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.APP_SECRET, algorithms=["HS256"], issuer=settings.JWT_ISS)

def is_session_expired(role: str, last_login_at: datetime | None, now: datetime | None = None) -> bool:
    if role == "admin":
        return False
    if last_login_at is None:
        return True
    if last_login_at.tzinfo is None:
        last_login_at = last_login_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - last_login_at > timedelta(hours=settings.SESSION_HOURS)
