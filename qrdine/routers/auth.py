import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from qrdine.config import settings
from qrdine.db import SessionLocal, get_db
from qrdine.deps import current_user, commit_or_503
from qrdine.models.common import utcnow
from qrdine.models.core import User
from qrdine.schemas.common import Msg, Token
from qrdine.util.security import create_token, verify_pw, hash_pw

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def record_login_timestamp(user_id: str) -> None:
    with SessionLocal() as db:
        u = db.get(User, user_id)
        if u:
            u.last_login_at = utcnow()
            db.commit()


@router.post("/login", response_model=Token)
async def login(email: str, password: str, db: Session = Depends(get_db)):
    user = await run_in_threadpool(lambda: db.query(User).filter(User.email == email.lower()).first())
    if not user or not user.active or not await run_in_threadpool(verify_pw, user.pass_hash, password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    # bounded and non-fatal: a slow or failed stamp must not block sign-in
    try:
        await asyncio.wait_for(asyncio.to_thread(record_login_timestamp, user.id),
                               timeout=settings.LOGIN_STAMP_TIMEOUT_S)
    except asyncio.TimeoutError:
        logger.warning("login timestamp for %s timed out after %ss", user.id, settings.LOGIN_STAMP_TIMEOUT_S)
    except SQLAlchemyError:
        logger.warning("login timestamp for %s failed", user.id, exc_info=True)

    return Token(access_token=create_token(user.id, user.role.value), role=user.role.value)


@router.get("/me")
def me(user: User = Depends(current_user)):
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role.value}


@router.post("/change-password", response_model=Msg)
def change_password(current_password: str, new_password: str,
                    user: User = Depends(current_user), db: Session = Depends(get_db)):
    if len(new_password) < 6:
        raise HTTPException(400, detail="new password must be at least 6 characters")
    u = db.get(User, user.id)
    if not verify_pw(u.pass_hash, current_password):
        raise HTTPException(401, detail="current password is incorrect")
    u.pass_hash = hash_pw(new_password)
    commit_or_503(db, "update password")
    return Msg(message="password updated")
