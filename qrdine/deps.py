from datetime import datetime, timezone
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging
import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from qrdine.context import AppContext
from qrdine.db import get_db
from qrdine.models.common import as_utc
from qrdine.models.core import User
from qrdine.util.security import decode_token, is_session_expired

logger = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)

def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx

def user_from_token(token: str | None, db: Session) -> User:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = decode_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = db.get(User, data.get("sub"))
    if not user or not user.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    # the later of the recorded login and this token's issue time; a missed stamp leaves the old one
    issued = datetime.fromtimestamp(data.get("iat", 0), tz=timezone.utc)
    since = max(filter(None, [as_utc(user.last_login_at), issued]))
    if is_session_expired(user.role.value, since):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")
    return user

def current_user(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
                 db: Session = Depends(get_db)) -> User:
    return user_from_token(creds.credentials if creds else None, db)

def require_auth(user: User = Depends(current_user)) -> str:
    return user.id

def require_role(*roles: str):
    def _dep(user: User = Depends(current_user)) -> str:
        if user.role.value not in roles:
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")
        return user.id
    return _dep

_OUTCOME_HTTP = {
    "not_found": 404,
    "no_transition": 409,
    "stale": 409,
    "empty_cart": 400,
    "invalid": 422,
    "failed": 503,
}

def raise_for_outcome(result) -> None:
    """Turn a failed service Result into the matching HTTP error."""
    if result.ok:
        return
    code = _OUTCOME_HTTP.get(result.outcome.value, 500)
    raise HTTPException(status_code=code, detail=result.detail or result.outcome.value)

def commit_or_503(db: Session, what: str, refresh=None) -> None:
    """Commit ``db``; on a store failure roll back and answer 503 instead of a bare 500."""
    try:
        db.commit()
        if refresh is not None:
            db.refresh(refresh)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not %s", what)
        raise HTTPException(status_code=503, detail=f"could not {what}, please try again")
