from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from qrdine.db import get_db
from qrdine.config import settings
from qrdine.util.security import hash_pw
from qrdine.models.core import User, UserRole

router = APIRouter(prefix="/admin", tags=["admin"])

DEV_USERS = [
    ("admin@example.com", "Admin", UserRole.ADMIN, "admin123"),
    ("kitchen@example.com", "Kitchen", UserRole.KITCHEN, "kitchen123"),
    ("staff@example.com", "Floor Staff", UserRole.STAFF, "staff123"),
]

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    out = {}
    for email, name, role, password in DEV_USERS:
        u = db.query(User).filter(User.email == email).first()
        if not u:
            u = User(email=email, name=name, role=role, pass_hash=hash_pw(password), active=True)
            db.add(u); db.flush()
        out[role.value] = {"id": u.id, "email": email, "password": password}

    db.commit()
    return out
