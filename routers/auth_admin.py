# routers/auth_admin.py

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db import get_db
from app.passwords import verify_password
from app.security import create_access_token, decode_access_token
from models.admin import Admin
from schemas.admin import AdminLogin, AdminOut

router = APIRouter(prefix="/admin", tags=["Admin Auth"])

admin_bearer_scheme = HTTPBearer()


# ------------------------------
# POST /admin/login
# ------------------------------
@router.post("/login")
def admin_login(payload: AdminLogin, db: Session = Depends(get_db)):
    admin = (
        db.query(Admin)
        .filter(
            Admin.email == payload.email,
            Admin.is_active == True,  # noqa: E712
        )
        .first()
    )

    if not admin or not verify_password(payload.password, admin.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials.",
        )

    # admin tokens carry a prefixed subject: "admin:<id>"
    access_token = create_access_token({"sub": f"admin:{admin.id}"})

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin),
    }


# -------------------------------------------------
# Dependency: token must belong to an admin
# -------------------------------------------------
def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(admin_bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    subject = decode_access_token(credentials.credentials)

    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token.",
        )

    if not subject.startswith("admin:"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: not an admin token.",
        )

    try:
        admin_id = int(subject.split(":", 1)[1])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed admin token.",
        )

    admin = db.query(Admin).filter(Admin.id == admin_id, Admin.is_active == True).first()  # noqa: E712
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found.",
        )

    return admin


def get_current_superadmin(admin: Admin = Depends(get_current_admin)) -> Admin:
    if not admin.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin privileges required.",
        )
    return admin
