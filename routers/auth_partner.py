from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.passwords import verify_password
from app.security import create_access_token
from models.partners import Partner, PartnerStatus
from schemas.auth import PartnerLoginRequest, TokenResponse

router = APIRouter(prefix="/partner", tags=["Partner Auth"])


@router.post("/login", response_model=TokenResponse)
def partner_login(payload: PartnerLoginRequest, db: Session = Depends(get_db)):
    partner = (
        db.query(Partner)
        .filter(
            Partner.email == payload.email,
            Partner.status != PartnerStatus.SUSPENDED,
        )
        .first()
    )

    if not partner or not verify_password(payload.password, partner.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid partner credentials.")

    access_token = create_access_token({"sub": str(partner.id)})

    return TokenResponse(access_token=access_token)
