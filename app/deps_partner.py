# app/deps_partner.py
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.db import get_db
from app.security import decode_access_token
from models.partners import Partner, PartnerStatus

# Authorization: Bearer <token>
oauth2_scheme_partner = OAuth2PasswordBearer(tokenUrl="/partner/login")


def get_current_partner(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme_partner),
) -> Partner:
    """
    Returns the Partner behind the JWT.
    Only tokens whose 'sub' is a numeric partner id are accepted;
    admin tokens ('admin:<id>') are refused here.
    """
    partner_id = decode_access_token(token)

    if partner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired partner token.",
        )

    if not str(partner_id).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not valid for partner access.",
        )

    partner = (
        db.query(Partner)
        .filter(Partner.id == int(partner_id), Partner.status != PartnerStatus.SUSPENDED)
        .first()
    )

    if not partner:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Partner not found or suspended.",
        )

    return partner
