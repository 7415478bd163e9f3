# routers/partners.py

import logging
import secrets
import string

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import get_db
from app.passwords import hash_password
from models.partners import Partner, PartnerStatus, PartnerTier
from schemas.partners import PartnerRegister, PartnerOut

router = APIRouter(prefix="/partners", tags=["Partners"])

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 6


def generate_referral_code(db: Session, attempts: int = 10) -> str:
    for _ in range(attempts):
        code = "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if not db.query(Partner.id).filter(Partner.referral_code == code).first():
            return code
    raise HTTPException(status_code=503, detail="Could not allocate a referral code, retry.")


@router.post("/register", response_model=PartnerOut, status_code=201)
def register_partner(payload: PartnerRegister, db: Session = Depends(get_db)):
    email = payload.email.lower()

    if db.query(Partner.id).filter(Partner.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered as partner.")

    referrer_id = None
    if payload.referrer_code:
        code = payload.referrer_code.strip().upper()
        referrer = db.query(Partner).filter(Partner.referral_code == code).first()
        if not referrer:
            raise HTTPException(status_code=400, detail="Unknown referral code.")
        referrer_id = referrer.id

    partner = Partner(
        name=payload.name.strip(),
        email=email,
        hashed_password=hash_password(payload.password),
        referral_code=generate_referral_code(db),
        status=PartnerStatus.PENDING,
        tier=PartnerTier.GROWTH,
        referrer_id=referrer_id,
    )

    db.add(partner)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email or referral code already in use.")
    db.refresh(partner)

    logger.info("Partner registered id=%s referrer_id=%s", partner.id, referrer_id)
    return partner
