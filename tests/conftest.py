import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("EMAIL_ENABLED", "0")
os.environ.setdefault("ENV", "test")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import get_db
from app.main import app
from app.passwords import hash_password
from app.security import create_access_token
from models import Base
from models.admin import Admin
from models.partners import (
    Partner,
    PartnerStatus,
    PartnerTier,
    SubscriptionStatus,
    EntryFeeStatus,
    KycStatus,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

PASSWORD = "correct-horse-9"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def _override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


_counter = {"n": 0}


def _next_code() -> str:
    _counter["n"] += 1
    return f"T{_counter['n']:05d}"[-6:]


@pytest.fixture
def make_partner(db):
    def _make(
        *,
        status=PartnerStatus.APPROVED,
        tier=PartnerTier.GROWTH,
        subscription_status=SubscriptionStatus.INACTIVE,
        entry_fee_status=EntryFeeStatus.NONE,
        kyc_status=KycStatus.NONE,
        referrer=None,
        balance=0,
        bank=False,
        name=None,
    ) -> Partner:
        code = _next_code()
        partner = Partner(
            name=name or f"Guide {code}",
            email=f"{code.lower()}@example.com",
            hashed_password=hash_password(PASSWORD),
            referral_code=code,
            status=status,
            tier=tier,
            subscription_status=subscription_status,
            entry_fee_status=entry_fee_status,
            kyc_status=kyc_status,
            referrer_id=referrer.id if referrer else None,
            available_balance=Decimal(balance),
            total_earned=Decimal(balance),
            total_withdrawn=Decimal("0"),
        )
        if bank:
            partner.bank_name = "Mizuho"
            partner.bank_branch = "Shinjuku"
            partner.bank_account_type = "futsu"
            partner.bank_account_number = "1234567"
            partner.bank_account_holder = "YAMADA TARO"
        db.add(partner)
        db.commit()
        db.refresh(partner)
        return partner

    return _make


@pytest.fixture
def active_partner(make_partner):
    """Partner tier with a live subscription: 20 %."""
    return make_partner(
        tier=PartnerTier.PARTNER,
        subscription_status=SubscriptionStatus.ACTIVE,
        entry_fee_status=EntryFeeStatus.COMPLETED,
    )


@pytest.fixture
def withdrawable_partner(make_partner):
    return make_partner(kyc_status=KycStatus.APPROVED, bank=True, balance=50000)


@pytest.fixture
def admin(db):
    a = Admin(
        email="ops@example.com",
        hashed_password=hash_password(PASSWORD),
        is_active=True,
        is_superadmin=True,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def partner_headers(partner) -> dict:
    token = create_access_token({"sub": str(partner.id)})
    return {"Authorization": f"Bearer {token}"}


def admin_headers(admin) -> dict:
    token = create_access_token({"sub": f"admin:{admin.id}"})
    return {"Authorization": f"Bearer {token}"}
