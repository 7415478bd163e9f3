import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ----------------------------------------------------
# 🔐 LOAD .ENV
# ----------------------------------------------------
load_dotenv(override=True)

from app.config import settings
from app.db import engine
from app.errors import PartnerProgramError
from models import Base

# Routers
from routers import auth_partner, auth_admin
from routers import partners, partner_portal, partner_subscription, partner_withdrawals
from routers import admin_partners, admin_bookings, admin_withdrawals
from routers import stripe_webhook

# ----------------------------------------------------
# 📝 LOGGING
# ----------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ----------------------------------------------------
# 🚀 FASTAPI APP
# ----------------------------------------------------
app = FastAPI(
    title="Guide Partner Backend",
    version="1.0.0",
)

# ----------------------------------------------------
# 🌐 CORS CONFIG
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.options("/{path:path}")
async def options_handler(path: str, request: Request):
    return Response(status_code=204)


# ----------------------------------------------------
# ⚠️ BUSINESS ERRORS → JSON
# ----------------------------------------------------
@app.exception_handler(PartnerProgramError)
async def partner_program_error_handler(request: Request, exc: PartnerProgramError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
        headers={"X-Error-Code": exc.code},
    )


# ----------------------------------------------------
# 🗄️ DB INIT (DEV ONLY)
# ----------------------------------------------------
if settings.env == "dev" and settings.db_auto_create:
    Base.metadata.create_all(bind=engine)

# ----------------------------------------------------
# 🔌 ROUTERS
# ----------------------------------------------------
app.include_router(partners.router)
app.include_router(auth_partner.router)
app.include_router(partner_portal.router)
app.include_router(partner_subscription.router)
app.include_router(partner_withdrawals.router)

app.include_router(auth_admin.router)
app.include_router(admin_partners.router)
app.include_router(admin_bookings.router)
app.include_router(admin_withdrawals.router)

app.include_router(stripe_webhook.router)


# ----------------------------------------------------
# 🏠 BASE
# ----------------------------------------------------
@app.get("/")
def root():
    return {"message": "Guide Partner backend up and running"}


@app.get("/health")
def health():
    return {"ok": True}
