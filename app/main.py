# app/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app import scheduler

logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if settings.SCHEDULER_ENABLED:
        scheduler.init_scheduler()
    yield
    logger.info("Application shutting down...")
    scheduler.shutdown_scheduler()


app = FastAPI(
    title="Fundraiser Outreach Service",
    version="1.0.0",
    description="""
        **Fundraiser Outreach Service**

        Automated donor outreach and the donation ledger behind it.

        ## Features

        * **Drip Outreach**: Six-phase email schedule per athlete, anchored to the campaign start
        * **Manual Outreach**: Send to selected contacts on demand
        * **Donation Ledger**: Idempotent recording of Stripe checkout payments
        * **Delivery Tracking**: Bounces and complaints suppress contacts
        * **Reporting**: Stripe reconciliation and daily rollups

        ## Authentication

        Outreach endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        Internal endpoints require the `X-Internal-Api-Key` header.
        """,
    lifespan=lifespan,
)

origins = [origin for origin in [settings.FRONTEND_URL, "http://localhost:5173"] if origin]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Fundraiser Outreach Service is running"}
