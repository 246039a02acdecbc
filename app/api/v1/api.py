# app/api/v1/api.py

from fastapi import APIRouter
from app.api.v1.endpoints import (
    public,
    outreach,
    internal,
    webhooks,
)

# This is the main router for the v1 API.
# It will include all the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(public.router)
api_router.include_router(outreach.router)
api_router.include_router(internal.router)
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
