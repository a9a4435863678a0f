# ticketing/api/v1/api.py

from fastapi import APIRouter

from ticketing.api.v1.endpoints import auth, events, health, registrations, users

# This is the main router for the v1 API.
api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(registrations.router)
