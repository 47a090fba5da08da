"""API routes."""

from fastapi import APIRouter

from leaderboard.routes import rankings

api_router = APIRouter()

# Leaderboard reads/writes
api_router.include_router(rankings.router, prefix="/v1/rankings", tags=["rankings"])
