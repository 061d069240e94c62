"""
Combines and registers all versioned API endpoint routers.

This keeps routing modular and clean.
"""

# app/api/v1/router.py
from fastapi import APIRouter
from .endpoints import games, feed

api_router = APIRouter()
api_router.include_router(games.router, prefix="/games", tags=["Games"])
api_router.include_router(feed.router, prefix="/feed", tags=["Feed"])
