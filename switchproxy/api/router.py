"""Aggregate all API sub-routers."""

from fastapi import APIRouter

from . import auth, interfaces, proxies, ws

api_router = APIRouter()

api_router.include_router(proxies.router)
api_router.include_router(interfaces.router)
api_router.include_router(auth.router)
api_router.include_router(ws.router)
