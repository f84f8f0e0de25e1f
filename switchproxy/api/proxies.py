"""Proxy configuration and switching endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..models.proxy import OperationResult, ProxyEntry, ProxyInput, ProxyState
from ..services.proxy_manager import ProxyManager
from .deps import get_proxy_manager

router = APIRouter(tags=["proxies"])


class ToggleRequest(BaseModel):
    enabled: bool


class SwitchRequest(BaseModel):
    proxy_id: str


def _require_proxy(manager: ProxyManager, proxy_id: str) -> None:
    if manager.storage.get_proxy_by_id(proxy_id) is None:
        raise HTTPException(status_code=404, detail="Proxy configuration not found")


@router.get("/proxies")
async def list_proxies(manager: ProxyManager = Depends(get_proxy_manager)):
    state = manager.get_state()
    return {
        "proxies": manager.storage.get_proxies(),
        "current_proxy": state.current_proxy_id,
        "proxy_enabled": state.proxy_enabled,
    }


@router.post("/proxies", response_model=ProxyEntry)
async def add_proxy(proxy: ProxyInput, manager: ProxyManager = Depends(get_proxy_manager)):
    return await manager.add_proxy(proxy)


@router.put("/proxies/{proxy_id}", response_model=OperationResult)
async def update_proxy(
    proxy_id: str,
    proxy: ProxyInput,
    manager: ProxyManager = Depends(get_proxy_manager),
):
    _require_proxy(manager, proxy_id)
    return await manager.update_proxy(proxy_id, proxy)


@router.delete("/proxies/{proxy_id}", response_model=OperationResult)
async def delete_proxy(proxy_id: str, manager: ProxyManager = Depends(get_proxy_manager)):
    _require_proxy(manager, proxy_id)
    return await manager.delete_proxy(proxy_id)


@router.get("/proxy/state", response_model=ProxyState)
async def get_proxy_state(manager: ProxyManager = Depends(get_proxy_manager)):
    return manager.get_state()


@router.post("/proxy/toggle", response_model=OperationResult)
async def toggle_proxy(req: ToggleRequest, manager: ProxyManager = Depends(get_proxy_manager)):
    return await manager.toggle(req.enabled)


@router.post("/proxy/switch", response_model=OperationResult)
async def switch_proxy(req: SwitchRequest, manager: ProxyManager = Depends(get_proxy_manager)):
    return await manager.switch(req.proxy_id)
