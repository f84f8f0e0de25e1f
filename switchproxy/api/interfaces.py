"""Network interface (network service) endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..models.proxy import OperationResult
from ..services.proxy_manager import ProxyManager
from .deps import get_proxy_manager

router = APIRouter(prefix="/interfaces", tags=["interfaces"])


class SelectedInterfaces(BaseModel):
    services: list[str] = []  # empty means every interface


@router.get("")
async def list_interfaces(manager: ProxyManager = Depends(get_proxy_manager)):
    return {"services": await manager.system_proxy.get_network_services()}


@router.get("/selected", response_model=SelectedInterfaces)
async def get_selected_interfaces(manager: ProxyManager = Depends(get_proxy_manager)):
    return SelectedInterfaces(services=manager.storage.get_selected_network_services())


@router.put("/selected", response_model=OperationResult)
async def set_selected_interfaces(
    req: SelectedInterfaces,
    manager: ProxyManager = Depends(get_proxy_manager),
):
    return await manager.set_selected_interfaces(req.services)
