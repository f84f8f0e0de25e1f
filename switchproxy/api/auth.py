"""Administrator authorization status and passwordless grant management."""

from fastapi import APIRouter, Depends

from ..errors import PrivilegeError
from ..models.privilege import AuthStatus
from ..models.proxy import OperationResult
from ..privileged import AuthorizationBroker, PrivilegedCommandRunner
from .deps import get_broker, get_runner

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/status", response_model=AuthStatus)
async def auth_status(broker: AuthorizationBroker = Depends(get_broker)):
    return await broker.status()


@router.post("/grant", response_model=OperationResult)
async def install_grant(
    broker: AuthorizationBroker = Depends(get_broker),
    runner: PrivilegedCommandRunner = Depends(get_runner),
):
    if await broker.probe_persistent_grant():
        return OperationResult(success=True)
    try:
        await runner.install_persistent_grant()
    except PrivilegeError as e:
        return OperationResult(success=False, error=e.message, error_kind=e.kind)
    return OperationResult(success=True)


@router.delete("/grant", response_model=OperationResult)
async def revoke_grant(runner: PrivilegedCommandRunner = Depends(get_runner)):
    try:
        await runner.revoke_persistent_grant()
    except PrivilegeError as e:
        return OperationResult(success=False, error=e.message, error_kind=e.kind)
    return OperationResult(success=True)
