"""Request-scoped access to the objects built in create_app()."""

from fastapi import Request

from ..privileged import AuthorizationBroker, PrivilegedCommandRunner
from ..services.proxy_manager import ProxyManager


def get_proxy_manager(request: Request) -> ProxyManager:
    return request.app.state.proxy_manager


def get_broker(request: Request) -> AuthorizationBroker:
    return request.app.state.privileges.broker


def get_runner(request: Request) -> PrivilegedCommandRunner:
    return request.app.state.privileges.runner
