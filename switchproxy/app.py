"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI

from .api.router import api_router
from .api.ws import ConnectionManager
from .config import Settings, settings
from .privileged import PrivilegeContext
from .services.proxy_manager import ProxyManager
from .services.proxy_storage import ProxyStorage
from .services.system_proxy import SystemProxy
from .utils.macos_commands import CommandExecutor, run_cmd

# Configure logging for our modules
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")


def create_app(
    app_settings: Optional[Settings] = None,
    executor: CommandExecutor = run_cmd,
) -> FastAPI:
    app_settings = app_settings or settings
    if app_settings.debug:
        logging.getLogger("switchproxy").setLevel(logging.DEBUG)

    app = FastAPI(
        title="switchproxy",
        version="0.1.0",
        description="macOS system proxy switcher",
    )

    privileges = PrivilegeContext.create(app_settings, executor=executor)
    system_proxy = SystemProxy(
        privileges.runner,
        networksetup=app_settings.networksetup_path,
        executor=executor,
    )
    proxy_manager = ProxyManager(ProxyStorage(app_settings.config_path), system_proxy)
    connections = ConnectionManager()
    proxy_manager.add_listener(connections.broadcast_state)

    app.state.settings = app_settings
    app.state.privileges = privileges
    app.state.proxy_manager = proxy_manager
    app.state.connections = connections

    app.include_router(api_router, prefix="/api")

    return app
