"""Proxy switching operations and state-change notifications."""

import logging
from typing import Awaitable, Callable, Optional

from ..errors import NoProxySelected, PrivilegeError, ProxyError, ProxyNotFound
from ..models.proxy import OperationResult, ProxyEntry, ProxyInput, ProxyState
from .proxy_storage import ProxyStorage
from .system_proxy import SystemProxy

logger = logging.getLogger(__name__)

StateListener = Callable[[ProxyState], Awaitable[None]]


class ProxyManager:
    def __init__(self, storage: ProxyStorage, system_proxy: SystemProxy):
        self.storage = storage
        self.system_proxy = system_proxy
        self._listeners: list[StateListener] = []

    def add_listener(self, callback: StateListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: StateListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def get_state(self) -> ProxyState:
        current_id = self.storage.get_current_proxy()
        return ProxyState(
            current_proxy=self.storage.get_proxy_by_id(current_id),
            current_proxy_id=current_id,
            proxy_enabled=self.storage.get_proxy_enabled(),
        )

    # -- operations ------------------------------------------------------

    async def enable(self) -> OperationResult:
        return await self._guarded(self._enable)

    async def disable(self) -> OperationResult:
        return await self._guarded(self._disable)

    async def toggle(self, enabled: bool) -> OperationResult:
        return await self.enable() if enabled else await self.disable()

    async def switch(self, proxy_id: str) -> OperationResult:
        return await self._guarded(self._switch, proxy_id)

    async def set_selected_interfaces(self, services: list[str]) -> OperationResult:
        return await self._guarded(self._set_selected_interfaces, services)

    async def add_proxy(self, proxy: ProxyInput) -> ProxyEntry:
        entry = self.storage.add_proxy(proxy)
        logger.info(f"Added proxy {entry.name} ({entry.id})")
        await self._notify()
        return entry

    async def update_proxy(self, proxy_id: str, proxy: ProxyInput) -> OperationResult:
        return await self._guarded(self._update_proxy, proxy_id, proxy)

    async def delete_proxy(self, proxy_id: str) -> OperationResult:
        return await self._guarded(self._delete_proxy, proxy_id)

    # -- internals -------------------------------------------------------

    async def _enable(self) -> None:
        proxy_id = self.storage.get_current_proxy()
        if not proxy_id:
            raise NoProxySelected()
        proxy = self.storage.get_proxy_by_id(proxy_id)
        if proxy is None:
            raise ProxyNotFound(proxy_id)

        await self.system_proxy.set_and_enable_proxy(
            proxy, self.storage.get_selected_network_services()
        )
        self.storage.set_proxy_enabled(True)
        logger.info(f"Proxy {proxy.name} enabled")

    async def _disable(self, selected: Optional[list[str]] = None) -> None:
        # Without a valid current proxy every proxy type is switched off
        proxy = self.storage.get_proxy_by_id(self.storage.get_current_proxy())
        if selected is None:
            selected = self.storage.get_selected_network_services()
        await self.system_proxy.disable_proxy(proxy, selected)
        self.storage.set_proxy_enabled(False)
        logger.info("Proxy disabled")

    async def _switch(self, proxy_id: str) -> None:
        if self.storage.get_proxy_by_id(proxy_id) is None:
            raise ProxyNotFound(proxy_id)
        was_enabled = self.storage.get_proxy_enabled()
        if was_enabled:
            await self._disable()
        self.storage.set_current_proxy(proxy_id)
        if was_enabled:
            await self._enable()

    async def _set_selected_interfaces(self, services: list[str]) -> None:
        previous = self.storage.get_selected_network_services()
        was_enabled = self.storage.get_proxy_enabled()
        if was_enabled and previous != services:
            await self._disable(previous)
        self.storage.set_selected_network_services(services)
        if was_enabled and previous != services:
            await self._enable()

    async def _update_proxy(self, proxy_id: str, proxy: ProxyInput) -> None:
        updated = self.storage.update_proxy(proxy_id, proxy)
        if self.storage.get_current_proxy() == proxy_id and self.storage.get_proxy_enabled():
            # A type change would leave the old type switched on
            await self.system_proxy.reapply_proxy(
                updated, self.storage.get_selected_network_services()
            )

    async def _delete_proxy(self, proxy_id: str) -> None:
        if self.storage.get_current_proxy() == proxy_id and self.storage.get_proxy_enabled():
            await self._disable()
        self.storage.delete_proxy(proxy_id)

    async def _guarded(self, operation, *args) -> OperationResult:
        try:
            await operation(*args)
            result = OperationResult(success=True)
        except PrivilegeError as e:
            logger.error(f"{operation.__name__.lstrip('_')} failed: {e.message}")
            result = OperationResult(success=False, error=e.message, error_kind=e.kind)
        except ProxyError as e:
            logger.error(f"{operation.__name__.lstrip('_')} failed: {e}")
            result = OperationResult(success=False, error=str(e))
        await self._notify()
        return result

    async def _notify(self) -> None:
        state = self.get_state()
        for cb in list(self._listeners):
            try:
                await cb(state)
            except Exception as e:
                logger.warning(f"State listener failed: {e}")
