"""networksetup command batches for the system proxy settings."""

import logging
from typing import Optional

from ..errors import ExecFailed, UnsupportedProxyType
from ..models.proxy import ProxyEntry, ProxyType
from ..privileged import PrivilegedCommandRunner
from ..utils.macos_commands import CommandExecutor, list_network_services, run_cmd

logger = logging.getLogger(__name__)


class SystemProxy:
    def __init__(
        self,
        runner: PrivilegedCommandRunner,
        networksetup: str = "/usr/sbin/networksetup",
        executor: CommandExecutor = run_cmd,
    ):
        self.runner = runner
        self.networksetup = networksetup
        self._executor = executor

    async def get_network_services(self) -> list[str]:
        return await list_network_services(self.networksetup, executor=self._executor)

    async def resolve_services(self, selected: Optional[list[str]] = None) -> list[str]:
        """Selected services, or every service when nothing is selected."""
        if selected:
            return list(selected)
        services = await self.get_network_services()
        if not services:
            raise ExecFailed("No network services found")
        return services

    def set_and_enable_commands(self, proxy: ProxyEntry, services: list[str]) -> list[list[str]]:
        ns = self.networksetup
        host, port = proxy.host, str(proxy.port)
        commands = []
        for service in services:
            if proxy.type is ProxyType.HTTP:
                commands += [
                    [ns, "-setwebproxy", service, host, port],
                    [ns, "-setsecurewebproxy", service, host, port],
                    [ns, "-setwebproxystate", service, "on"],
                    [ns, "-setsecurewebproxystate", service, "on"],
                ]
            elif proxy.type is ProxyType.SOCKS5:
                commands += [
                    [ns, "-setsocksfirewallproxy", service, host, port],
                    [ns, "-setsocksfirewallproxystate", service, "on"],
                ]
            else:
                raise UnsupportedProxyType(str(proxy.type))
        return commands

    def disable_commands(
        self, services: list[str], proxy_type: Optional[ProxyType] = None
    ) -> list[list[str]]:
        """State-off commands for one proxy type, or for all types."""
        if proxy_type is ProxyType.HTTP:
            flags = ["-setwebproxystate", "-setsecurewebproxystate"]
        elif proxy_type is ProxyType.SOCKS5:
            flags = ["-setsocksfirewallproxystate"]
        elif proxy_type is None:
            flags = ["-setwebproxystate", "-setsecurewebproxystate", "-setsocksfirewallproxystate"]
        else:
            raise UnsupportedProxyType(str(proxy_type))
        return [[self.networksetup, flag, service, "off"] for service in services for flag in flags]

    async def set_and_enable_proxy(
        self, proxy: ProxyEntry, selected: Optional[list[str]] = None
    ) -> None:
        services = await self.resolve_services(selected)
        logger.info(f"Enabling {proxy.type.value} proxy {proxy.host}:{proxy.port} on {services}")
        await self.runner.run(self.set_and_enable_commands(proxy, services))

    async def disable_proxy(
        self, proxy: Optional[ProxyEntry] = None, selected: Optional[list[str]] = None
    ) -> None:
        services = await self.resolve_services(selected)
        proxy_type = proxy.type if proxy else None
        logger.info(f"Disabling {proxy_type.value if proxy_type else 'all'} proxies on {services}")
        await self.runner.run(self.disable_commands(services, proxy_type))

    async def reapply_proxy(
        self, proxy: ProxyEntry, selected: Optional[list[str]] = None
    ) -> None:
        """Switch every proxy type off, then apply ``proxy``, in one batch."""
        services = await self.resolve_services(selected)
        logger.info(f"Re-applying {proxy.type.value} proxy {proxy.host}:{proxy.port} on {services}")
        await self.runner.run(
            self.disable_commands(services) + self.set_and_enable_commands(proxy, services)
        )
