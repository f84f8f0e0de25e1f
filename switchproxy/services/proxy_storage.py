"""Persisted proxy configurations and selection state."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..errors import ProxyNotFound
from ..models.proxy import ProxyConfig, ProxyEntry, ProxyInput

logger = logging.getLogger(__name__)


class ProxyStorage:
    """Key-value store backed by one JSON file, written on every change."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._config = self._load()

    def _load(self) -> ProxyConfig:
        if not self.path.exists():
            return ProxyConfig()
        try:
            return ProxyConfig.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable proxy config {self.path}: {e}")
            return ProxyConfig()

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(self._config.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get_proxies(self) -> list[ProxyEntry]:
        return list(self._config.proxies)

    def get_proxy_by_id(self, proxy_id: Optional[str]) -> Optional[ProxyEntry]:
        if proxy_id is None:
            return None
        return next((p for p in self._config.proxies if p.id == proxy_id), None)

    def add_proxy(self, proxy: ProxyInput) -> ProxyEntry:
        entry = ProxyEntry(**proxy.model_dump())
        self._config.proxies.append(entry)
        self._save()
        return entry

    def update_proxy(self, proxy_id: str, proxy: ProxyInput) -> ProxyEntry:
        for i, existing in enumerate(self._config.proxies):
            if existing.id == proxy_id:
                updated = existing.model_copy(update=proxy.model_dump())
                self._config.proxies[i] = updated
                self._save()
                return updated
        raise ProxyNotFound(proxy_id)

    def delete_proxy(self, proxy_id: str) -> None:
        self._config.proxies = [p for p in self._config.proxies if p.id != proxy_id]
        # Deleting the current proxy also clears the selection
        if self._config.current_proxy == proxy_id:
            self._config.current_proxy = None
            self._config.proxy_enabled = False
        self._save()

    def get_current_proxy(self) -> Optional[str]:
        return self._config.current_proxy

    def set_current_proxy(self, proxy_id: Optional[str]) -> None:
        self._config.current_proxy = proxy_id
        self._save()

    def get_proxy_enabled(self) -> bool:
        return self._config.proxy_enabled

    def set_proxy_enabled(self, enabled: bool) -> None:
        self._config.proxy_enabled = enabled
        self._save()

    def get_selected_network_services(self) -> list[str]:
        return list(self._config.selected_network_services)

    def set_selected_network_services(self, services: Optional[list[str]]) -> list[str]:
        self._config.selected_network_services = list(services or [])
        self._save()
        return self.get_selected_network_services()
