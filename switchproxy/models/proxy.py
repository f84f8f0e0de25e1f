"""Proxy configuration models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
import uuid

from .privilege import ErrorKind


class ProxyType(str, Enum):
    HTTP = "http"
    SOCKS5 = "socks5"


class ProxyInput(BaseModel):
    name: str
    type: ProxyType
    host: str
    port: int = Field(ge=1, le=65535)


class ProxyEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    name: str
    type: ProxyType
    host: str
    port: int
    enabled: bool = False


class ProxyConfig(BaseModel):
    """Everything persisted to the config file."""

    proxies: list[ProxyEntry] = Field(default_factory=list)
    current_proxy: Optional[str] = None
    proxy_enabled: bool = False
    selected_network_services: list[str] = Field(default_factory=list)


class ProxyState(BaseModel):
    current_proxy: Optional[ProxyEntry] = None
    current_proxy_id: Optional[str] = None
    proxy_enabled: bool = False


class OperationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
