"""Data models."""

from .privilege import AuthStatus, ElevationPath, ErrorKind, FailureKind, ProcessResult
from .proxy import (
    OperationResult,
    ProxyConfig,
    ProxyEntry,
    ProxyInput,
    ProxyState,
    ProxyType,
)

__all__ = [
    "AuthStatus",
    "ElevationPath",
    "ErrorKind",
    "FailureKind",
    "ProcessResult",
    "OperationResult",
    "ProxyConfig",
    "ProxyEntry",
    "ProxyInput",
    "ProxyState",
    "ProxyType",
]
