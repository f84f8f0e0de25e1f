"""Privilege-elevation models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class FailureKind(str, Enum):
    USER_CANCELLED = "user_cancelled"
    AUTHENTICATION = "authentication"
    TIMEOUT = "timeout"
    COMMAND = "command"


class ErrorKind(str, Enum):
    USER_CANCELLED = "user_cancelled"
    ELEVATION_FAILED = "elevation_failed"
    NEEDS_ADMIN_RIGHTS = "needs_admin_rights"
    EXEC_FAILED = "exec_failed"


class ElevationPath(str, Enum):
    GRANT = "grant"  # sudo -n, passwordless entry installed
    SESSION = "session"  # interactive path, cache assumed warm
    ELEVATE = "elevate"  # must prompt before executing


class ProcessResult(BaseModel):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def diagnostic(self) -> str:
        return self.stderr or self.stdout or f"exit status {self.returncode}"


class AuthStatus(BaseModel):
    persistent_grant: bool = False
    marker_present: bool = False
    recent_elevation: bool = False
    marker_timestamp: Optional[float] = None
