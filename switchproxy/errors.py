"""Exception types surfaced by the privilege core and the proxy services."""

from .models.privilege import ErrorKind


NEEDS_ADMIN_MESSAGE = (
    "Administrator rights are required. Enter your password when macOS asks; "
    "the authorization stays valid until you log out or restart."
)


class PrivilegeError(Exception):
    kind: ErrorKind

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic


class UserCancelled(PrivilegeError):
    kind = ErrorKind.USER_CANCELLED

    def __init__(self, diagnostic: str = ""):
        super().__init__("Authorization was cancelled", diagnostic)


class ElevationFailed(PrivilegeError):
    kind = ErrorKind.ELEVATION_FAILED

    def __init__(self, diagnostic: str):
        super().__init__(f"Could not obtain administrator rights: {diagnostic}", diagnostic)


class NeedsAdminRights(PrivilegeError):
    kind = ErrorKind.NEEDS_ADMIN_RIGHTS

    def __init__(self, diagnostic: str = ""):
        super().__init__(NEEDS_ADMIN_MESSAGE, diagnostic)


class ExecFailed(PrivilegeError):
    kind = ErrorKind.EXEC_FAILED

    def __init__(self, diagnostic: str, timed_out: bool = False):
        prefix = "Command timed out" if timed_out else "Command failed"
        super().__init__(f"{prefix}: {diagnostic}", diagnostic)
        self.timed_out = timed_out


class ProxyError(Exception):
    pass


class ProxyNotFound(ProxyError):
    def __init__(self, proxy_id: str):
        super().__init__(f"Proxy configuration not found: {proxy_id}")
        self.proxy_id = proxy_id


class UnsupportedProxyType(ProxyError):
    def __init__(self, proxy_type: str):
        super().__init__(f"Unsupported proxy type: {proxy_type}")


class NoProxySelected(ProxyError):
    def __init__(self):
        super().__init__("Select a proxy configuration first")
